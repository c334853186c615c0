"""Unit tests for gherkit.exporters.json_export."""

import json

from gherkit.exporters.json_export import export_json, feature_to_dict
from gherkit.parser import parse_feature


class TestFeatureToDict:
    def test_structure(self, sample_feature: str) -> None:
        data = feature_to_dict(parse_feature(sample_feature))
        assert data["tags"] == ["billing"]
        assert data["background"]["steps"] == [{"description": "Given a registered customer"}]
        assert [r["description"] for r in data["rules"]] == [None, "Rule: Vouchers"]
        assert data["rules"][1]["examples"][0]["tags"] == ["slow", "billing"]

    def test_arguments(self) -> None:
        feature = parse_feature(
            'Feature: F\nScenario: s\nGiven rows\n| a | b |\nThen text\n"""md\nhi\n"""\n'
        )
        steps = feature_to_dict(feature)["rules"][0]["examples"][0]["steps"]
        assert steps[0]["data_table"] == [["a", "b"]]
        assert steps[1]["doc_string"] == {"content": "hi", "media_type": "md"}

    def test_no_background(self) -> None:
        assert feature_to_dict(parse_feature("Feature: F"))["background"] is None


class TestExportJson:
    def test_valid_json(self, outline_feature: str) -> None:
        data = json.loads(export_json(parse_feature(outline_feature)))
        assert len(data["rules"][0]["examples"]) == 3
