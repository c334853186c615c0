"""Acceptance tests for Section 1: Parsing Gherkin documents.

Covers: minimal documents, Scenario Outline expansion and malformed input.
"""

import pytest

from gherkit import GherkinParseError, parse_feature

pytestmark = pytest.mark.acceptance


class TestScenario1_1:
    """1.1: A minimal document parses into one Rule holding one Example."""

    @pytest.mark.parametrize("scenario, step", [
        ("Scenario: s", "Given a"),
        ("Example: logging in", "Given a user"),
        ("Scenario", "Given"),
    ])
    def test_minimal_document(self, scenario: str, step: str) -> None:
        feature = parse_feature(f"Feature: F\n  {scenario}\n    {step}\n")
        assert len(feature.rules) == 1
        assert len(feature.rules[0].examples) == 1
        assert feature.rules[0].examples[0].steps[0].description == step


class TestScenario1_2:
    """1.2: A Scenario Outline yields one Example per row of values."""

    CONTENT = """\
@feature
Feature: F

  @rule
  Rule: R

    @outline @rule
    Scenario Outline: <a> plus <b>
      Given <a> and <b>
      Then the sum is <sum>

      @rows
      Examples:
        | a | b | sum |
        | 1 | 2 | 3   |
        | 2 | 2 | 4   |
        | 5 | 0 | 5   |
"""

    def test_one_example_per_row(self) -> None:
        assert len(parse_feature(self.CONTENT).examples) == 3

    def test_every_token_substituted(self) -> None:
        for example in parse_feature(self.CONTENT).examples:
            texts = [example.description] + [s.description for s in example.steps]
            assert not any("<" in text for text in texts)

    def test_values_in_place(self) -> None:
        last = parse_feature(self.CONTENT).examples[2]
        assert last.description == "Scenario Outline: 5 plus 0"
        assert [s.description for s in last.steps] == ["Given 5 and 0", "Then the sum is 5"]

    def test_tags_are_union_without_duplicates(self) -> None:
        for example in parse_feature(self.CONTENT).examples:
            assert example.tags == ("outline", "rule", "rows", "feature")


class TestScenario1_3:
    """1.3: Malformed documents fail with a descriptive error."""

    def test_two_features(self) -> None:
        with pytest.raises(GherkinParseError, match="multiple Features"):
            parse_feature("Feature: A\n  Scenario: s\n    Given a\nFeature: B\n")

    def test_background_with_only_when(self) -> None:
        with pytest.raises(
            GherkinParseError, match="Background steps can only consist of Givens",
        ):
            parse_feature("Feature: F\n  Background:\n    When something happens\n")

    def test_table_arity_mismatch(self) -> None:
        with pytest.raises(GherkinParseError, match="same number of elements per row"):
            parse_feature(
                "Feature: F\n  Scenario: s\n    Given a table\n      | a | b |\n      | c |\n"
            )

    def test_error_carries_line_number(self) -> None:
        with pytest.raises(GherkinParseError) as exc_info:
            parse_feature("Feature: F\n\n  Background:\n    Then nope\n")
        assert exc_info.value.line_number == 4
