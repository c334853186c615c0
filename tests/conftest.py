"""Shared test fixtures for gherkit."""

import json
from pathlib import Path

import pytest


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary empty project directory."""
    return tmp_path


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """Create a temporary project with gherkit initialized."""
    gherkit_dir = tmp_path / ".gherkit"
    gherkit_dir.mkdir()
    features_dir = tmp_path / "features"
    features_dir.mkdir()

    config = {
        "version": "0.1.0",
        "features_dir": "features",
        "steps_file": "steps.yaml",
        "include_tags": [],
        "exclude_tags": [],
    }
    (gherkit_dir / "config.json").write_text(json.dumps(config, indent=2))
    return tmp_path


@pytest.fixture
def sample_feature() -> str:
    """Return a feature with a Background, a tagged Scenario and a Rule."""
    return """\
@billing
Feature: Checkout
  Customers pay for the contents of their basket.

  Background:
    Given a registered customer

  @smoke
  Scenario: Paying by card
    Given a basket with 2 items
    When the customer pays by card
    Then the order is confirmed

  Rule: Vouchers
    @slow
    Example: Paying with a voucher
      Given a basket with 1 items
      When the customer pays with voucher "SPRING"
      Then the order is confirmed
"""


@pytest.fixture
def outline_feature() -> str:
    """Return a feature with a Scenario Outline over two data blocks."""
    return """\
Feature: Eating cucumbers

  @outline
  Scenario Outline: eating <eat> of <start>
    Given there are <start> cucumbers
    When I eat <eat> cucumbers
    Then I should have <left> cucumbers

    @fast
    Examples:
      | start | eat | left |
      |    12 |   5 |    7 |
      |    20 |   5 |   15 |

    Examples:
      | start | eat | left |
      |     5 |   5 |    0 |
"""


@pytest.fixture
def sample_catalog() -> str:
    """Return a YAML step catalog covering sample_feature."""
    return """\
steps:
  - pattern: a registered customer
    name: customer
  - pattern: a basket with <count(\\d+)> items
  - pattern: the customer pays by <method>
  - pattern: the customer pays with voucher "<code>"
  - pattern: the order is confirmed
"""
