"""Tests for target configuration defaulting and URL derivation."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hublights.models import (
    MIN_CHECK_INTERVAL,
    NEW_TARGET_TITLE,
    TargetConfiguration,
    is_fetchable,
    store_minimal,
    with_default,
)


def test_with_default_and_store_minimal_fold_default_values():
    """Verify the defaulting helpers map absent to default and default back to absent."""
    assert with_default(None, 5) == 5
    assert with_default(7, 5) == 7
    assert store_minimal(5, 5) is None
    assert store_minimal(7, 5) == 7


def test_check_interval_setter_clamps_negative_values_to_floor():
    """Verify a negative interval reads back as the 30 second floor and is stored as absent."""
    target = TargetConfiguration()
    target.check_interval_defaulted = -5

    assert target.check_interval_defaulted == MIN_CHECK_INTERVAL
    assert target.check_interval is None


def test_check_interval_setter_keeps_values_above_floor():
    """Verify intervals above the floor are stored explicitly."""
    target = TargetConfiguration()
    target.check_interval_defaulted = 45

    assert target.check_interval == 45.0
    assert target.check_interval_defaulted == 45.0


def test_check_interval_below_floor_in_constructor_is_normalized():
    """Verify a below-floor interval passed at construction is never stored."""
    target = TargetConfiguration(check_interval=10.0)

    assert target.check_interval is None
    assert target.check_interval_defaulted == MIN_CHECK_INTERVAL


def test_check_interval_nan_falls_back_to_floor():
    """Verify NaN intervals do not escape the clamp."""
    target = TargetConfiguration()
    target.check_interval_defaulted = float("nan")

    assert target.check_interval is None
    assert target.check_interval_defaulted == MIN_CHECK_INTERVAL


def test_enabled_and_title_accessors_store_minimal_values():
    """Verify enabled/title accessors store None when set to their defaults."""
    target = TargetConfiguration()
    assert target.enabled_defaulted is False
    assert target.title_defaulted == ""

    target.enabled_defaulted = True
    target.title_defaulted = "Builds"
    assert target.enabled is True
    assert target.title == "Builds"

    target.enabled_defaulted = False
    target.title_defaulted = ""
    assert target.enabled is None
    assert target.title is None


def test_list_item_title_prefers_title_then_joins_present_parts():
    """Verify the derived label skips absent parts and falls back to an empty string."""
    assert TargetConfiguration(title="Mine", org="a").list_item_title == "Mine"
    assert TargetConfiguration(org="a", branch="dev").list_item_title == "a/dev"
    assert TargetConfiguration(org="a", repo="b", branch="c").list_item_title == "a/b/c"
    assert TargetConfiguration().list_item_title == ""


def test_service_url_defaults_repo_to_org_and_branch_to_main():
    """Verify URL derivation applies repo and branch defaults only for the URL."""
    target = TargetConfiguration(org="a")

    assert target.service_url() == "https://api.github.com/repos/a/a/commits/main/check-suites"
    assert target.repo is None
    assert target.branch is None


def test_service_url_uses_all_parts_and_custom_base():
    """Verify explicit repo/branch and a custom API base are honored."""
    target = TargetConfiguration(org="octo", repo="hello", branch="release/1.0")

    assert (
        target.service_url("https://ghe.example.test/api/v3/")
        == "https://ghe.example.test/api/v3/repos/octo/hello/commits/release/1.0/check-suites"
    )


def test_is_fetchable_requires_org():
    """Verify fetchability depends only on the organization being present."""
    assert is_fetchable(TargetConfiguration(org="a")) is True
    assert is_fetchable(TargetConfiguration(repo="b", branch="main")) is False
    assert TargetConfiguration(repo="b").service_url() is None


def test_target_id_is_immutable_and_unique():
    """Verify ids are generated per target and cannot be rebound."""
    first = TargetConfiguration.new()
    second = TargetConfiguration.new()

    assert first.id != second.id
    assert first.title == NEW_TARGET_TITLE
    with pytest.raises(AttributeError):
        first.id = "other"
