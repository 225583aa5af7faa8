"""Tests for metric rating tables."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from delivery_metrics.ratings import (
    ELITE,
    FAIR,
    GOOD,
    NEEDS_FOCUS,
    UNKNOWN,
    RatingTable,
    rate_approve_time,
    rate_cycle_time,
    rate_deploy_frequency,
    rate_merge_frequency,
    rate_merge_time,
    rate_pickup_time,
    rate_pr_maturity,
    rate_pr_size,
    rating_emoji,
)


@pytest.mark.parametrize(
    "hours, expected",
    [(1.9, ELITE), (2, GOOD), (6, GOOD), (6.1, FAIR), (16, FAIR), (16.1, NEEDS_FOCUS)],
)
def test_rate_pickup_time_breakpoints(hours, expected):
    """Verify pickup time tiers switch at 2, 6 and 16 hours."""
    assert rate_pickup_time(hours) == expected


@pytest.mark.parametrize(
    "hours, expected",
    [(16.9, ELITE), (17, GOOD), (24, GOOD), (45, FAIR), (45.5, NEEDS_FOCUS)],
)
def test_rate_approve_time_breakpoints(hours, expected):
    """Verify approve time tiers switch at 17, 24 and 45 hours."""
    assert rate_approve_time(hours) == expected


@pytest.mark.parametrize(
    "hours, expected",
    [(1, ELITE), (2, GOOD), (5, GOOD), (19, FAIR), (20, NEEDS_FOCUS)],
)
def test_rate_merge_time_breakpoints(hours, expected):
    """Verify merge time tiers switch at 2, 5 and 19 hours."""
    assert rate_merge_time(hours) == expected


@pytest.mark.parametrize(
    "hours, expected",
    [(44, ELITE), (45, GOOD), (95, GOOD), (96, FAIR), (169, FAIR), (170, NEEDS_FOCUS)],
)
def test_rate_cycle_time_breakpoints(hours, expected):
    """Verify cycle time tiers switch at 45, 95 and 169 hours."""
    assert rate_cycle_time(hours) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(1.7, ELITE), (1.6, GOOD), (1.1, GOOD), (1.0, FAIR), (0.6, FAIR), (0.5, NEEDS_FOCUS)],
)
def test_rate_merge_frequency_breakpoints(value, expected):
    """Verify higher merge frequency earns better tiers."""
    assert rate_merge_frequency(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(1.0, ELITE), (0.9, GOOD), (0.5, GOOD), (0.4, FAIR), (0.2, FAIR), (0.1, NEEDS_FOCUS)],
)
def test_rate_deploy_frequency_breakpoints(value, expected):
    """Verify higher deploy frequency earns better tiers."""
    assert rate_deploy_frequency(value) == expected


@pytest.mark.parametrize(
    "percentage, expected",
    [(89, ELITE), (88, GOOD), (81, GOOD), (80, FAIR), (75, FAIR), (74, NEEDS_FOCUS)],
)
def test_rate_pr_maturity_breakpoints(percentage, expected):
    """Verify PR maturity tiers switch at 88, 81 and 75 percent."""
    assert rate_pr_maturity(percentage) == expected


def test_missing_values_are_unknown():
    """Verify a missing metric value is rated Unknown."""
    assert rate_pickup_time(None) == UNKNOWN
    assert rate_deploy_frequency(None) == UNKNOWN
    assert rate_pr_size(None) == UNKNOWN


def test_rate_pr_size_is_case_insensitive_and_rejects_unknown_tiers():
    """Verify size tiers map to ratings regardless of case."""
    assert rate_pr_size("S") == ELITE
    assert rate_pr_size("m") == GOOD
    assert rate_pr_size("L") == FAIR
    assert rate_pr_size("xl") == NEEDS_FOCUS
    assert rate_pr_size("xxl") == UNKNOWN


def test_rating_table_honors_inclusive_flags():
    """Verify a generic table distinguishes inclusive and exclusive bounds."""
    table = RatingTable("custom", ((10, True), (20, False), (30, True)))

    assert table.rate(10) == ELITE
    assert table.rate(19.9) == GOOD
    assert table.rate(20) == FAIR
    assert table.rate(30.1) == NEEDS_FOCUS


def test_rating_emoji_falls_back_for_unknown():
    """Verify every tier has an emoji and unknown ratings use the fallback."""
    assert rating_emoji(ELITE) == "⭐"
    assert rating_emoji(NEEDS_FOCUS) == "🎯"
    assert rating_emoji(UNKNOWN) == "❓"
    assert rating_emoji(None) == "❓"
