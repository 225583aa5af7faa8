"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from delivery_metrics.cli import parse_args


def test_parse_args_with_valid_arguments(monkeypatch):
    """Verify CLI parsing succeeds when repository, metrics and options are provided."""
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "github-delivery-metrics",
            "--repo",
            "octo/widgets",
            "--pr-number",
            "42",
            "--lead-time",
            "--pr-maturity",
            "--include-merge-commits",
            "--max-releases",
            "20",
            "--files-to-ignore",
            "*.lock,docs/*",
            "--time-period",
            "monthly",
        ],
    )

    args = parse_args()

    assert args.repo == "octo/widgets"
    assert args.pr_number == 42
    assert args.lead_time is True
    assert args.pr_maturity is True
    assert args.deployment_frequency is False
    assert args.include_merge_commits is True
    assert args.max_releases == 20
    assert args.files_to_ignore == "*.lock,docs/*"
    assert args.time_period == "monthly"


def test_parse_args_defaults(monkeypatch):
    """Verify optional arguments fall back to their defaults."""
    monkeypatch.setattr(sys, "argv", ["github-delivery-metrics", "--repo", "octo/widgets"])

    args = parse_args()

    assert args.pr_number is None
    assert args.max_releases == 100
    assert args.max_tags == 100
    assert args.files_to_ignore == ""
    assert args.time_period == "weekly"
    assert args.output_path == "metrics/delivery_metrics.json"
    assert args.log_level == "INFO"
    assert args.team_metrics is False


def test_parse_args_without_repo_fails(monkeypatch):
    """Verify CLI parsing exits with an error when --repo is missing."""
    monkeypatch.setattr(sys, "argv", ["github-delivery-metrics", "--lead-time"])

    with pytest.raises(SystemExit):
        parse_args()


def test_parse_args_with_negative_max_tags_fails_validation(monkeypatch):
    """Verify CLI parsing exits with an error when --max-tags is not positive."""
    monkeypatch.setattr(
        sys,
        "argv",
        ["github-delivery-metrics", "--repo", "octo/widgets", "--max-tags", "-1"],
    )

    with pytest.raises(SystemExit):
        parse_args()


def test_parse_args_with_unknown_time_period_fails(monkeypatch):
    """Verify CLI parsing rejects unsupported time periods."""
    monkeypatch.setattr(
        sys,
        "argv",
        ["github-delivery-metrics", "--repo", "octo/widgets", "--time-period", "yearly"],
    )

    with pytest.raises(SystemExit):
        parse_args()
