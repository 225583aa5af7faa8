"""Tests for lead time for change calculations."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from delivery_metrics.cycle_time import calculate_cycle_time, compute_cycle_time
from delivery_metrics.errors import UnresolvedDeploymentError
from delivery_metrics.models import Commit, CompareResult, Deployment


def _utc(day: int, hour: int = 0) -> datetime:
    return datetime(2023, 1, day, hour, tzinfo=timezone.utc)


def _commit(sha: str, committed_at: datetime | None, parents: int = 1) -> Commit:
    return Commit(sha=sha, committed_at=committed_at, parent_count=parents)


def test_compute_cycle_time_single_commit_measures_hours_to_deployment():
    """Verify one commit twelve hours before deployment yields twelve hours for every aggregate."""
    result = compute_cycle_time(_utc(2), [_commit("c1", _utc(1, 12))])

    assert result.commit_count == 1
    assert result.avg_hours == 12
    assert result.oldest_hours == 12
    assert result.newest_hours == 12
    assert result.oldest_commit_sha == "c1"
    assert result.newest_commit_sha == "c1"


def test_compute_cycle_time_newest_skips_merge_commits_by_default():
    """Verify the newest commit ignores merges while average and oldest include them."""
    commits = [
        _commit("feature", _utc(1)),
        _commit("merge", _utc(1, 20), parents=2),
    ]

    result = compute_cycle_time(_utc(2), commits)

    assert result.commit_count == 2
    assert result.avg_hours == pytest.approx(14.0)
    assert result.oldest_commit_sha == "feature"
    assert result.oldest_hours == 24
    assert result.newest_commit_sha == "feature"
    assert result.newest_hours == 24
    assert result.newest_excludes_merges is True


def test_compute_cycle_time_includes_merges_when_configured():
    """Verify merge commits can be the newest commit when merge inclusion is enabled."""
    commits = [
        _commit("feature", _utc(1)),
        _commit("merge", _utc(1, 20), parents=2),
    ]

    result = compute_cycle_time(_utc(2), commits, include_merge_commits=True)

    assert result.newest_commit_sha == "merge"
    assert result.newest_hours == 4
    assert result.newest_excludes_merges is False


def test_compute_cycle_time_all_merges_falls_back_to_every_commit():
    """Verify the newest commit falls back to merges when nothing else exists."""
    commits = [
        _commit("m1", _utc(1), parents=2),
        _commit("m2", _utc(1, 18), parents=2),
    ]

    result = compute_cycle_time(_utc(2), commits)

    assert result.newest_commit_sha == "m2"
    assert result.newest_hours == 6


def test_compute_cycle_time_without_dated_commits_returns_empty_result():
    """Verify undated or missing commits yield a zero count and no aggregates."""
    result = compute_cycle_time(_utc(2), [_commit("c1", None)])

    assert result.commit_count == 0
    assert result.avg_hours is None
    assert result.oldest_hours is None
    assert result.newest_hours is None


def test_compute_cycle_time_falls_back_to_author_date():
    """Verify commits without a committer date use their author date."""
    commit = Commit(sha="c1", authored_at=_utc(1, 18))

    result = compute_cycle_time(_utc(2), [commit])

    assert result.avg_hours == 6


def test_compute_cycle_time_rounds_to_two_decimals():
    """Verify aggregates are rounded to two decimals."""
    deployed_at = datetime(2023, 1, 2, 0, 0, 0, tzinfo=timezone.utc)
    committed_at = datetime(2023, 1, 1, 23, 40, 0, tzinfo=timezone.utc)

    result = compute_cycle_time(deployed_at, [_commit("c1", committed_at)])

    assert result.avg_hours == 0.33


def test_calculate_cycle_time_compares_previous_and_latest_deployments():
    """Verify commits between the two latest deployments are compared and measured."""
    client = Mock()
    client.compare_commits.return_value = CompareResult(
        commits=[_commit("c1", _utc(1)), _commit("c2", _utc(1, 12))],
        truncated=False,
    )
    latest = Deployment(name="v2", tag="v2", sha="sha-2", created_at=_utc(2))
    previous = Deployment(name="v1", tag="v1", sha="sha-1", created_at=_utc(1))

    result = calculate_cycle_time(client, latest, previous)

    client.compare_commits.assert_called_once_with("sha-1", "sha-2")
    client.get_commit.assert_not_called()
    assert result.commit_count == 2
    assert result.avg_hours == 18


def test_calculate_cycle_time_without_previous_uses_tagged_commit():
    """Verify only the tagged commit is measured when there is no previous deployment."""
    client = Mock()
    client.get_commit.return_value = _commit("sha-1", _utc(1, 12))
    latest = Deployment(name="v1", tag="v1", sha="sha-1", created_at=_utc(2))

    result = calculate_cycle_time(client, latest, None)

    client.get_commit.assert_called_once_with("sha-1")
    client.compare_commits.assert_not_called()
    assert result.commit_count == 1
    assert result.avg_hours == 12


def test_calculate_cycle_time_unresolved_latest_raises():
    """Verify a latest deployment without SHA or timestamp is rejected."""
    client = Mock()
    latest = Deployment(name="v1", tag="v1")

    with pytest.raises(UnresolvedDeploymentError):
        calculate_cycle_time(client, latest, None)

    client.compare_commits.assert_not_called()
