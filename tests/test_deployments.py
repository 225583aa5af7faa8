"""Tests for deployment source resolution and deploy frequency."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from delivery_metrics.deployments import (
    SOURCE_RELEASE,
    SOURCE_TAG,
    calculate_deploy_frequency,
    resolve_deployment_source,
)
from delivery_metrics.errors import NoDeploymentsFound
from delivery_metrics.models import Deployment, ResolvedTag, Tag


def _utc(day: int, hour: int = 0) -> datetime:
    return datetime(2026, 1, day, hour, tzinfo=timezone.utc)


def _resolver(name: str) -> ResolvedTag:
    return ResolvedTag(name=name, sha=f"sha-{name}", created_at=_utc(20))


def test_resolve_deployment_source_falls_back_to_tags_without_releases():
    """Verify tags are used, and the latest is resolved, when the repository has no releases."""
    client = Mock()
    client.list_releases.return_value = []
    client.list_tags.return_value = [Tag(name="v2", sha="c2"), Tag(name="v1", sha="c1")]
    client.resolve_tag.side_effect = _resolver

    source = resolve_deployment_source(client, max_releases=10, max_tags=10)

    assert source.source == SOURCE_TAG
    assert source.latest.tag == "v2"
    assert source.latest.sha == "sha-v2"
    assert source.previous is not None
    assert source.previous.tag == "v1"
    assert len(source.deployments) == 2
    client.list_releases.assert_called_once_with(10)
    client.list_tags.assert_called_once_with(10)


def test_resolve_deployment_source_resolves_oldest_tag_of_window():
    """Verify the oldest tag of a longer window is resolved for the frequency span."""
    client = Mock()
    client.list_releases.return_value = []
    client.list_tags.return_value = [Tag(name=f"v{i}", sha=f"c{i}") for i in (4, 3, 2, 1)]
    client.resolve_tag.side_effect = _resolver

    source = resolve_deployment_source(client)

    assert [deployment.tag for deployment in source.deployments] == ["v4", "v3", "v2", "v1"]
    assert source.deployments[-1].created_at == _utc(20)
    assert source.deployments[2].created_at is None
    assert client.resolve_tag.call_count == 3


def test_resolve_deployment_source_prefers_releases_over_tags():
    """Verify releases win over tags and keep their own creation timestamps."""
    client = Mock()
    client.list_releases.return_value = [
        Deployment(name="Release 2", tag="v2", created_at=_utc(10)),
        Deployment(name="Release 1", tag="v1", created_at=_utc(3)),
    ]
    client.resolve_tag.side_effect = _resolver

    source = resolve_deployment_source(client)

    assert source.source == SOURCE_RELEASE
    assert source.latest.sha == "sha-v2"
    assert source.latest.created_at == _utc(10)
    assert source.previous.sha == "sha-v1"
    client.list_tags.assert_not_called()


def test_resolve_deployment_source_with_single_release_has_no_previous():
    """Verify a single release yields no previous deployment."""
    client = Mock()
    client.list_releases.return_value = [Deployment(name="Only", tag="v1", created_at=_utc(1))]
    client.resolve_tag.side_effect = _resolver

    source = resolve_deployment_source(client)

    assert source.previous is None
    assert len(source.deployments) == 1


def test_resolve_deployment_source_without_releases_or_tags_raises():
    """Verify an empty repository raises NoDeploymentsFound."""
    client = Mock()
    client.list_releases.return_value = []
    client.list_tags.return_value = []

    with pytest.raises(NoDeploymentsFound, match="No releases or tags found"):
        resolve_deployment_source(client)


def test_calculate_deploy_frequency_normalizes_window_to_weeks():
    """Verify deploys per week spans the oldest to newest deployment of the window."""
    deployments = [
        Deployment(name="v3", tag="v3", created_at=_utc(15)),
        Deployment(name="v2", tag="v2", created_at=_utc(8)),
        Deployment(name="v1", tag="v1", created_at=_utc(1)),
    ]

    result = calculate_deploy_frequency(deployments)

    assert result.deploy_count == 3
    assert result.deploys_per_week == pytest.approx(1.5)


def test_calculate_deploy_frequency_single_deployment_is_undefined():
    """Verify fewer than two deployments produce no weekly rate."""
    result = calculate_deploy_frequency([Deployment(name="v1", tag="v1", created_at=_utc(1))])

    assert result.deploy_count == 1
    assert result.deploys_per_week is None


def test_calculate_deploy_frequency_unresolved_endpoint_is_undefined():
    """Verify a missing endpoint timestamp produces no weekly rate."""
    deployments = [
        Deployment(name="v2", tag="v2", created_at=_utc(8)),
        Deployment(name="v1", tag="v1"),
    ]

    result = calculate_deploy_frequency(deployments)

    assert result.deploy_count == 2
    assert result.deploys_per_week is None


def test_calculate_deploy_frequency_zero_span_is_undefined():
    """Verify deployments sharing one timestamp produce no weekly rate."""
    deployments = [
        Deployment(name="v2", tag="v2", created_at=_utc(8)),
        Deployment(name="v1", tag="v1", created_at=_utc(8)),
    ]

    assert calculate_deploy_frequency(deployments).deploys_per_week is None


def test_calculate_deploy_frequency_short_span_rounds_to_two_decimals():
    """Verify two deployments one day apart yield fourteen deploys per week."""
    deployments = [
        Deployment(name="v2", tag="v2", created_at=_utc(2)),
        Deployment(name="v1", tag="v1", created_at=_utc(2) - timedelta(days=1)),
    ]

    assert calculate_deploy_frequency(deployments).deploys_per_week == pytest.approx(14.0)
