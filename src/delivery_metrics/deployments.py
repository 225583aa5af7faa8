"""Deployment timeline resolution and deploy frequency.

A deployment is a published release or, for repositories that never publish
releases, a tag. Releases win whenever at least one exists; the two timelines
are never merged.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .errors import NoDeploymentsFound
from .github_client import GitHubClient
from .models import Deployment, DeployFrequencyResult, DeploymentSource, Tag

logger = logging.getLogger(__name__)

SOURCE_RELEASE = "release"
SOURCE_TAG = "tag"

_SECONDS_PER_DAY = 86400


def _resolve_release(client: GitHubClient, release: Deployment) -> Deployment:
    """Attach the tagged commit to a release, keeping the release timestamp.

    The commit identity comes from the tag rather than the release payload
    because the two can diverge.
    """
    resolved = client.resolve_tag(release.tag)
    return Deployment(
        name=release.name,
        tag=release.tag,
        sha=resolved.sha if resolved else None,
        created_at=release.created_at,
    )


def _resolve_tag(client: GitHubClient, tag: Tag) -> Deployment:
    resolved = client.resolve_tag(tag.name)
    if resolved is None:
        return Deployment(name=tag.name, tag=tag.name)
    return Deployment(
        name=resolved.name or tag.name,
        tag=resolved.name or tag.name,
        sha=resolved.sha,
        created_at=resolved.created_at,
    )


def resolve_deployment_source(
    client: GitHubClient,
    max_releases: int = 100,
    max_tags: int = 100,
) -> DeploymentSource:
    """Choose releases or tags as the deployment timeline.

    Returns:
        The source name, the latest and previous deployments, and the capped
        newest-first timeline used for frequency calculations.

    Raises:
        NoDeploymentsFound: If the repository has neither releases nor tags.
    """
    releases = client.list_releases(max_releases)

    if releases:
        latest = _resolve_release(client, releases[0])
        previous = _resolve_release(client, releases[1]) if len(releases) > 1 else None
        timeline: List[Deployment] = [latest] + releases[1:]
        if previous is not None:
            timeline[1] = previous

        logger.debug(
            "Using releases as deployment source",
            extra={"deploy_count": len(timeline), "latest_tag": latest.tag},
        )
        return DeploymentSource(
            source=SOURCE_RELEASE,
            latest=latest,
            previous=previous,
            deployments=timeline,
        )

    tags = client.list_tags(max_tags)
    if not tags:
        raise NoDeploymentsFound("No releases or tags found")

    latest = _resolve_tag(client, tags[0])
    previous = _resolve_tag(client, tags[1]) if len(tags) > 1 else None

    timeline = [Deployment(name=tag.name, tag=tag.name, sha=tag.sha) for tag in tags]
    timeline[0] = latest
    if previous is not None:
        timeline[1] = previous
    if len(tags) > 2:
        timeline[-1] = _resolve_tag(client, tags[-1])

    logger.debug(
        "Using tags as deployment source",
        extra={"deploy_count": len(timeline), "latest_tag": latest.tag},
    )
    return DeploymentSource(
        source=SOURCE_TAG,
        latest=latest,
        previous=previous,
        deployments=timeline,
    )


def calculate_deploy_frequency(deployments: Sequence[Deployment]) -> DeployFrequencyResult:
    """Normalize the number of deployments in the fetched window to a weekly rate.

    The span runs from the oldest to the newest deployment of the whole window,
    not just the latest pair. Fewer than two deployments, an unresolved
    endpoint timestamp, or a non-positive span yield ``deploys_per_week=None``.
    """
    deploy_count = len(deployments)
    if deploy_count < 2:
        return DeployFrequencyResult(deploy_count=deploy_count, deploys_per_week=None)

    newest = deployments[0].created_at
    oldest = deployments[-1].created_at
    if newest is None or oldest is None:
        logger.debug(
            "Skipping deploy frequency due to unresolved deployment timestamps",
            extra={"deploy_count": deploy_count},
        )
        return DeployFrequencyResult(deploy_count=deploy_count, deploys_per_week=None)

    days = (newest - oldest).total_seconds() / _SECONDS_PER_DAY
    weeks = days / 7
    deploys_per_week: Optional[float] = None
    if weeks > 0:
        deploys_per_week = round(deploy_count / weeks, 2)

    return DeployFrequencyResult(deploy_count=deploy_count, deploys_per_week=deploys_per_week)
