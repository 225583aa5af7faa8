"""Orchestration of the metric calculators against the GitHub client.

Each ``collect_*`` function covers one metric family. Precondition failures of
one family are reported on its result so the other families still run.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .config import MetricsOptions
from .cycle_time import calculate_cycle_time
from .deployments import calculate_deploy_frequency, resolve_deployment_source
from .errors import NoDeploymentsFound
from .github_client import GitHubClient
from .models import DeliveryMetrics, DevExMetrics, TeamMetrics
from .pr_maturity import calculate_pr_maturity
from .pr_size import calculate_pr_size
from .team import aggregate_team_metrics, collect_pr_review_metrics, get_date_range

logger = logging.getLogger(__name__)


def collect_delivery_metrics(
    client: GitHubClient,
    options: MetricsOptions,
    deployment_frequency: bool = True,
    lead_time: bool = True,
) -> DeliveryMetrics:
    """Resolve the deployment timeline, then compute deploy frequency and cycle time.

    A repository without releases or tags, or whose latest deployment cannot be
    resolved to a commit, yields a result carrying only ``error``.
    """
    try:
        source = resolve_deployment_source(client, options.max_releases, options.max_tags)
    except NoDeploymentsFound as exc:
        logger.error("Failed to collect delivery metrics: %s", exc)
        return DeliveryMetrics(error=f"Metrics collection failed: {exc}")

    if not source.latest.is_resolved:
        message = "Could not resolve latest release/tag SHA or created_at"
        logger.error(message, extra={"tag": source.latest.tag})
        return DeliveryMetrics(source=source.source, latest=source.latest, error=message)

    metrics = DeliveryMetrics(
        source=source.source,
        latest=source.latest,
        previous=source.previous,
    )

    if deployment_frequency:
        metrics.deploy_frequency = calculate_deploy_frequency(source.deployments)

    if lead_time:
        metrics.cycle_time = calculate_cycle_time(
            client,
            source.latest,
            source.previous,
            include_merge_commits=options.include_merge_commits,
        )

    logger.info(
        "Collected delivery metrics",
        extra={
            "source": metrics.source,
            "latest_tag": source.latest.tag,
            "deploy_count": metrics.deploy_frequency.deploy_count if metrics.deploy_frequency else None,
            "commit_count": metrics.cycle_time.commit_count if metrics.cycle_time else None,
        },
    )
    return metrics


def collect_devex_metrics(
    client: GitHubClient,
    pr_number: int,
    options: MetricsOptions,
    pr_size: bool = True,
    pr_maturity: bool = True,
) -> DevExMetrics:
    """Compute PR size and PR maturity for one pull request."""
    metrics = DevExMetrics(pr_number=pr_number)

    if pr_size:
        metrics.pr_size = calculate_pr_size(client, pr_number, options)

    if pr_maturity:
        metrics.pr_maturity = calculate_pr_maturity(client, pr_number, options)

    return metrics


def collect_team_metrics(
    client: GitHubClient,
    options: MetricsOptions,
    delivery: Optional[DeliveryMetrics] = None,
    now: Optional[datetime] = None,
) -> TeamMetrics:
    """Measure every pull request created in the configured period and aggregate."""
    start, end = get_date_range(options.time_period, now)
    logger.info(
        "Collecting team metrics",
        extra={"period": options.time_period, "start": start.isoformat(), "end": end.isoformat()},
    )

    prs = client.list_pull_requests_by_date_range(start, end)
    if not prs:
        return TeamMetrics(
            period=options.time_period,
            start=start,
            end=end,
            error="No pull requests found in the specified time period",
        )

    pr_metrics = collect_pr_review_metrics(client, prs)

    logger.info(
        "Collected team metric samples",
        extra={"prs_total": len(prs), "prs_analyzed": len(pr_metrics)},
    )

    return aggregate_team_metrics(
        pr_metrics,
        options.time_period,
        start,
        end,
        total_prs=len(prs),
        unique_authors=len({pr.author for pr in prs}),
        delivery=delivery,
    )
