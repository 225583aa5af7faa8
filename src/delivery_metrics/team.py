"""Team review-flow metrics and their period-level aggregation.

Per pull request this module measures:
- pickup time: creation to first review activity,
- approve time: first review activity (or creation) to first approval,
- merge time: first approval to merge.

The aggregator reduces those samples to averages, percentiles and ratings,
adds merge frequency and the PR size distribution, and optionally rates the
delivery metrics of the same repository.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .github_client import GitHubClient
from .models import (
    DeliveryMetrics,
    MergeFrequency,
    PRReviewMetrics,
    PullRequest,
    Review,
    SizeDistribution,
    TeamMetrics,
    TimelineEvent,
    TimingSummary,
)
from .ratings import (
    UNKNOWN,
    rate_approve_time,
    rate_cycle_time,
    rate_deploy_frequency,
    rate_merge_frequency,
    rate_merge_time,
    rate_pickup_time,
    rate_pr_size,
)
from .stats import compute_statistics, hours_between, round_half_up

logger = logging.getLogger(__name__)

PERIOD_DAYS: Dict[str, int] = {
    "weekly": 7,
    "fortnightly": 14,
    "monthly": 30,
}

REVIEW_EVENTS = ("reviewed", "commented", "line-commented")
SIZE_TIERS = ("s", "m", "l", "xl")


def days_in_period(time_period: str) -> int:
    return PERIOD_DAYS.get(time_period, PERIOD_DAYS["weekly"])


def get_date_range(time_period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return ``(start, end)`` of the period ending at ``now``; unknown periods are weekly."""
    end = now or datetime.now(timezone.utc)
    return end - timedelta(days=days_in_period(time_period)), end


def _is_review_activity(event: TimelineEvent) -> bool:
    if event.event in ("reviewed", "commented"):
        return True
    return event.event == "line-commented" and event.actor_type != "Bot"


def _first_approval(reviews: Sequence[Review]) -> Optional[Review]:
    return next((review for review in reviews if review.state == "APPROVED"), None)


def calculate_pickup_time(
    created_at: datetime,
    timeline: Sequence[TimelineEvent],
    reviews: Sequence[Review],
) -> Optional[float]:
    """Hours from creation to the earlier of the first review event and first review."""
    first_event = next(
        (event for event in timeline if _is_review_activity(event) and event.created_at),
        None,
    )
    submitted = sorted(review.submitted_at for review in reviews if review.submitted_at)

    candidates = []
    if first_event is not None:
        candidates.append(first_event.created_at)
    if submitted:
        candidates.append(submitted[0])
    if not candidates:
        return None

    return round_half_up(hours_between(min(candidates), created_at), 2)


def calculate_approve_time(
    created_at: datetime,
    timeline: Sequence[TimelineEvent],
    reviews: Sequence[Review],
) -> Optional[float]:
    """Hours from the first review activity before approval (or creation) to first approval."""
    approval = _first_approval(reviews)
    if approval is None or approval.submitted_at is None:
        return None

    first_comment = next(
        (
            event
            for event in timeline
            if event.event in REVIEW_EVENTS
            and event.created_at is not None
            and event.created_at < approval.submitted_at
        ),
        None,
    )
    start = first_comment.created_at if first_comment is not None else created_at
    return round_half_up(hours_between(approval.submitted_at, start), 2)


def calculate_merge_time(merged_at: Optional[datetime], reviews: Sequence[Review]) -> Optional[float]:
    """Hours from the first approval to merge; ``None`` if unmerged or never approved."""
    if merged_at is None:
        return None

    approval = _first_approval(reviews)
    if approval is None or approval.submitted_at is None:
        return None

    return round_half_up(hours_between(merged_at, approval.submitted_at), 2)


def size_from_labels(labels: Sequence[str]) -> Optional[str]:
    """Extract the tier of a ``size/<tier>`` label, e.g. ``size/M`` -> ``m``."""
    for label in labels:
        normalized = label.lower()
        if normalized.startswith("size/"):
            return normalized[len("size/"):]
    return None


def build_pr_review_metrics(
    pr: PullRequest,
    timeline: Sequence[TimelineEvent],
    reviews: Sequence[Review],
) -> PRReviewMetrics:
    return PRReviewMetrics(
        pr_number=pr.number,
        author=pr.author,
        state=pr.state,
        merged=pr.merged_at is not None,
        created_at=pr.created_at,
        merged_at=pr.merged_at,
        pickup_time_hours=calculate_pickup_time(pr.created_at, timeline, reviews),
        approve_time_hours=calculate_approve_time(pr.created_at, timeline, reviews),
        merge_time_hours=calculate_merge_time(pr.merged_at, reviews),
        pr_size=size_from_labels(pr.labels),
    )


def calculate_pr_review_metrics(client: GitHubClient, pr: PullRequest) -> Optional[PRReviewMetrics]:
    """Fetch timeline and reviews concurrently and measure one pull request.

    Returns ``None``, with a warning, when the pull request cannot be measured.
    """
    try:
        with ThreadPoolExecutor(max_workers=2) as executor:
            timeline_future = executor.submit(client.get_pull_request_timeline, pr.number)
            reviews_future = executor.submit(client.get_pull_request_reviews, pr.number)
            timeline = timeline_future.result()
            reviews = reviews_future.result()

        return build_pr_review_metrics(pr, timeline, reviews)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Failed to calculate metrics for PR #%s: %s",
            pr.number,
            exc,
            extra={"pr_number": pr.number},
        )
        return None


def summarize_timing(
    samples: Sequence[Optional[float]],
    rate: Callable[[Optional[float]], str],
) -> TimingSummary:
    values = [sample for sample in samples if sample is not None]
    if not values:
        return TimingSummary(average_hours=None, rating=None, sample_size=0)

    average = sum(values) / len(values)
    statistics = compute_statistics(values)
    return TimingSummary(
        average_hours=round_half_up(average, 2),
        rating=rate(average),
        sample_size=len(values),
        p50=statistics["p50"],
        p75=statistics["p75"],
        p90=statistics["p90"],
    )


def calculate_merge_frequency(pr_metrics: Sequence[PRReviewMetrics], time_period: str) -> MergeFrequency:
    """Merged pull requests per unique author per week of the period."""
    merged_count = sum(1 for metrics in pr_metrics if metrics.merged)
    unique_authors = len({metrics.author for metrics in pr_metrics})
    weeks = days_in_period(time_period) / 7

    frequency = merged_count / (unique_authors * weeks) if unique_authors > 0 and weeks > 0 else 0.0

    return MergeFrequency(
        value=round_half_up(frequency, 2),
        rating=rate_merge_frequency(frequency),
        merged_prs=merged_count,
        total_prs=len(pr_metrics),
        unique_authors=unique_authors,
    )


def calculate_size_distribution(pr_metrics: Sequence[PRReviewMetrics]) -> SizeDistribution:
    """Percentage of pull requests per size tier and the predominant tier.

    Pull requests without a recognised size label count as ``unknown``; the
    predominant tier is chosen among known tiers only, first tier winning ties.
    """
    counts: Dict[str, int] = {tier: 0 for tier in SIZE_TIERS}
    unknown = 0
    for metrics in pr_metrics:
        if metrics.pr_size in counts:
            counts[metrics.pr_size] += 1
        else:
            unknown += 1

    total = len(pr_metrics)

    def percent(count: int) -> int:
        return int(round_half_up(count / total * 100)) if total > 0 else 0

    predominant_size = "unknown"
    max_count = 0
    for tier in SIZE_TIERS:
        if counts[tier] > max_count:
            max_count = counts[tier]
            predominant_size = tier

    return SizeDistribution(
        small_percent=percent(counts["s"]),
        medium_percent=percent(counts["m"]),
        large_percent=percent(counts["l"]),
        xl_percent=percent(counts["xl"]),
        unknown_percent=percent(unknown),
        predominant_size=predominant_size,
        predominant_rating=rate_pr_size(predominant_size) if max_count else UNKNOWN,
        predominant_percent=percent(max_count),
    )


def aggregate_team_metrics(
    pr_metrics: Sequence[PRReviewMetrics],
    time_period: str,
    start: datetime,
    end: datetime,
    total_prs: Optional[int] = None,
    unique_authors: Optional[int] = None,
    delivery: Optional[DeliveryMetrics] = None,
) -> TeamMetrics:
    """Reduce per-PR review metrics (and optional delivery results) to period metrics."""
    team = TeamMetrics(
        period=time_period,
        start=start,
        end=end,
        total_prs=len(pr_metrics) if total_prs is None else total_prs,
        analyzed_prs=len(pr_metrics),
        unique_authors=(
            len({metrics.author for metrics in pr_metrics})
            if unique_authors is None
            else unique_authors
        ),
        pickup_time=summarize_timing([m.pickup_time_hours for m in pr_metrics], rate_pickup_time),
        approve_time=summarize_timing([m.approve_time_hours for m in pr_metrics], rate_approve_time),
        merge_time=summarize_timing([m.merge_time_hours for m in pr_metrics], rate_merge_time),
        merge_frequency=calculate_merge_frequency(pr_metrics, time_period),
        size_distribution=calculate_size_distribution(pr_metrics),
    )

    if delivery is not None:
        if delivery.cycle_time is not None and delivery.cycle_time.avg_hours is not None:
            team.cycle_time_rating = rate_cycle_time(delivery.cycle_time.avg_hours)
        if delivery.deploy_frequency is not None and delivery.deploy_frequency.deploys_per_week is not None:
            team.deploy_frequency_rating = rate_deploy_frequency(delivery.deploy_frequency.deploys_per_week)

    return team


def collect_pr_review_metrics(
    client: GitHubClient,
    prs: List[PullRequest],
) -> List[PRReviewMetrics]:
    collected: List[PRReviewMetrics] = []
    for pr in prs:
        metrics = calculate_pr_review_metrics(client, pr)
        if metrics is not None:
            collected.append(metrics)
    return collected
