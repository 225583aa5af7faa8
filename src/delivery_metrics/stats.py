"""Statistics and formatting helpers for metrics reporting.

This module provides utilities for:
- Half-up rounding and hour differences shared by the calculators.
- Computing linear-interpolation percentiles from pre-sorted samples.
- Aggregating summary statistics (P50, P75, P90, count) of hour samples.
- Formatting hour durations as ``"<days> days (<hours>h)"``.
- Building a human-readable report of delivery, DevEx and team metrics.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .models import DeliveryMetrics, DevExMetrics, TeamMetrics, TimingSummary
from .ratings import (
    rate_cycle_time,
    rate_deploy_frequency,
    rate_pr_maturity,
    rating_emoji,
)

_SECONDS_PER_HOUR = 3600


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for positive values (``0.5 -> 1``)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def hours_between(later: datetime, earlier: datetime) -> float:
    """Signed number of hours from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / _SECONDS_PER_HOUR


def calculate_percentile(sorted_values: Sequence[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks.

    Args:
        sorted_values: Sorted numeric samples.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        Percentile value as ``float`` or ``None`` when input is empty.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def compute_statistics(samples: Sequence[Optional[float]]) -> Dict[str, Optional[float]]:
    """Compute P50, P75, P90, and sample count for hour samples.

    ``None`` and NaN samples are ignored; samples are sorted internally.

    Returns:
        Dictionary with keys ``p50``, ``p75``, ``p90``, and ``count``.
        Percentiles are ``None`` when no valid samples exist.
    """
    clean_samples = sorted(
        sample for sample in samples if sample is not None and not math.isnan(sample)
    )

    return {
        "p50": calculate_percentile(clean_samples, 50),
        "p75": calculate_percentile(clean_samples, 75),
        "p90": calculate_percentile(clean_samples, 90),
        "count": float(len(clean_samples)),
    }


def format_hours_to_days(hours: Optional[float]) -> str:
    """Format hours as ``"<d.d> days (<h>h)"``; ``"N/A"`` when missing.

    The hour part is rounded to one decimal and never shown below ``0.1``.
    """
    if hours is None:
        return "N/A"

    days = f"{hours / 24:.1f}"
    rounded_hours = max(0.1, round_half_up(hours, 1))
    return f"{days} days ({rounded_hours:g}h)"


def _format_optional(value: Optional[float], suffix: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:g}{suffix}"


def _timing_line(label: str, summary: Optional[TimingSummary]) -> List[str]:
    if summary is None or summary.average_hours is None:
        return [f"   {label}: N/A"]
    return [
        f"   {label}: {summary.average_hours:g}h "
        f"{rating_emoji(summary.rating)} {summary.rating} (samples: {summary.sample_size})",
        f"      P50: {_format_optional(summary.p50, 'h')}"
        f" | P75: {_format_optional(summary.p75, 'h')}"
        f" | P90: {_format_optional(summary.p90, 'h')}",
    ]


def generate_report(
    repository: str,
    delivery: Optional[DeliveryMetrics] = None,
    devex: Optional[DevExMetrics] = None,
    team: Optional[TeamMetrics] = None,
) -> str:
    """Generate a human-readable metrics report for a repository.

    Sections are only included for the metric families that were collected.
    """
    lines = [f"Repository: {repository}", "Delivery Metrics Report"]

    if delivery is not None:
        lines += ["", "1) Delivery Metrics"]
        if delivery.error:
            lines.append(f"   Error: {delivery.error}")
        else:
            latest = delivery.latest
            lines.append(f"   Source: {delivery.source}")
            if latest is not None:
                deployed_at = latest.created_at.isoformat() if latest.created_at else "N/A"
                lines.append(f"   Latest: {latest.tag} @ {deployed_at}")

            frequency = delivery.deploy_frequency
            if frequency is not None:
                lines.append(
                    f"   Deploy Frequency: {_format_optional(frequency.deploys_per_week, ' per week')} "
                    f"({rate_deploy_frequency(frequency.deploys_per_week)}, "
                    f"{frequency.deploy_count} deployments)"
                )

            cycle = delivery.cycle_time
            if cycle is not None:
                lines += [
                    f"   Cycle Time: {format_hours_to_days(cycle.avg_hours)} "
                    f"({rate_cycle_time(cycle.avg_hours)})",
                    f"   Commits: {cycle.commit_count}",
                    f"   Oldest: {format_hours_to_days(cycle.oldest_hours)}"
                    + (f" ({cycle.oldest_commit_sha[:7]})" if cycle.oldest_commit_sha else ""),
                    f"   Newest: {format_hours_to_days(cycle.newest_hours)}"
                    + (f" ({cycle.newest_commit_sha[:7]})" if cycle.newest_commit_sha else ""),
                ]

    if devex is not None:
        lines += ["", f"2) DevEx Metrics (PR #{devex.pr_number})"]
        if devex.pr_size is not None and devex.pr_size.error:
            lines.append(f"   PR Size: N/A ({devex.pr_size.error})")
        elif devex.pr_size is not None:
            size = devex.pr_size
            lines += [
                f"   PR Size: {size.size.upper()} {rating_emoji(size.rating)} {size.rating} ({size.category})",
                f"   Total Changes: {size.details.total_changes}",
                f"   Lines Added: {size.details.total_additions}",
                f"   Lines Removed: {size.details.total_deletions}",
                f"   Files Changed: {size.details.files_changed}",
            ]
        if devex.pr_maturity is not None:
            maturity = devex.pr_maturity
            if maturity.error:
                lines.append(f"   PR Maturity: N/A ({maturity.error})")
            else:
                rating = rate_pr_maturity(maturity.maturity_percentage)
                lines += [
                    f"   PR Maturity: {maturity.maturity_percentage}% "
                    f"{rating_emoji(rating)} {rating} ({maturity.maturity_ratio})",
                    f"   Total Commits: {maturity.total_commits}",
                    f"   Stable Changes: {maturity.stable_changes}",
                    f"   Changes After Publication: {maturity.changes_after_publication}",
                ]

    if team is not None:
        lines += ["", f"3) Team Metrics ({team.period})"]
        if team.error:
            lines.append(f"   Error: {team.error}")
        else:
            lines.append(
                f"   Date range: {team.start.date().isoformat()} to {team.end.date().isoformat()}"
            )
            lines.append(f"   Total PRs: {team.total_prs} | Unique authors: {team.unique_authors}")
            lines += _timing_line("Pickup Time", team.pickup_time)
            lines += _timing_line("Approve Time", team.approve_time)
            lines += _timing_line("Merge Time", team.merge_time)

            frequency = team.merge_frequency
            if frequency is not None:
                lines.append(
                    f"   Merge Frequency: {frequency.value:g} PRs/dev/week "
                    f"{rating_emoji(frequency.rating)} {frequency.rating}"
                )

            distribution = team.size_distribution
            if distribution is not None:
                lines += [
                    f"   PR Size: S {distribution.small_percent}% | M {distribution.medium_percent}%"
                    f" | L {distribution.large_percent}% | XL {distribution.xl_percent}%"
                    f" | Unknown {distribution.unknown_percent}%",
                    f"   Predominant Size: {distribution.predominant_size.upper()} "
                    f"({distribution.predominant_percent}%) - {distribution.predominant_rating}",
                ]

    return "\n".join(lines)
