"""Threshold tables mapping metric values to qualitative tiers.

Every metric is rated into one of four ordered tiers. A table holds the three
breakpoints separating ``Elite``/``Good``/``Fair`` from the next tier down;
anything past the last breakpoint is ``Needs Focus`` and a missing value is
``Unknown``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

ELITE = "Elite"
GOOD = "Good"
FAIR = "Fair"
NEEDS_FOCUS = "Needs Focus"
UNKNOWN = "Unknown"

TIERS = (ELITE, GOOD, FAIR, NEEDS_FOCUS)

Breakpoint = Tuple[float, bool]


@dataclass(frozen=True)
class RatingTable:
    """Ordered breakpoints for one metric.

    Each breakpoint is ``(bound, inclusive)``. With ``higher_is_better`` the
    value must be above the bound (or equal when inclusive) to reach the tier;
    otherwise it must be below it.
    """

    name: str
    breakpoints: Tuple[Breakpoint, Breakpoint, Breakpoint]
    higher_is_better: bool = False

    def rate(self, value: Optional[float]) -> str:
        if value is None:
            return UNKNOWN

        for tier, (bound, inclusive) in zip(TIERS, self.breakpoints):
            if self.higher_is_better:
                reached = value >= bound if inclusive else value > bound
            else:
                reached = value <= bound if inclusive else value < bound
            if reached:
                return tier

        return NEEDS_FOCUS


PICKUP_TIME = RatingTable("pickup_time", ((2, False), (6, True), (16, True)))
APPROVE_TIME = RatingTable("approve_time", ((17, False), (24, True), (45, True)))
MERGE_TIME = RatingTable("merge_time", ((2, False), (5, True), (19, True)))
CYCLE_TIME = RatingTable("cycle_time", ((45, False), (95, True), (169, True)))
MERGE_FREQUENCY = RatingTable(
    "merge_frequency", ((1.6, False), (1.1, True), (0.6, True)), higher_is_better=True
)
DEPLOY_FREQUENCY = RatingTable(
    "deploy_frequency", ((0.9, False), (0.5, True), (0.2, True)), higher_is_better=True
)
PR_MATURITY = RatingTable(
    "pr_maturity", ((88, False), (81, True), (75, True)), higher_is_better=True
)

PR_SIZE_RATINGS: Dict[str, str] = {
    "s": ELITE,
    "m": GOOD,
    "l": FAIR,
    "xl": NEEDS_FOCUS,
}

RATING_EMOJI: Dict[str, str] = {
    ELITE: "⭐",
    GOOD: "✅",
    FAIR: "⚖️",
    NEEDS_FOCUS: "🎯",
}


def rate_pickup_time(hours: Optional[float]) -> str:
    return PICKUP_TIME.rate(hours)


def rate_approve_time(hours: Optional[float]) -> str:
    return APPROVE_TIME.rate(hours)


def rate_merge_time(hours: Optional[float]) -> str:
    return MERGE_TIME.rate(hours)


def rate_cycle_time(hours: Optional[float]) -> str:
    return CYCLE_TIME.rate(hours)


def rate_merge_frequency(per_dev_per_week: Optional[float]) -> str:
    return MERGE_FREQUENCY.rate(per_dev_per_week)


def rate_deploy_frequency(per_week: Optional[float]) -> str:
    return DEPLOY_FREQUENCY.rate(per_week)


def rate_pr_maturity(percentage: Optional[float]) -> str:
    return PR_MATURITY.rate(percentage)


def rate_pr_size(size: Optional[str]) -> str:
    """Rate a size tier (``s``/``m``/``l``/``xl``); anything else is ``Unknown``."""
    if size is None:
        return UNKNOWN
    return PR_SIZE_RATINGS.get(size.lower(), UNKNOWN)


def rating_emoji(rating: Optional[str]) -> str:
    if rating is None:
        return "❓"
    return RATING_EMOJI.get(rating, "❓")
