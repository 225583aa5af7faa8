"""Command-line argument parsing for the GitHub delivery metrics generator."""

from __future__ import annotations

import argparse

from .config import DEFAULT_OUTPUT_PATH, TIME_PERIODS


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for metrics generation.

    Returns:
        Parsed CLI arguments: the repository, the metric families to collect
        and the options threaded through the calculators.
    """
    parser = argparse.ArgumentParser(
        prog="github-delivery-metrics",
        description=(
            "Compute delivery (deploy frequency, lead time) and developer-experience "
            "(PR size, PR maturity, review flow) metrics for a GitHub repository."
        ),
    )

    parser.add_argument(
        "--repo",
        required=True,
        help="GitHub repository in owner/name form.",
    )
    parser.add_argument(
        "--pr-number",
        type=_positive_int,
        default=None,
        help="Pull request number analyzed by --pr-size and --pr-maturity.",
    )

    metrics = parser.add_argument_group("metrics")
    metrics.add_argument(
        "--deployment-frequency",
        action="store_true",
        help="Compute deploys per week over the fetched releases/tags.",
    )
    metrics.add_argument(
        "--lead-time",
        action="store_true",
        help="Compute lead time for change of the latest deployment.",
    )
    metrics.add_argument("--pr-size", action="store_true", help="Classify the pull request size.")
    metrics.add_argument("--pr-maturity", action="store_true", help="Compute the pull request maturity.")
    metrics.add_argument(
        "--team-metrics",
        action="store_true",
        help="Aggregate review-flow metrics of the pull requests in --time-period.",
    )

    parser.add_argument(
        "--include-merge-commits",
        action="store_true",
        help="Allow merge commits to be the newest commit in lead time.",
    )
    parser.add_argument(
        "--max-releases",
        type=_positive_int,
        default=100,
        help="Maximum number of releases to fetch (default: 100).",
    )
    parser.add_argument(
        "--max-tags",
        type=_positive_int,
        default=100,
        help="Maximum number of tags to fetch (default: 100).",
    )
    parser.add_argument(
        "--files-to-ignore",
        default="",
        help="Comma separated glob patterns excluded from PR size and maturity totals.",
    )
    parser.add_argument(
        "--ignore-line-deletions",
        action="store_true",
        help="Count only added lines in PR totals.",
    )
    parser.add_argument(
        "--ignore-file-deletions",
        action="store_true",
        help="Exclude removed files from PR totals.",
    )
    parser.add_argument(
        "--time-period",
        choices=TIME_PERIODS,
        default="weekly",
        help="Window of pull requests for --team-metrics (default: weekly).",
    )
    parser.add_argument(
        "--output-path",
        default=DEFAULT_OUTPUT_PATH,
        help=f"Where the JSON metrics document is written (default: {DEFAULT_OUTPUT_PATH}).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: INFO).",
    )

    return parser.parse_args()
