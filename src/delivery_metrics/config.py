"""Configuration parsing and validation for the delivery metrics engine."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import AuthenticationError, ConfigurationError

TIME_PERIODS = ("weekly", "fortnightly", "monthly")
DEFAULT_OUTPUT_PATH = "metrics/delivery_metrics.json"

_REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class MetricsOptions:
    """Read-only knobs threaded through every calculator."""

    include_merge_commits: bool = False
    max_releases: int = 100
    max_tags: int = 100
    files_to_ignore: Tuple[str, ...] = ()
    ignore_line_deletions: bool = False
    ignore_file_deletions: bool = False
    time_period: str = "weekly"
    size_thresholds: Tuple[int, int, int] = (100, 250, 500)


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics generator."""

    owner: str
    repo: str
    token: str
    output_path: str = DEFAULT_OUTPUT_PATH
    pr_number: Optional[int] = None
    enable_deployment_frequency: bool = False
    enable_lead_time: bool = False
    enable_pr_size: bool = False
    enable_pr_maturity: bool = False
    enable_team_metrics: bool = False
    options: MetricsOptions = MetricsOptions()

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def needs_delivery_metrics(self) -> bool:
        return self.enable_deployment_frequency or self.enable_lead_time

    @property
    def needs_devex_metrics(self) -> bool:
        return self.enable_pr_size or self.enable_pr_maturity


def parse_file_patterns(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated glob list, dropping blank entries."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def sanitize_output_path(path: str) -> str:
    """Normalize an output path and reject directory traversal.

    Raises:
        ConfigurationError: If the normalized path still contains ``..``.
    """
    normalized = os.path.normpath(path)
    if ".." in normalized.split(os.sep):
        raise ConfigurationError(f"Invalid output path: {path}")
    return normalized


def load_config(
    repository: str,
    *,
    pr_number: Optional[int] = None,
    output_path: str = DEFAULT_OUTPUT_PATH,
    enable_deployment_frequency: bool = False,
    enable_lead_time: bool = False,
    enable_pr_size: bool = False,
    enable_pr_maturity: bool = False,
    enable_team_metrics: bool = False,
    include_merge_commits: bool = False,
    max_releases: int = 100,
    max_tags: int = 100,
    files_to_ignore: Sequence[str] = (),
    ignore_line_deletions: bool = False,
    ignore_file_deletions: bool = False,
    time_period: str = "weekly",
    size_thresholds: Tuple[int, int, int] = (100, 250, 500),
) -> Config:
    """Build and validate application configuration.

    Args:
        repository: Repository slug in ``owner/name`` form.
        pr_number: Pull request to analyze for PR size and maturity.
        output_path: Where the JSON metrics document is written.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If the repository slug, limits, time period or
            metric selection are invalid.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    if not _REPOSITORY_PATTERN.match(repository.strip()):
        raise ConfigurationError(
            f"Invalid value for 'repository': expected 'owner/name', got '{repository}'."
        )
    owner, repo = repository.strip().split("/", 1)

    if max_releases <= 0 or max_tags <= 0:
        raise ConfigurationError(
            "Invalid value for 'max-releases'/'max-tags': expected an integer greater than 0."
        )

    if time_period not in TIME_PERIODS:
        raise ConfigurationError(
            f"Invalid value for 'time-period': expected one of {', '.join(TIME_PERIODS)}."
        )

    medium, large, extra_large = size_thresholds
    if not 0 < medium < large < extra_large:
        raise ConfigurationError(
            "Invalid PR size thresholds: expected 0 < medium < large < extra-large."
        )

    if not any(
        (
            enable_deployment_frequency,
            enable_lead_time,
            enable_pr_size,
            enable_pr_maturity,
            enable_team_metrics,
        )
    ):
        raise ConfigurationError(
            "At least one metric must be enabled "
            "(deployment-frequency, lead-time, pr-size, pr-maturity or team-metrics)."
        )

    if (enable_pr_size or enable_pr_maturity) and pr_number is None:
        raise ConfigurationError("PR size and PR maturity metrics require a pull request number.")

    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable before running the metrics generator."
        )

    options = MetricsOptions(
        include_merge_commits=include_merge_commits,
        max_releases=max_releases,
        max_tags=max_tags,
        files_to_ignore=tuple(files_to_ignore),
        ignore_line_deletions=ignore_line_deletions,
        ignore_file_deletions=ignore_file_deletions,
        time_period=time_period,
        size_thresholds=(medium, large, extra_large),
    )

    return Config(
        owner=owner,
        repo=repo,
        token=token,
        output_path=sanitize_output_path(output_path),
        pr_number=pr_number,
        enable_deployment_frequency=enable_deployment_frequency,
        enable_lead_time=enable_lead_time,
        enable_pr_size=enable_pr_size,
        enable_pr_maturity=enable_pr_maturity,
        enable_team_metrics=enable_team_metrics,
        options=options,
    )
