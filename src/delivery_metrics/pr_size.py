"""Pull request size classification."""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from typing import Iterable, List

from .config import MetricsOptions
from .github_client import GitHubClient
from .models import FileChange, PRSizeResult, SizeDetails
from .ratings import UNKNOWN, rate_pr_size

logger = logging.getLogger(__name__)

UNKNOWN_SIZE = "unknown"
ERROR_NO_FILES = "Could not fetch PR files"


def filter_files(files: Iterable[FileChange], options: MetricsOptions) -> List[FileChange]:
    """Drop removed files and files matching the configured ignore globs.

    Patterns match the whole file name; ``*`` matches any run of characters,
    including path separators, and ``?`` matches exactly one.
    """
    kept: List[FileChange] = []
    for file in files:
        if options.ignore_file_deletions and file.status == "removed":
            continue
        if any(fnmatchcase(file.filename, pattern) for pattern in options.files_to_ignore):
            continue
        kept.append(file)
    return kept


def calculate_size_details(files: List[FileChange], options: MetricsOptions) -> SizeDetails:
    """Sum additions and, unless ignored, deletions of already filtered files."""
    total_additions = sum(file.additions for file in files)
    total_deletions = 0 if options.ignore_line_deletions else sum(file.deletions for file in files)

    return SizeDetails(
        total_additions=total_additions,
        total_deletions=total_deletions,
        total_changes=total_additions + total_deletions,
        files_changed=len(files),
    )


def size_tier(total_changes: int, options: MetricsOptions) -> str:
    medium, large, extra_large = options.size_thresholds
    if total_changes < medium:
        return "s"
    if total_changes < large:
        return "m"
    if total_changes < extra_large:
        return "l"
    return "xl"


def classify_pr_size(files: Iterable[FileChange], options: MetricsOptions) -> PRSizeResult:
    """Bucket the filtered line changes of a pull request into a size tier."""
    details = calculate_size_details(filter_files(files, options), options)
    size = size_tier(details.total_changes, options)

    return PRSizeResult(
        size=size,
        category=f"size/{size}",
        rating=rate_pr_size(size),
        details=details,
    )


def calculate_pr_size(client: GitHubClient, pr_number: int, options: MetricsOptions) -> PRSizeResult:
    """Fetch and classify the files of a pull request.

    An empty file list means the files could not be fetched; the result is
    then rated ``Unknown`` and carries ``error``.
    """
    files = client.get_pull_request_files(pr_number)
    if not files:
        logger.warning("No files found for PR #%s; size is unknown", pr_number, extra={"pr_number": pr_number})
        return PRSizeResult(
            size=UNKNOWN_SIZE,
            category=f"size/{UNKNOWN_SIZE}",
            rating=UNKNOWN,
            details=calculate_size_details([], options),
            error=ERROR_NO_FILES,
        )

    result = classify_pr_size(files, options)

    logger.info(
        "Classified PR size",
        extra={
            "pr_number": pr_number,
            "size": result.size,
            "total_changes": result.details.total_changes,
        },
    )
    return result
