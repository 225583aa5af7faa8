"""PR maturity: how much of a pull request's diff survived review unchanged.

The pull request is considered "published" at its creation time. Commits
within a five minute grace period of publication, or authored before it, are
part of the initial submission. The first commit after the grace period marks
the start of review churn; the diff from the commit before it to the final
commit is the churned share of the change.

Branches are evaluated in the order of ``DECISION_TABLE``; the first guard that
matches produces the result. Only when none matches is the baseline diff
requested.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from .config import MetricsOptions
from .github_client import GitHubClient
from .models import Commit, CommitDiff, FileChange, PRMaturityResult, SizeDetails
from .pr_size import calculate_size_details, filter_files
from .stats import round_half_up

logger = logging.getLogger(__name__)

GRACE_PERIOD = timedelta(minutes=5)

REASON_SINGLE_COMMIT = "Single commit PR"
REASON_GRACE_PERIOD = "All commits within grace period or pre-existing"
REASON_NO_SIGNIFICANT = "No significant commits after PR publication"
REASON_CALCULATED = "Calculated based on meaningful commits after publication"

ERROR_NO_DETAILS = "Could not fetch PR details"
ERROR_NO_COMMITS = "No commits found in PR"
ERROR_NO_DIFF = "Could not compare commits for maturity analysis"

DiffFetcher = Callable[[str, str], Optional[CommitDiff]]


@dataclass(frozen=True)
class MaturityInputs:
    """Snapshot of everything the decision table looks at."""

    pr_created_at: Optional[datetime]
    commits: Sequence[Commit]
    size: SizeDetails


def _commit_time(commit: Commit) -> Optional[datetime]:
    return commit.authored_at or commit.committed_at


def is_within_grace(commit: Commit, pr_created_at: datetime) -> bool:
    commit_time = _commit_time(commit)
    if commit_time is None:
        return False
    return abs(commit_time - pr_created_at) <= GRACE_PERIOD or commit_time <= pr_created_at


def is_significant(commit: Commit, pr_created_at: datetime) -> bool:
    commit_time = _commit_time(commit)
    if commit_time is None:
        return False
    return commit_time - pr_created_at > GRACE_PERIOD


def _details_missing(inputs: MaturityInputs) -> bool:
    return inputs.pr_created_at is None


def _commits_missing(inputs: MaturityInputs) -> bool:
    return not inputs.commits


def _is_single_commit(inputs: MaturityInputs) -> bool:
    return len(inputs.commits) == 1


def _all_within_grace(inputs: MaturityInputs) -> bool:
    return all(is_within_grace(commit, inputs.pr_created_at) for commit in inputs.commits)


def _no_significant_commits(inputs: MaturityInputs) -> bool:
    return not any(is_significant(commit, inputs.pr_created_at) for commit in inputs.commits)


def _error(message: str) -> Callable[[MaturityInputs], PRMaturityResult]:
    def build(inputs: MaturityInputs) -> PRMaturityResult:
        return PRMaturityResult(maturity_ratio=None, maturity_percentage=None, error=message)

    return build


def _fully_mature(reason: str) -> Callable[[MaturityInputs], PRMaturityResult]:
    def build(inputs: MaturityInputs) -> PRMaturityResult:
        return PRMaturityResult(
            maturity_ratio=1.0,
            maturity_percentage=100,
            total_commits=len(inputs.commits),
            total_changes=inputs.size.total_changes,
            changes_after_publication=0,
            stable_changes=inputs.size.total_changes,
            first_commit_sha=inputs.commits[0].sha,
            last_commit_sha=inputs.commits[-1].sha,
            pr_created_at=inputs.pr_created_at,
            reason=reason,
        )

    return build


DECISION_TABLE: Tuple[
    Tuple[Callable[[MaturityInputs], bool], Callable[[MaturityInputs], PRMaturityResult]], ...
] = (
    (_details_missing, _error(ERROR_NO_DETAILS)),
    (_commits_missing, _error(ERROR_NO_COMMITS)),
    (_is_single_commit, _fully_mature(REASON_SINGLE_COMMIT)),
    (_all_within_grace, _fully_mature(REASON_GRACE_PERIOD)),
    (_no_significant_commits, _fully_mature(REASON_NO_SIGNIFICANT)),
)


def decide(inputs: MaturityInputs) -> Optional[PRMaturityResult]:
    """Return the result of the first matching short-circuit branch, if any."""
    for applies, build in DECISION_TABLE:
        if applies(inputs):
            return build(inputs)
    return None


def select_baseline(commits: Sequence[Commit], pr_created_at: datetime) -> Tuple[Commit, Commit]:
    """Return ``(baseline, first_significant)``.

    The baseline is the commit right before the first significant one, or the
    first commit when the first significant commit opens the list.
    """
    index = next(i for i, commit in enumerate(commits) if is_significant(commit, pr_created_at))
    baseline = commits[index - 1] if index > 0 else commits[0]
    return baseline, commits[index]


def diff_size(files: Sequence[FileChange]) -> int:
    """Unfiltered additions plus deletions across a diff."""
    return sum(file.additions + file.deletions for file in files)


def evaluate_pr_maturity(
    pr_created_at: Optional[datetime],
    commits: Sequence[Commit],
    files: Sequence[FileChange],
    fetch_diff: DiffFetcher,
    options: MetricsOptions,
) -> PRMaturityResult:
    """Classify a pull request's maturity from already fetched snapshots.

    ``files`` is the full file list of the pull request and is filtered with
    ``options`` to obtain the total. ``fetch_diff`` is only called in the
    general case, after the baseline commit is known.
    """
    size = calculate_size_details(filter_files(files, options), options)
    inputs = MaturityInputs(pr_created_at=pr_created_at, commits=commits, size=size)

    decided = decide(inputs)
    if decided is not None:
        logger.debug(
            "PR maturity short-circuited",
            extra={"reason": decided.reason, "error": decided.error},
        )
        return decided

    significant: List[Commit] = [c for c in commits if is_significant(c, pr_created_at)]
    baseline, first_significant = select_baseline(commits, pr_created_at)
    last_commit = commits[-1]

    diff = fetch_diff(baseline.sha, last_commit.sha)
    if diff is None:
        return PRMaturityResult(maturity_ratio=None, maturity_percentage=None, error=ERROR_NO_DIFF)

    changes_after_publication = diff_size(diff.files)
    total_changes = size.total_changes
    # total is filtered, the post-publication diff is not
    stable_changes = max(0, total_changes - changes_after_publication)
    maturity_ratio = stable_changes / total_changes if total_changes > 0 else 1.0

    return PRMaturityResult(
        maturity_ratio=round_half_up(maturity_ratio, 3),
        maturity_percentage=int(round_half_up(maturity_ratio * 100)),
        total_commits=len(commits),
        total_changes=total_changes,
        changes_after_publication=changes_after_publication,
        stable_changes=stable_changes,
        first_commit_sha=commits[0].sha,
        last_commit_sha=last_commit.sha,
        baseline_commit_sha=baseline.sha,
        first_significant_commit_sha=first_significant.sha,
        commits_after_publication=len(significant),
        pr_created_at=pr_created_at,
        reason=REASON_CALCULATED,
    )


def calculate_pr_maturity(
    client: GitHubClient,
    pr_number: int,
    options: MetricsOptions,
) -> PRMaturityResult:
    """Fetch a pull request's details, commits and files, then evaluate maturity.

    The three fetches are independent and run concurrently. Errors never leave
    this function; they are reported on the result instead.
    """
    try:
        with ThreadPoolExecutor(max_workers=3) as executor:
            pr_future = executor.submit(client.get_pull_request, pr_number)
            commits_future = executor.submit(client.get_pull_request_commits, pr_number)
            files_future = executor.submit(client.get_pull_request_files, pr_number)
            pr = pr_future.result()
            commits = commits_future.result()
            files = files_future.result()

        result = evaluate_pr_maturity(
            pr_created_at=pr.created_at if pr is not None else None,
            commits=commits or [],
            files=files or [],
            fetch_diff=client.compare_commits_diff,
            options=options,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error calculating PR maturity", extra={"pr_number": pr_number})
        return PRMaturityResult(maturity_ratio=None, maturity_percentage=None, error=str(exc))

    logger.info(
        "Calculated PR maturity",
        extra={
            "pr_number": pr_number,
            "maturity_percentage": result.maturity_percentage,
            "reason": result.reason,
        },
    )
    return result
