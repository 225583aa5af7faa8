"""Lead time for change between a commit and the deployment that shipped it.

Business logic:
- The commits of a deployment are those after the previous deployment up to and
  including the latest one; with no previous deployment only the tagged commit
  counts.
- Each commit's age is measured from its committer date (author date as a
  fallback) to the deployment timestamp, in hours.
- Average and oldest ages include merge commits. The newest age skips merge
  commits unless configured otherwise, falling back to all commits when every
  commit is a merge.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .errors import UnresolvedDeploymentError
from .github_client import GitHubClient
from .models import Commit, CycleTimeResult, Deployment
from .stats import hours_between

logger = logging.getLogger(__name__)


def compute_cycle_time(
    deployed_at: datetime,
    commits: Sequence[Commit],
    include_merge_commits: bool = False,
) -> CycleTimeResult:
    """Aggregate commit ages relative to a deployment timestamp.

    Commits with neither a committer nor an author date are skipped. Negative
    ages (commits dated after the deployment) are kept as they are.
    """
    aged: List[Tuple[Commit, float]] = [
        (commit, hours_between(deployed_at, commit.date))
        for commit in commits
        if commit.date is not None
    ]

    if not aged:
        return CycleTimeResult(
            commit_count=0,
            avg_hours=None,
            oldest_hours=None,
            newest_hours=None,
            oldest_commit_sha=None,
            newest_commit_sha=None,
            newest_excludes_merges=not include_merge_commits,
        )

    ages = [age for _, age in aged]
    oldest_commit, oldest_age = max(aged, key=lambda item: item[1])

    candidates = aged
    if not include_merge_commits:
        candidates = [item for item in aged if not item[0].is_merge]
    if not candidates:
        # every dated commit is a merge
        candidates = aged
    newest_commit, newest_age = min(candidates, key=lambda item: item[1])

    return CycleTimeResult(
        commit_count=len(aged),
        avg_hours=round(sum(ages) / len(ages), 2),
        oldest_hours=round(oldest_age, 2),
        newest_hours=round(newest_age, 2),
        oldest_commit_sha=oldest_commit.sha,
        newest_commit_sha=newest_commit.sha,
        newest_excludes_merges=not include_merge_commits,
    )


def collect_deployment_commits(
    client: GitHubClient,
    latest: Deployment,
    previous: Optional[Deployment],
) -> List[Commit]:
    """Fetch the commits shipped by ``latest``."""
    if previous is not None and previous.sha:
        comparison = client.compare_commits(previous.sha, latest.sha)
        if comparison.truncated:
            logger.warning(
                "Commit comparison was truncated; cycle time covers a partial commit set",
                extra={"base": previous.sha, "head": latest.sha, "commits": len(comparison.commits)},
            )
        return list(comparison.commits)

    commit = client.get_commit(latest.sha)
    return [commit] if commit is not None else []


def calculate_cycle_time(
    client: GitHubClient,
    latest: Deployment,
    previous: Optional[Deployment],
    include_merge_commits: bool = False,
) -> CycleTimeResult:
    """Compute the lead time for change of the latest deployment.

    Raises:
        UnresolvedDeploymentError: If ``latest`` has no commit SHA or timestamp.
    """
    if not latest.is_resolved:
        raise UnresolvedDeploymentError(
            f"Could not resolve SHA or created_at for deployment '{latest.tag}'"
        )

    commits = collect_deployment_commits(client, latest, previous)
    result = compute_cycle_time(latest.created_at, commits, include_merge_commits)

    logger.debug(
        "Computed cycle time",
        extra={"deployment": latest.tag, "commit_count": result.commit_count},
    )
    return result
