"""Domain models for GitHub delivery and developer-experience metrics.

The input records intentionally model only the subset of GitHub payload fields
that the calculators need. Result records are created fresh for every
computation and are never mutated after being returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(slots=True)
class Deployment:
    """A production deployment backed by a release or, as a fallback, a tag."""

    name: str
    tag: str
    sha: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.sha) and self.created_at is not None


@dataclass(slots=True)
class Tag:
    """Represents a tag as listed by the repository tags endpoint."""

    name: str
    sha: Optional[str] = None


@dataclass(slots=True)
class ResolvedTag:
    """A tag dereferenced to the commit it points at."""

    name: str
    sha: str
    created_at: Optional[datetime]


@dataclass(slots=True)
class DeploymentSource:
    """The deployment timeline chosen by the resolver."""

    source: str
    latest: Deployment
    previous: Optional[Deployment]
    deployments: List[Deployment] = field(default_factory=list)


@dataclass(slots=True)
class Commit:
    """Represents the minimal commit data required for timing calculations."""

    sha: str
    committed_at: Optional[datetime] = None
    authored_at: Optional[datetime] = None
    parent_count: int = 1
    message: str = ""

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1

    @property
    def date(self) -> Optional[datetime]:
        """Committer date when present, otherwise the author date."""
        return self.committed_at or self.authored_at


@dataclass(slots=True)
class CompareResult:
    """Commits between two refs as returned by the compare endpoint."""

    commits: List[Commit]
    truncated: bool = False


@dataclass(slots=True)
class FileChange:
    """Per-file line counts for a pull request or a commit comparison."""

    filename: str
    additions: int = 0
    deletions: int = 0
    status: str = "modified"


@dataclass(slots=True)
class CommitDiff:
    """File-level diff between two commits."""

    files: List[FileChange]


@dataclass(slots=True)
class PullRequest:
    """Represents the pull request fields used by DevEx and team metrics."""

    number: int
    author: str
    state: str
    created_at: datetime
    merged_at: Optional[datetime] = None
    labels: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Review:
    """Represents a submitted pull request review."""

    state: str
    submitted_at: Optional[datetime]


@dataclass(slots=True)
class TimelineEvent:
    """Represents one issue timeline event of a pull request."""

    event: str
    created_at: Optional[datetime]
    actor_type: Optional[str] = None


@dataclass(slots=True)
class CycleTimeResult:
    """Lead time for change of the commits shipped by one deployment, in hours."""

    commit_count: int
    avg_hours: Optional[float]
    oldest_hours: Optional[float]
    newest_hours: Optional[float]
    oldest_commit_sha: Optional[str]
    newest_commit_sha: Optional[str]
    newest_excludes_merges: bool


@dataclass(slots=True)
class DeployFrequencyResult:
    """Deployment count over the fetched window and its weekly rate."""

    deploy_count: int
    deploys_per_week: Optional[float]


@dataclass(slots=True)
class PRMaturityResult:
    """Share of a pull request's final diff that was stable before review churn."""

    maturity_ratio: Optional[float]
    maturity_percentage: Optional[int]
    total_commits: int = 0
    total_changes: int = 0
    changes_after_publication: int = 0
    stable_changes: int = 0
    first_commit_sha: Optional[str] = None
    last_commit_sha: Optional[str] = None
    baseline_commit_sha: Optional[str] = None
    first_significant_commit_sha: Optional[str] = None
    commits_after_publication: int = 0
    pr_created_at: Optional[datetime] = None
    reason: Optional[str] = None
    error: Optional[str] = None


@dataclass(slots=True)
class SizeDetails:
    """Line and file totals behind a PR size classification."""

    total_additions: int
    total_deletions: int
    total_changes: int
    files_changed: int


@dataclass(slots=True)
class PRSizeResult:
    """Size tier of a pull request."""

    size: str
    category: str
    rating: str
    details: SizeDetails
    error: Optional[str] = None


@dataclass(slots=True)
class PRReviewMetrics:
    """Review-flow timings of a single pull request, in hours."""

    pr_number: int
    author: str
    state: str
    merged: bool
    created_at: datetime
    merged_at: Optional[datetime]
    pickup_time_hours: Optional[float]
    approve_time_hours: Optional[float]
    merge_time_hours: Optional[float]
    pr_size: Optional[str]


@dataclass(slots=True)
class TimingSummary:
    """Average and percentile view of one review timing across a period."""

    average_hours: Optional[float]
    rating: Optional[str]
    sample_size: int
    p50: Optional[float] = None
    p75: Optional[float] = None
    p90: Optional[float] = None


@dataclass(slots=True)
class MergeFrequency:
    """Merged pull requests per developer per week."""

    value: float
    rating: str
    merged_prs: int
    total_prs: int
    unique_authors: int


@dataclass(slots=True)
class SizeDistribution:
    """Percentage of pull requests in each size tier."""

    small_percent: int
    medium_percent: int
    large_percent: int
    xl_percent: int
    unknown_percent: int
    predominant_size: str
    predominant_rating: str
    predominant_percent: int


@dataclass(slots=True)
class TeamMetrics:
    """Period-level aggregate of review-flow metrics."""

    period: str
    start: datetime
    end: datetime
    total_prs: int = 0
    analyzed_prs: int = 0
    unique_authors: int = 0
    pickup_time: Optional[TimingSummary] = None
    approve_time: Optional[TimingSummary] = None
    merge_time: Optional[TimingSummary] = None
    merge_frequency: Optional[MergeFrequency] = None
    size_distribution: Optional[SizeDistribution] = None
    cycle_time_rating: Optional[str] = None
    deploy_frequency_rating: Optional[str] = None
    error: Optional[str] = None


@dataclass(slots=True)
class DeliveryMetrics:
    """Deployment-level metrics for a repository."""

    source: Optional[str] = None
    latest: Optional[Deployment] = None
    previous: Optional[Deployment] = None
    deploy_frequency: Optional[DeployFrequencyResult] = None
    cycle_time: Optional[CycleTimeResult] = None
    error: Optional[str] = None


@dataclass(slots=True)
class DevExMetrics:
    """Pull-request level developer-experience metrics."""

    pr_number: int
    pr_size: Optional[PRSizeResult] = None
    pr_maturity: Optional[PRMaturityResult] = None
