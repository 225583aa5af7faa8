"""GitHub REST API client supplying raw events to the metric calculators."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .errors import ApiError
from .models import (
    Commit,
    CommitDiff,
    CompareResult,
    Deployment,
    FileChange,
    PullRequest,
    ResolvedTag,
    Review,
    Tag,
    TimelineEvent,
)

logger = logging.getLogger(__name__)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitHubClient:
    """Small, typed client for the GitHub repository APIs used by the metrics.

    Public fetch methods never raise on API failures: they log a warning and
    return an empty list or ``None`` so that a missing data point degrades a
    single metric instead of the whole run.
    """

    _API_URL = "https://api.github.com"
    _API_VERSION = "2022-11-28"
    _PAGE_SIZE = 100
    _MAX_PR_COMMITS = 250
    _MAX_PR_FILES = 3000
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including owner/repo/token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self.owner = config.owner
        self.repo = config.repo
        self._timeout_seconds = timeout_seconds
        self._base_url = f"{self._API_URL}/repos/{config.owner}/{config.repo}"

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.token}",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the repository."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a GET request with retry logic for 429/5xx responses.

        Raises:
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return valid JSON.
        """
        url = self._build_url(path)
        query = dict(params or {})

        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=query, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"GitHub request failed after retries: GET {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, (dict, list)):
                raise ApiError(f"GitHub API returned unexpected payload shape: GET {url}")

            return payload

        raise ApiError(f"GitHub request failed after retries: GET {url}") from last_error

    def _get_paginated(
        self,
        path: str,
        limit: int,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Collect up to ``limit`` items from a list endpoint using page numbers."""
        items: List[Dict[str, Any]] = []
        page = 1

        while len(items) < limit:
            query: Dict[str, Any] = dict(params or {})
            query["per_page"] = min(self._PAGE_SIZE, limit)
            query["page"] = page

            payload = self._get_json(path, params=query)
            if not isinstance(payload, list):
                raise ApiError(f"GitHub API returned unexpected payload shape: GET {path}")

            items.extend(payload)
            if len(payload) < query["per_page"]:
                break
            page += 1

        return items[:limit]

    @staticmethod
    def _parse_commit(item: Dict[str, Any]) -> Commit:
        details = item.get("commit") or {}
        return Commit(
            sha=str(item.get("sha", "")),
            committed_at=parse_datetime((details.get("committer") or {}).get("date")),
            authored_at=parse_datetime((details.get("author") or {}).get("date")),
            parent_count=len(item.get("parents") or []),
            message=details.get("message") or "",
        )

    @staticmethod
    def _parse_file(item: Dict[str, Any]) -> FileChange:
        return FileChange(
            filename=str(item.get("filename", "")),
            additions=int(item.get("additions") or 0),
            deletions=int(item.get("deletions") or 0),
            status=str(item.get("status") or "modified"),
        )

    @staticmethod
    def _parse_pull_request(item: Dict[str, Any]) -> Optional[PullRequest]:
        number = item.get("number")
        created_at = parse_datetime(item.get("created_at"))
        if number is None or created_at is None:
            return None

        return PullRequest(
            number=int(number),
            author=(item.get("user") or {}).get("login", "ghost"),
            state=str(item.get("state") or ""),
            created_at=created_at,
            merged_at=parse_datetime(item.get("merged_at")),
            labels=[label["name"] for label in item.get("labels") or [] if label.get("name")],
        )

    def list_releases(self, max_count: int = 100) -> List[Deployment]:
        """List published (non-draft) releases, newest first."""
        try:
            payload = self._get_paginated("releases", limit=max_count)
        except ApiError as exc:
            logger.warning("Failed to fetch releases: %s", exc)
            return []

        releases: List[Deployment] = []
        for item in payload:
            tag_name = item.get("tag_name")
            if item.get("draft") or not tag_name:
                continue
            releases.append(
                Deployment(
                    name=item.get("name") or tag_name,
                    tag=tag_name,
                    created_at=parse_datetime(item.get("created_at")),
                )
            )

        releases.sort(
            key=lambda release: release.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return releases

    def list_tags(self, max_count: int = 100) -> List[Tag]:
        """List tags in the upstream (newest first) order."""
        try:
            payload = self._get_paginated("tags", limit=max_count)
        except ApiError as exc:
            logger.warning("Failed to fetch tags: %s", exc)
            return []

        return [
            Tag(name=str(item["name"]), sha=(item.get("commit") or {}).get("sha"))
            for item in payload
            if item.get("name")
        ]

    def resolve_tag(self, name: str) -> Optional[ResolvedTag]:
        """Dereference a tag to its commit SHA and timestamp.

        Annotated tags carry their own tagger date; lightweight tags point at a
        commit directly and use that commit's committer date.
        """
        try:
            ref = self._get_json(f"git/ref/tags/{name}")
            target = ref.get("object") or {}

            if target.get("type") == "tag":
                tag = self._get_json(f"git/tags/{target['sha']}")
                tagged = tag.get("object") or {}
                return ResolvedTag(
                    name=name,
                    sha=str(tagged.get("sha")),
                    created_at=parse_datetime((tag.get("tagger") or {}).get("date")),
                )

            commit = self._get_json(f"commits/{target['sha']}")
            details = commit.get("commit") or {}
            return ResolvedTag(
                name=name,
                sha=str(target["sha"]),
                created_at=parse_datetime((details.get("committer") or {}).get("date")),
            )
        except (ApiError, KeyError) as exc:
            logger.warning("Failed to resolve tag %s: %s", name, exc)
            return None

    def compare_commits(self, base_sha: str, head_sha: str) -> CompareResult:
        """List the commits reachable from ``head_sha`` but not from ``base_sha``."""
        try:
            payload = self._get_json(f"compare/{base_sha}...{head_sha}")
        except ApiError as exc:
            logger.warning("Compare failed (%s...%s): %s", base_sha, head_sha, exc)
            return CompareResult(commits=[], truncated=True)

        items = payload.get("commits") or []
        total = payload.get("total_commits", len(items))
        return CompareResult(
            commits=[self._parse_commit(item) for item in items],
            truncated=total > len(items),
        )

    def get_commit(self, sha: str) -> Optional[Commit]:
        try:
            payload = self._get_json(f"commits/{sha}")
        except ApiError as exc:
            logger.warning("Failed to get commit %s: %s", sha, exc)
            return None
        return self._parse_commit(payload)

    def get_pull_request(self, number: int) -> Optional[PullRequest]:
        try:
            payload = self._get_json(f"pulls/{number}")
        except ApiError as exc:
            logger.warning("Failed to get pull request #%s: %s", number, exc)
            return None
        return self._parse_pull_request(payload)

    def get_pull_request_commits(self, number: int) -> List[Commit]:
        """List the commits of a pull request in chronological order."""
        try:
            payload = self._get_paginated(f"pulls/{number}/commits", limit=self._MAX_PR_COMMITS)
        except ApiError as exc:
            logger.warning("Failed to get commits for pull request #%s: %s", number, exc)
            return []
        return [self._parse_commit(item) for item in payload]

    def get_pull_request_files(self, number: int) -> List[FileChange]:
        try:
            payload = self._get_paginated(f"pulls/{number}/files", limit=self._MAX_PR_FILES)
        except ApiError as exc:
            logger.warning("Failed to get files for pull request #%s: %s", number, exc)
            return []
        return [self._parse_file(item) for item in payload]

    def compare_commits_diff(self, base_sha: str, head_sha: str) -> Optional[CommitDiff]:
        """Return the per-file diff between two commits, or ``None`` on failure."""
        try:
            payload = self._get_json(f"compare/{base_sha}...{head_sha}")
        except ApiError as exc:
            logger.warning("Failed to compare commits %s...%s: %s", base_sha, head_sha, exc)
            return None
        return CommitDiff(files=[self._parse_file(item) for item in payload.get("files") or []])

    def list_pull_requests_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> List[PullRequest]:
        """List pull requests created within ``[start, end]``, newest first.

        Pages are requested sorted by creation date descending and paging stops
        once a page reaches pull requests older than ``start``.
        """
        pull_requests: List[PullRequest] = []
        page = 1

        while True:
            params: Dict[str, Any] = {
                "state": "all",
                "sort": "created",
                "direction": "desc",
                "per_page": self._PAGE_SIZE,
                "page": page,
            }
            try:
                payload = self._get_json("pulls", params=params)
            except ApiError as exc:
                logger.warning("Failed to list pull requests: %s", exc)
                break

            reached_start = False
            for item in payload:
                pr = self._parse_pull_request(item)
                if pr is None:
                    continue
                if pr.created_at < start:
                    reached_start = True
                    break
                if pr.created_at <= end:
                    pull_requests.append(pr)

            if reached_start or len(payload) < self._PAGE_SIZE:
                break
            page += 1

        return pull_requests

    def get_pull_request_reviews(self, number: int) -> List[Review]:
        try:
            payload = self._get_paginated(f"pulls/{number}/reviews", limit=self._MAX_PR_COMMITS)
        except ApiError as exc:
            logger.warning("Failed to get reviews for pull request #%s: %s", number, exc)
            return []
        return [
            Review(state=str(item.get("state") or ""), submitted_at=parse_datetime(item.get("submitted_at")))
            for item in payload
        ]

    def get_pull_request_timeline(self, number: int) -> List[TimelineEvent]:
        try:
            payload = self._get_paginated(f"issues/{number}/timeline", limit=self._MAX_PR_FILES)
        except ApiError as exc:
            logger.warning("Failed to get timeline for pull request #%s: %s", number, exc)
            return []

        events: List[TimelineEvent] = []
        for item in payload:
            event = str(item.get("event") or "")
            source = item
            # line comments carry their timestamp and author on the nested comments
            if event == "line-commented" and item.get("comments"):
                source = item["comments"][0]

            actor = source.get("user") or item.get("user") or item.get("actor") or {}
            created_at = (
                source.get("created_at")
                or item.get("created_at")
                or item.get("submitted_at")
            )
            events.append(
                TimelineEvent(
                    event=event,
                    created_at=parse_datetime(created_at),
                    actor_type=actor.get("type"),
                )
            )
        return events
