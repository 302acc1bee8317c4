"""
GitHub API client infrastructure for repotimeline.

Provides the two hosting-API calls the ingester needs:
- list_branches(owner, name) -> branch names and head hashes
- list_commits(owner, name, ref, limit) -> a bounded window of commits

Access goes through the `gh` CLI when it is installed and authenticated,
with fallback to requests with a token. Rate limiting is handled with
exponential backoff; any other failure raises UpstreamUnavailable.
"""

import subprocess
import json
import os
import time
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from urllib.parse import quote, urlencode

import requests

from ..exit_codes import UpstreamUnavailable
from ..utils import parse_timestamp

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# GitHub caps per_page at 100
MAX_PAGE_SIZE = 100


@dataclass
class RateLimitStatus:
    """GitHub API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def reset_datetime(self) -> datetime:
        """Get reset time as datetime."""
        return datetime.fromtimestamp(self.reset_time)

    @property
    def minutes_until_reset(self) -> int:
        """Minutes until rate limit resets."""
        now = int(time.time())
        return max(0, (self.reset_time - now) // 60)

    @property
    def is_low(self) -> bool:
        """Check if rate limit is getting low (< 100 remaining)."""
        return self.remaining < 100


@dataclass(frozen=True)
class GitHubBranch:
    """A branch as reported by the branches endpoint."""
    name: str
    head_hash: str

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubBranch':
        """Create from GitHub API response."""
        commit = data.get('commit') or {}
        name = data.get('name')
        sha = commit.get('sha') if isinstance(commit, dict) else None
        if not name or not sha:
            raise ValueError(f"Branch entry missing name or head sha: {data!r}")
        return cls(name=name, head_hash=sha)


@dataclass(frozen=True)
class GitHubCommit:
    """A commit as reported by the commits endpoint."""
    hash: str
    author_name: str
    message: str
    authored_at: datetime
    parent_hashes: Tuple[str, ...]

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubCommit':
        """
        Create from GitHub API response.

        Raises:
            ValueError: if the entry has no sha, no usable date or malformed parents
        """
        if not isinstance(data, dict):
            raise ValueError(f"Commit entry must be an object, got {type(data).__name__}")
        sha = data.get('sha')
        if not sha:
            raise ValueError("Commit entry missing sha")

        commit = data.get('commit') or {}
        author = commit.get('author') or {}
        committer = commit.get('committer') or {}
        date = author.get('date') or committer.get('date')
        authored_at = parse_timestamp(date)
        if authored_at is None:
            raise ValueError(f"Commit {sha[:8]} has no author date")

        parents = data.get('parents') or []
        if not isinstance(parents, list) or not all(isinstance(p, dict) for p in parents):
            raise ValueError(f"Commit {sha[:8]} has malformed parents")

        return cls(
            hash=sha,
            author_name=author.get('name') or '',
            message=commit.get('message') or '',
            authored_at=authored_at,
            parent_hashes=tuple(p['sha'] for p in parents if p.get('sha')),
        )


class GitHubClient:
    """
    GitHub API client with rate limiting.

    Uses `gh` CLI for authentication when available,
    with fallback to direct API calls with token.

    Example:
        client = GitHubClient()
        for branch in client.list_branches("owner", "repo"):
            commits = client.list_commits("owner", "repo", branch.name, limit=50)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30,
        api_url: str = GITHUB_API_URL,
        use_gh_cli: Optional[bool] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token (defaults to REPOTIMELINE_GITHUB_TOKEN or GITHUB_TOKEN env var)
            max_retries: Maximum retry attempts for rate-limited requests
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            timeout: HTTP request timeout in seconds
            api_url: API base URL (GitHub Enterprise installs differ)
            use_gh_cli: Force the gh CLI on or off; None auto-detects
            session: requests session to use (tests inject one)
        """
        self.token = token or os.environ.get('REPOTIMELINE_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self.api_url = api_url.rstrip('/')
        self._use_gh_cli = self._check_gh_cli() if use_gh_cli is None else use_gh_cli
        self._rate_limit_status: Optional[RateLimitStatus] = None

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'repotimeline',
        })
        if self.token:
            self.session.headers['Authorization'] = f'token {self.token}'

    @classmethod
    def from_config(cls, config: Dict[str, Any], token: Optional[str] = None) -> 'GitHubClient':
        """Build a client from the ``github`` config section."""
        section = config.get('github', {})
        rate = section.get('rate_limit', {})
        return cls(
            token=token or section.get('token') or None,
            max_retries=rate.get('max_retries', 3),
            max_delay=rate.get('max_delay_seconds', 60),
            timeout=section.get('timeout_seconds', 30),
            api_url=section.get('api_url') or GITHUB_API_URL,
            use_gh_cli=None if section.get('use_gh_cli', True) else False,
        )

    def _update_rate_limit_from_headers(self, headers) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used
            )

            if self._rate_limit_status.is_low:
                logger.warning(
                    f"GitHub API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
        """
        Get the rate limit status seen on the last API response.

        Returns:
            RateLimitStatus or None if no request has been made yet
        """
        return self._rate_limit_status

    def _check_gh_cli(self) -> bool:
        """Check if gh CLI is available and authenticated."""
        try:
            result = subprocess.run(
                ['gh', 'auth', 'status'],
                capture_output=True,
                text=True,
                timeout=10
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def _gh_api(self, endpoint: str) -> Optional[Any]:
        """Call GitHub API using gh CLI. Returns None so the caller can fall back."""
        try:
            result = subprocess.run(
                ['gh', 'api', endpoint],
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
            if result.returncode == 0 and result.stdout:
                return json.loads(result.stdout)
            logger.debug(f"gh api {endpoint} exited {result.returncode}: {result.stderr.strip()}")
            return None
        except (subprocess.TimeoutExpired, json.JSONDecodeError, FileNotFoundError) as e:
            logger.debug(f"gh api call failed for {endpoint}: {e}")
            return None

    def _requests_api(self, endpoint: str) -> Any:
        """
        Call GitHub API using requests.

        Raises:
            UpstreamUnavailable: on any non-200 outcome once retries are spent
        """
        url = f"{self.api_url}/{endpoint}"
        last_error = "no attempt made"
        status_code = None

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = str(e)
                logger.warning(f"GitHub API request failed: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(self._backoff(attempt))
                continue

            self._update_rate_limit_from_headers(response.headers)
            status_code = response.status_code

            if status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise UpstreamUnavailable(
                        f"GitHub returned invalid JSON for {endpoint}: {e}", status_code
                    ) from e

            if status_code in (403, 429) and attempt < self.max_retries - 1:
                # Rate limited
                reset_time = response.headers.get('X-RateLimit-Reset')
                wait_time = self._backoff(attempt)
                if reset_time and str(reset_time).isdigit():
                    until_reset = int(reset_time) - int(time.time())
                    if 0 < until_reset < self.max_delay:
                        wait_time = until_reset
                logger.info(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1})")
                time.sleep(wait_time)
                continue

            if status_code == 404:
                raise UpstreamUnavailable(f"GitHub resource not found: {endpoint}", status_code)

            last_error = f"HTTP {status_code}"
            if status_code < 500 and status_code not in (403, 429):
                break
            if attempt < self.max_retries - 1:
                time.sleep(self._backoff(attempt))

        raise UpstreamUnavailable(f"GitHub API error for {endpoint}: {last_error}", status_code)

    def _backoff(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def _api(self, endpoint: str) -> Any:
        """Call GitHub API using best available method."""
        if self._use_gh_cli:
            result = self._gh_api(endpoint)
            if result is not None:
                return result

        return self._requests_api(endpoint)

    def _paginate(
        self,
        path: str,
        params: Dict[str, Any],
        limit: Optional[int],
        page_size: int = MAX_PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        """
        Fetch list pages until ``limit`` items are collected or a short page
        signals the end. ``limit=None`` reads every page.
        """
        per_page = max(1, min(page_size, MAX_PAGE_SIZE))
        if limit is not None:
            per_page = min(per_page, max(1, limit))
        items: List[Dict[str, Any]] = []
        page = 1

        while limit is None or len(items) < limit:
            query = urlencode({**params, 'per_page': per_page, 'page': page})
            data = self._api(f"{path}?{query}")
            if not isinstance(data, list):
                raise UpstreamUnavailable(f"Unexpected response for {path}: expected a list")
            items.extend(data)
            if len(data) < per_page:
                break
            page += 1

        return items if limit is None else items[:limit]

    def list_branches(self, owner: str, name: str, page_size: int = MAX_PAGE_SIZE) -> List[GitHubBranch]:
        """
        List all branches of a repository.

        Args:
            owner: Repository owner
            name: Repository name
            page_size: Branches requested per page

        Returns:
            Branches in API order

        Raises:
            UpstreamUnavailable: if the API call fails or returns bad data
        """
        path = f"repos/{quote(owner)}/{quote(name)}/branches"
        data = self._paginate(path, {}, None, page_size)
        try:
            branches = [GitHubBranch.from_api_response(item) for item in data]
        except (ValueError, AttributeError) as e:
            raise UpstreamUnavailable(f"Malformed branch data for {owner}/{name}: {e}") from e

        logger.debug(f"{owner}/{name}: {len(branches)} branches")
        return branches

    def list_commits(self, owner: str, name: str, ref: str, limit: int = 50) -> List[GitHubCommit]:
        """
        List up to ``limit`` commits reachable from ``ref``, newest first.

        Args:
            owner: Repository owner
            name: Repository name
            ref: Branch name or commit sha to start from
            limit: Size of the commit window

        Returns:
            Commits in API order

        Raises:
            UpstreamUnavailable: if the API call fails
            ValueError: if a commit entry is malformed
        """
        path = f"repos/{quote(owner)}/{quote(name)}/commits"
        data = self._paginate(path, {'sha': ref}, limit)
        commits = [GitHubCommit.from_api_response(item) for item in data]
        logger.debug(f"{owner}/{name}@{ref}: {len(commits)} commits")
        return commits
