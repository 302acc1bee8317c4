"""
Graph ingestion service for repotimeline.

Pulls a repository's branches and a bounded window of commits per branch
from the hosting API and upserts them into the commit store.

Re-running ingestion is safe: repositories, branches and commits are all
written with conditional statements keyed on their unique identities, and
each branch's commits are committed in their own transaction.
"""

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..database import (
    Database,
    get_or_create_repository,
    insert_commits,
    stamp_last_analyzed,
    transaction,
    upsert_branch,
)
from ..domain import Commit
from ..exit_codes import InvalidReference, PartialIngestionFailure, UpstreamUnavailable
from ..infra.github_client import GitHubBranch, GitHubClient, GitHubCommit
from ..utils import canonical_url, parse_repo_url

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_WINDOW = 50
DEFAULT_BRANCH_PAGE_SIZE = 100


def parse_repo_reference(reference: str) -> Tuple[str, str]:
    """
    Parse a repository reference into (owner, name).

    Accepts ``owner/name``, HTTPS and SSH GitHub URLs.

    Raises:
        InvalidReference: if the reference cannot be parsed
    """
    owner, name = parse_repo_url(reference)
    if not owner or not name:
        raise InvalidReference(reference)
    return owner, name


@dataclass
class IngestResult:
    """Outcome of one ingestion run."""
    repository_id: int
    owner: str
    name: str
    branches: int = 0
    commits_fetched: int = 0
    commits_inserted: int = 0
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository_id': self.repository_id,
            'repository': f"{self.owner}/{self.name}",
            'branches': self.branches,
            'commits_fetched': self.commits_fetched,
            'commits_inserted': self.commits_inserted,
            'succeeded': list(self.succeeded),
            'failed': dict(self.failed),
        }


class GraphIngester:
    """
    Ingests a repository's commit DAG into the commit store.

    Example:
        ingester = GraphIngester(GitHubClient(), db_path=path)
        repository_id = ingester.ingest("octocat/hello-world")

    Commit windows for different branches may be fetched concurrently
    (``parallel`` > 1), but they are written in branch-list order, so the
    first branch to reach a commit is always the one it is attributed to.
    """

    def __init__(
        self,
        client: GitHubClient,
        db_path: Optional[Path] = None,
        config: Optional[Dict[str, Any]] = None,
        commit_window: Optional[int] = None,
        branch_page_size: Optional[int] = None,
        parallel: Optional[int] = None,
    ):
        config = config or {}
        github = config.get('github', {})
        general = config.get('general', {})

        self.client = client
        self.db_path = db_path
        self.config = config
        self.commit_window = commit_window or github.get('commit_window', DEFAULT_COMMIT_WINDOW)
        self.branch_page_size = branch_page_size or github.get('branch_page_size', DEFAULT_BRANCH_PAGE_SIZE)
        self.parallel = max(1, parallel or general.get('max_concurrent_operations', 1))
        self.last_result: Optional[IngestResult] = None

    def ingest(self, reference: str) -> int:
        """
        Ingest a repository and return its store id.

        Raises:
            InvalidReference: malformed reference (before any I/O)
            UpstreamUnavailable: branch list could not be fetched, or every branch failed
            PartialIngestionFailure: some branches failed; the rest are committed
        """
        result = self.run(reference)
        if result.failed:
            if not result.succeeded:
                details = '; '.join(f"{b}: {err}" for b, err in result.failed.items())
                raise UpstreamUnavailable(
                    f"All branches of {result.owner}/{result.name} failed to ingest ({details})"
                )
            raise PartialIngestionFailure(result.repository_id, result.failed, result.succeeded)
        return result.repository_id

    def run(self, reference: str) -> IngestResult:
        """
        Ingest a repository and return the detailed result without raising
        for branch-level failures.
        """
        owner, name = parse_repo_reference(reference)

        logger.info(f"Fetching branches for {owner}/{name}")
        branches = self.client.list_branches(owner, name, page_size=self.branch_page_size)

        with Database(db_path=self.db_path, config=self.config) as db:
            with transaction(db):
                repository_id = get_or_create_repository(db, owner, name, canonical_url(owner, name))
                for branch in branches:
                    upsert_branch(db, repository_id, branch.name, branch.head_hash)

            result = IngestResult(
                repository_id=repository_id,
                owner=owner,
                name=name,
                branches=len(branches),
            )
            self.last_result = result

            for branch, commits, error in self._fetch_windows(owner, name, branches):
                if error is not None:
                    logger.warning(f"Failed to fetch commits for {owner}/{name}@{branch.name}: {error}")
                    result.failed[branch.name] = error
                    continue
                try:
                    with transaction(db):
                        inserted = insert_commits(db, repository_id, (
                            _to_commit(c, branch.name, repository_id) for c in reversed(commits)
                        ))
                except sqlite3.Error as e:
                    logger.warning(f"Failed to store commits for {owner}/{name}@{branch.name}: {e}")
                    result.failed[branch.name] = str(e)
                    continue

                result.commits_fetched += len(commits)
                result.commits_inserted += inserted
                result.succeeded.append(branch.name)
                logger.info(
                    f"  {branch.name}: {len(commits)} commits fetched, {inserted} new"
                )

            if result.succeeded or not branches:
                with transaction(db):
                    stamp_last_analyzed(db, repository_id)

        logger.info(
            f"Ingested {owner}/{name}: {len(result.succeeded)}/{len(branches)} branches, "
            f"{result.commits_inserted} new commits"
        )
        return result

    def _fetch_windows(self, owner: str, name: str, branches: List[GitHubBranch]):
        """
        Yield (branch, commits, error) in branch-list order.

        Fetches run on a thread pool when ``parallel`` > 1; results are still
        consumed in order so writes stay deterministic.
        """
        def fetch(branch: GitHubBranch) -> Tuple[List[GitHubCommit], Optional[str]]:
            try:
                return self.client.list_commits(owner, name, branch.name, limit=self.commit_window), None
            except (UpstreamUnavailable, ValueError, KeyError, TypeError, AttributeError) as e:
                return [], str(e)

        if self.parallel == 1 or len(branches) < 2:
            for branch in branches:
                commits, error = fetch(branch)
                yield branch, commits, error
            return

        with ThreadPoolExecutor(max_workers=self.parallel) as executor:
            futures = [executor.submit(fetch, branch) for branch in branches]
            for branch, future in zip(branches, futures):
                commits, error = future.result()
                yield branch, commits, error


def _to_commit(data: GitHubCommit, branch: str, repository_id: int) -> Commit:
    return Commit(
        hash=data.hash,
        author=data.author_name,
        message=data.message,
        authored_at=data.authored_at,
        parents=tuple(data.parent_hashes),
        branch=branch,
        repository_id=repository_id,
    )
