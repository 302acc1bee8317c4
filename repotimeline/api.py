"""
High-level Python API for repotimeline.

Provides one object that drives the whole pipeline: ingest a hosted
repository, synthesize its timeline, read the events back and lay them out.

Example:
    import repotimeline

    # Create instance (uses config defaults)
    rt = repotimeline.RepoTimeline()

    # Or with explicit configuration
    rt = repotimeline.RepoTimeline(
        db_path="/tmp/timeline.db",
        github_token="ghp_...",
    )

    # Pull branches and commit windows into the store
    repository_id = rt.ingest("octocat/hello-world")

    # Classify commits into timeline events
    rt.synthesize(repository_id)

    # Read events back and lay them out
    events = rt.fetch_events(repository_id)
    layout = rt.layout(events, rt.layout_options(branches=["main"]))

    # Lineage of one commit
    highlight = rt.highlight(layout, layout.nodes[-1].id)

    # Everything in one call
    layout = rt.analyze("octocat/hello-world")
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from .config import load_config
from .database import (
    Database,
    count_commits,
    count_events,
    get_all_repositories,
    get_branches,
    get_event_summary,
    get_repository_by_name,
)
from .domain import Highlight, Layout, LayoutOptions, Repository, TimelineEvent
from .exit_codes import PartialIngestionFailure, RepositoryNotFound
from .infra import GitHubClient
from .services import EventSynthesizer, GraphIngester, IngestResult, LayoutEngine

logger = logging.getLogger(__name__)


class RepoTimeline:
    """
    High-level API for repotimeline.

    Wires the ingester, synthesizer and layout engine to one commit store
    and one hosting client.

    Example:
        rt = RepoTimeline()
        repository_id = rt.ingest("owner/repo")
        rt.synthesize(repository_id)
        layout = rt.layout(rt.fetch_events(repository_id))
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        config_path: Optional[str] = None,
        db_path: Optional[Union[str, Path]] = None,
        client: Optional[GitHubClient] = None,
        github_token: Optional[str] = None,
    ):
        """
        Initialize RepoTimeline.

        Args:
            config: Full config dict (overrides file if provided)
            config_path: Path to config file (default: ~/.repotimeline/config.json)
            db_path: Commit store location (overrides config/env)
            client: Hosting API client (built from config when omitted)
            github_token: GitHub API token (overrides config/env)
        """
        self._config = config if config is not None else load_config(config_path)

        if github_token:
            self._config.setdefault('github', {})['token'] = github_token

        self._db_path = Path(db_path).expanduser() if db_path else None
        self._client = client

        self._synthesizer = EventSynthesizer(db_path=self._db_path, config=self._config)
        self._layout_engine = LayoutEngine(LayoutOptions.from_config(self._config))
        self._ingester: Optional[GraphIngester] = None

    @property
    def config(self) -> Dict[str, Any]:
        """Access the configuration."""
        return self._config

    @property
    def client(self) -> GitHubClient:
        """Hosting API client, created on first use."""
        if self._client is None:
            self._client = GitHubClient.from_config(self._config)
        return self._client

    @property
    def ingester(self) -> GraphIngester:
        if self._ingester is None:
            self._ingester = GraphIngester(self.client, db_path=self._db_path, config=self._config)
        return self._ingester

    @property
    def synthesizer(self) -> EventSynthesizer:
        return self._synthesizer

    @property
    def layout_engine(self) -> LayoutEngine:
        return self._layout_engine

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def ingest(self, repo_ref: str) -> int:
        """
        Ingest a repository's branches and commit windows.

        Returns:
            Repository id in the commit store

        Raises:
            InvalidReference, UpstreamUnavailable, PartialIngestionFailure
        """
        return self.ingester.ingest(repo_ref)

    @property
    def last_ingest(self) -> Optional[IngestResult]:
        """Detailed result of the most recent ingestion, if any."""
        return self._ingester.last_result if self._ingester else None

    def synthesize(self, repository_id: int) -> int:
        """Regenerate a repository's timeline; returns the event count."""
        return self._synthesizer.synthesize(repository_id)

    def fetch_events(self, repository_id: int, event_type: Optional[str] = None) -> List[TimelineEvent]:
        """Stored events of a repository, event time ascending."""
        return self._synthesizer.fetch_events(repository_id, event_type=event_type)

    def layout_options(self, **filters: Any) -> LayoutOptions:
        """
        Layout options with geometry from config and the given filters.

        Args:
            **filters: branches, search, since, until
        """
        return LayoutOptions.from_config(self._config, **filters)

    def layout(self, events: Iterable[Any], options: Optional[LayoutOptions] = None) -> Layout:
        """Lay out events (TimelineEvent objects or event mappings)."""
        return self._layout_engine.layout(events, options)

    def ancestors(self, layout: Layout, focal_hash: str) -> frozenset:
        return self._layout_engine.ancestors(layout, focal_hash)

    def highlight(self, layout: Layout, focal_hash: str) -> Highlight:
        return self._layout_engine.highlight(layout, focal_hash)

    def analyze(self, repo_ref: str, options: Optional[LayoutOptions] = None) -> Layout:
        """
        Ingest, synthesize, fetch and lay out in one call.

        A partial ingestion still produces a layout of whatever was stored;
        the failed branches are logged.
        """
        try:
            repository_id = self.ingest(repo_ref)
        except PartialIngestionFailure as e:
            logger.warning(f"Continuing with partial data: {e}")
            repository_id = e.repository_id

        self.synthesize(repository_id)
        return self.layout(self.fetch_events(repository_id), options)

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self, owner: str, name: str) -> Dict[str, Any]:
        """
        Stored state of a repository.

        Raises:
            RepositoryNotFound: if the repository has never been ingested
        """
        with Database(db_path=self._db_path, config=self._config) as db:
            repo = get_repository_by_name(db, owner, name)
            if repo is None:
                raise RepositoryNotFound(f"{owner}/{name}")

            info = repo.to_dict()
            info['branches'] = len(get_branches(db, repo.id))
            info['commits'] = count_commits(db, repo.id)
            info['events'] = count_events(db, repo.id)
            info['by_type'] = get_event_summary(db, repo.id)['by_type']
            return info

    def repositories(self) -> List[Repository]:
        """All repositories in the commit store."""
        with Database(db_path=self._db_path, config=self._config) as db:
            return get_all_repositories(db)


def create(**kwargs) -> RepoTimeline:
    """
    Create a RepoTimeline instance.

    Convenience function equivalent to RepoTimeline(**kwargs).
    """
    return RepoTimeline(**kwargs)
