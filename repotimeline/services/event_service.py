"""
Event synthesis service for repotimeline.

Turns a repository's stored commits into a classified, time-ordered
timeline:

- MERGE: commit with two or more parents
- BRANCH_START: earliest commit attributed to a branch (unless it is a merge)
- COMMIT: everything else

Each run replaces the repository's previous events wholesale.
"""

from typing import Iterable, List, Optional, Set, Dict, Any
from pathlib import Path
import logging

from ..database import (
    Database,
    get_commits_for_repo,
    get_events_for_repo,
    replace_events,
    repository_exists,
)
from ..domain import Commit, EventKind, TimelineEvent
from ..exit_codes import RepositoryNotFound

logger = logging.getLogger(__name__)


def classify_commit(commit: Commit, seen_branches: Set[str]) -> EventKind:
    """
    Classify one commit, marking its branch as seen.

    Merge classification dominates branch-start: a multi-parent commit that
    is also the first on its branch is a MERGE, and the branch still counts
    as seen.
    """
    first_on_branch = False
    if commit.branch and commit.branch not in seen_branches:
        seen_branches.add(commit.branch)
        first_on_branch = True

    if commit.is_merge:
        return EventKind.MERGE
    if first_on_branch:
        return EventKind.BRANCH_START
    return EventKind.COMMIT


def synthesize_events(commits: Iterable[Commit], repository_id: Optional[int] = None) -> List[TimelineEvent]:
    """
    Build timeline events from commits.

    Commits are stably sorted by authored time, so commits sharing a
    timestamp keep the order they were given in.
    """
    ordered = sorted(commits, key=lambda c: c.authored_at)
    seen_branches: Set[str] = set()
    events = []

    for commit in ordered:
        kind = classify_commit(commit, seen_branches)
        events.append(TimelineEvent(
            kind=kind,
            event_time=commit.authored_at,
            commit_hash=commit.hash,
            branch=commit.branch,
            author=commit.author,
            message=commit.message,
            parents=tuple(commit.parents),
            repository_id=repository_id,
        ))

    return events


class EventSynthesizer:
    """
    Service for (re)generating a repository's timeline events.

    Example:
        synthesizer = EventSynthesizer(db_path=path)
        count = synthesizer.synthesize(repository_id)
        events = synthesizer.fetch_events(repository_id)
    """

    def __init__(self, db_path: Optional[Path] = None, config: Optional[Dict[str, Any]] = None):
        self.db_path = db_path
        self.config = config

    def synthesize(self, repository_id: int) -> int:
        """
        Regenerate the timeline of a repository.

        Returns:
            Number of events written (zero for a repository with no commits)

        Raises:
            RepositoryNotFound: if the repository id is unknown
        """
        with Database(db_path=self.db_path, config=self.config) as db:
            if not repository_exists(db, repository_id):
                raise RepositoryNotFound(repository_id)

            commits = get_commits_for_repo(db, repository_id)
            events = synthesize_events(commits, repository_id)
            count = replace_events(db, repository_id, events)

        by_kind: Dict[str, int] = {}
        for event in events:
            by_kind[event.kind.value] = by_kind.get(event.kind.value, 0) + 1
        logger.info(f"Synthesized {count} events for repository {repository_id} {by_kind}")
        return count

    def fetch_events(self, repository_id: int, event_type: Optional[str] = None) -> List[TimelineEvent]:
        """
        Stored events of a repository, event time ascending.

        Raises:
            RepositoryNotFound: if the repository id is unknown
        """
        with Database(db_path=self.db_path, config=self.config) as db:
            if not repository_exists(db, repository_id):
                raise RepositoryNotFound(repository_id)
            return get_events_for_repo(db, repository_id, event_type=event_type)
