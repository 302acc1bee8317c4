"""
Database module for repotimeline.

The commit store: SQLite-based persistence for repositories, branches,
commits (keyed by hash) and derived timeline events.

Key components:
- connection: Database connection management and transactions
- schema: Table definitions and schema versioning
- repository: Repository, branch and commit operations
- events: Timeline event operations
"""

from .connection import (
    get_connection,
    get_db_path,
    Database,
    get_database_info,
    reset_database,
    transaction,
)
from .schema import CURRENT_VERSION, ensure_schema
from .repository import (
    get_or_create_repository,
    get_repository_by_id,
    get_repository_by_name,
    get_all_repositories,
    repository_exists,
    stamp_last_analyzed,
    upsert_branch,
    get_branches,
    insert_commit_if_absent,
    insert_commits,
    commit_exists,
    get_commits_for_repo,
    count_commits,
)
from .events import (
    replace_events,
    delete_events_for_repo,
    get_events_for_repo,
    count_events,
    get_event_summary,
)

__all__ = [
    # Connection
    'get_connection',
    'get_db_path',
    'Database',
    'get_database_info',
    'reset_database',
    'transaction',
    # Schema
    'ensure_schema',
    'CURRENT_VERSION',
    # Repositories, branches, commits
    'get_or_create_repository',
    'get_repository_by_id',
    'get_repository_by_name',
    'get_all_repositories',
    'repository_exists',
    'stamp_last_analyzed',
    'upsert_branch',
    'get_branches',
    'insert_commit_if_absent',
    'insert_commits',
    'commit_exists',
    'get_commits_for_repo',
    'count_commits',
    # Events
    'replace_events',
    'delete_events_for_repo',
    'get_events_for_repo',
    'count_events',
    'get_event_summary',
]
