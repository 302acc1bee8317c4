"""
Database schema for repotimeline.

This module defines the SQLite schema and handles migrations.
The schema is designed to:
- Store each commit exactly once, keyed by hash
- Make conditional inserts/upserts atomic via unique constraints
- Keep timeline events ordered by (event_time, id) for stable replay
"""

import logging
import sqlite3
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Current schema version - increment when schema changes
# v1: Initial schema
CURRENT_VERSION = 1

SCHEMA_V1 = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

-- Hosted repositories
CREATE TABLE IF NOT EXISTS repositories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    last_analyzed TIMESTAMP,
    UNIQUE (owner, name)
);

-- Branch heads
CREATE TABLE IF NOT EXISTS branches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    head_hash TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (repository_id, name),
    FOREIGN KEY (repository_id) REFERENCES repositories(id) ON DELETE CASCADE
);

-- Commits (hash is globally unique; branch_name is the first discovering branch)
CREATE TABLE IF NOT EXISTS commits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id INTEGER NOT NULL,
    hash TEXT UNIQUE NOT NULL,
    branch_name TEXT,
    author TEXT,
    message TEXT,
    authored_at TIMESTAMP NOT NULL,
    parent_hashes TEXT NOT NULL DEFAULT '[]',  -- JSON array, ordered
    FOREIGN KEY (repository_id) REFERENCES repositories(id) ON DELETE CASCADE
);

-- Derived timeline events (regenerated wholesale by synthesis)
CREATE TABLE IF NOT EXISTS timeline_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id INTEGER NOT NULL,
    event_type TEXT NOT NULL,  -- 'COMMIT', 'MERGE', 'BRANCH_START'
    event_time TIMESTAMP NOT NULL,
    commit_hash TEXT NOT NULL,
    branch TEXT,
    payload TEXT NOT NULL,  -- JSON {branch, author, message, commit_hash, parents}
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (repository_id, commit_hash),
    FOREIGN KEY (repository_id) REFERENCES repositories(id) ON DELETE CASCADE
);

-- Indexes for fast queries
CREATE INDEX IF NOT EXISTS idx_branches_repo ON branches(repository_id);
CREATE INDEX IF NOT EXISTS idx_commits_repo_time ON commits(repository_id, authored_at, id);
CREATE INDEX IF NOT EXISTS idx_events_repo_time ON timeline_events(repository_id, event_time, id);
CREATE INDEX IF NOT EXISTS idx_events_type ON timeline_events(event_type);
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from database."""
    try:
        cursor = conn.execute(
            "SELECT MAX(version) FROM _schema_info"
        )
        result = cursor.fetchone()
        return result[0] if result[0] is not None else 0
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        return 0


def apply_schema(conn: sqlite3.Connection, version: int = CURRENT_VERSION) -> None:
    """
    Apply schema to database.

    Timeline events are derived and can be regenerated, but commits and
    branches are not, so an outdated schema is migrated step by step rather
    than dropped.
    """
    current = get_schema_version(conn)

    for migration_version, description, sql in get_migrations():
        if current < migration_version <= version:
            logger.info(f"Applying schema v{migration_version}: {description}")
            conn.executescript(sql)
            conn.execute(
                "INSERT OR REPLACE INTO _schema_info (version, description) VALUES (?, ?)",
                (migration_version, description)
            )

    conn.commit()


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Ensure database has current schema, migrating if necessary."""
    current = get_schema_version(conn)

    if current < CURRENT_VERSION:
        apply_schema(conn, CURRENT_VERSION)


def get_migrations() -> List[Tuple[int, str, str]]:
    """
    Get list of migrations.

    Returns:
        List of (version, description, sql) tuples
    """
    return [
        (1, "Initial schema", SCHEMA_V1),
    ]
