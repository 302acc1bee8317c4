"""
Repository, branch and commit database operations for repotimeline.

Every write here is a single conditional statement keyed on a unique
constraint, so concurrent ingestions of overlapping branches cannot create
duplicate repositories, branches or commits.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..domain.repository import Repository, Branch, Commit
from ..utils import format_timestamp, parse_timestamp
from .connection import Database


# Repositories

def get_or_create_repository(db: Database, owner: str, name: str, url: str) -> int:
    """
    Resolve a repository by (owner, name), creating it if absent.

    Idempotent: repeated calls return the same id and never duplicate the row.

    Returns:
        Repository id
    """
    db.execute(
        "INSERT OR IGNORE INTO repositories (owner, name, url) VALUES (?, ?, ?)",
        (owner, name, url)
    )
    db.execute(
        "SELECT id FROM repositories WHERE owner = ? AND name = ?",
        (owner, name)
    )
    row = db.fetchone()
    return row['id']


def get_repository_by_id(db: Database, repository_id: int) -> Optional[Repository]:
    """Get repository by store id."""
    db.execute("SELECT * FROM repositories WHERE id = ?", (repository_id,))
    row = db.fetchone()
    return _row_to_repository(row) if row else None


def get_repository_by_name(db: Database, owner: str, name: str) -> Optional[Repository]:
    """Get repository by owner and name."""
    db.execute(
        "SELECT * FROM repositories WHERE owner = ? AND name = ?",
        (owner, name)
    )
    row = db.fetchone()
    return _row_to_repository(row) if row else None


def get_all_repositories(db: Database) -> List[Repository]:
    """All repositories, most recently analyzed first."""
    db.execute(
        "SELECT * FROM repositories ORDER BY last_analyzed IS NULL, last_analyzed DESC, id"
    )
    return [_row_to_repository(row) for row in db.fetchall()]


def repository_exists(db: Database, repository_id: int) -> bool:
    db.execute("SELECT 1 FROM repositories WHERE id = ?", (repository_id,))
    return db.fetchone() is not None


def stamp_last_analyzed(db: Database, repository_id: int, when: Optional[datetime] = None) -> None:
    """Record a successful ingestion run."""
    when = when or datetime.now(timezone.utc)
    db.execute(
        "UPDATE repositories SET last_analyzed = ? WHERE id = ?",
        (format_timestamp(when), repository_id)
    )


def _row_to_repository(row) -> Repository:
    return Repository(
        id=row['id'],
        owner=row['owner'],
        name=row['name'],
        url=row['url'],
        last_analyzed=parse_timestamp(row['last_analyzed']),
    )


# Branches

def upsert_branch(db: Database, repository_id: int, name: str, head_hash: str) -> None:
    """Insert a branch, or update its head hash if it already exists."""
    db.execute("""
        INSERT INTO branches (repository_id, name, head_hash)
        VALUES (?, ?, ?)
        ON CONFLICT (repository_id, name) DO UPDATE SET
            head_hash = excluded.head_hash,
            updated_at = CURRENT_TIMESTAMP
        WHERE branches.head_hash != excluded.head_hash
    """, (repository_id, name, head_hash))


def get_branches(db: Database, repository_id: int) -> List[Branch]:
    """Branches of a repository in insertion order."""
    db.execute(
        "SELECT repository_id, name, head_hash FROM branches WHERE repository_id = ? ORDER BY id",
        (repository_id,)
    )
    return [
        Branch(name=row['name'], head_hash=row['head_hash'], repository_id=row['repository_id'])
        for row in db.fetchall()
    ]


# Commits

def insert_commit_if_absent(db: Database, repository_id: int, commit: Commit) -> bool:
    """
    Store a commit unless its hash is already present.

    The existence check and insert are one statement, so the first writer
    wins and its branch attribution sticks.

    Returns:
        True if the commit was inserted, False if it already existed
    """
    db.execute("""
        INSERT OR IGNORE INTO commits
        (repository_id, hash, branch_name, author, message, authored_at, parent_hashes)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (
        repository_id,
        commit.hash,
        commit.branch,
        commit.author,
        commit.message,
        format_timestamp(commit.authored_at),
        json.dumps(list(commit.parents)),
    ))
    return db.rowcount == 1


def insert_commits(db: Database, repository_id: int, commits: Iterable[Commit]) -> int:
    """
    Insert commits in order, skipping hashes already stored.

    Returns:
        Number of commits inserted
    """
    inserted = 0
    for commit in commits:
        if insert_commit_if_absent(db, repository_id, commit):
            inserted += 1
    return inserted


def commit_exists(db: Database, commit_hash: str) -> bool:
    db.execute("SELECT 1 FROM commits WHERE hash = ?", (commit_hash,))
    return db.fetchone() is not None


def get_commits_for_repo(db: Database, repository_id: int) -> List[Commit]:
    """
    Commits of a repository ordered by authored time, ties by insertion order.
    """
    db.execute("""
        SELECT * FROM commits
        WHERE repository_id = ?
        ORDER BY authored_at ASC, id ASC
    """, (repository_id,))
    return [record_to_domain(dict(row)) for row in db.fetchall()]


def count_commits(db: Database, repository_id: int) -> int:
    db.execute("SELECT COUNT(*) FROM commits WHERE repository_id = ?", (repository_id,))
    row = db.fetchone()
    return row[0] if row else 0


def record_to_domain(record: Dict[str, Any]) -> Commit:
    """
    Convert a database record to a Commit domain object.

    Args:
        record: Database row as dictionary

    Returns:
        Commit domain object
    """
    parents = record.get('parent_hashes') or '[]'
    if isinstance(parents, str):
        parents = json.loads(parents)

    return Commit(
        hash=record['hash'],
        author=record.get('author') or '',
        message=record.get('message') or '',
        authored_at=parse_timestamp(record['authored_at']),
        parents=tuple(parents),
        branch=record.get('branch_name'),
        repository_id=record.get('repository_id'),
    )
