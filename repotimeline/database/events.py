"""
Timeline event database operations for repotimeline.

Events are derived data: a synthesis run replaces a repository's whole
event set in one transaction.
"""

import json
from typing import Dict, Any, List, Optional, Sequence

from ..domain.event import EventKind, TimelineEvent
from ..utils import format_timestamp, parse_timestamp
from .connection import Database, transaction


def replace_events(db: Database, repository_id: int, events: Sequence[TimelineEvent]) -> int:
    """
    Atomically replace all events of a repository.

    The delete and the bulk insert commit together, so a concurrent reader
    sees either the old set or the new one.

    Args:
        db: Database connection
        repository_id: Repository whose events are regenerated
        events: Events in emission order

    Returns:
        Number of events inserted
    """
    rows = [
        (
            repository_id,
            event.kind.value,
            format_timestamp(event.event_time),
            event.commit_hash,
            event.branch,
            event.payload_json(),
        )
        for event in events
    ]
    with transaction(db):
        delete_events_for_repo(db, repository_id)
        if rows:
            db.executemany("""
                INSERT INTO timeline_events
                (repository_id, event_type, event_time, commit_hash, branch, payload)
                VALUES (?, ?, ?, ?, ?, ?)
            """, rows)
    return len(rows)


def delete_events_for_repo(db: Database, repository_id: int) -> int:
    """Delete all events for a repository."""
    db.execute("DELETE FROM timeline_events WHERE repository_id = ?", (repository_id,))
    return db.rowcount


def get_events_for_repo(
    db: Database,
    repository_id: int,
    event_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[TimelineEvent]:
    """
    Events of a repository ordered by event time, ties by insertion order.

    Args:
        db: Database connection
        repository_id: Repository ID
        event_type: Optional filter (COMMIT, MERGE, BRANCH_START)
        limit: Maximum number of events to return
    """
    conditions = ["repository_id = ?"]
    params: List[Any] = [repository_id]

    if event_type is not None:
        conditions.append("event_type = ?")
        params.append(event_type)

    sql = f"""
        SELECT * FROM timeline_events
        WHERE {' AND '.join(conditions)}
        ORDER BY event_time ASC, id ASC
    """
    if limit:
        sql += " LIMIT ?"
        params.append(int(limit))

    db.execute(sql, tuple(params))
    return [record_to_domain(dict(row)) for row in db.fetchall()]


def count_events(db: Database, repository_id: int, event_type: Optional[str] = None) -> int:
    """Count events of a repository, optionally of one type."""
    if event_type is None:
        db.execute(
            "SELECT COUNT(*) FROM timeline_events WHERE repository_id = ?",
            (repository_id,)
        )
    else:
        db.execute(
            "SELECT COUNT(*) FROM timeline_events WHERE repository_id = ? AND event_type = ?",
            (repository_id, event_type)
        )
    row = db.fetchone()
    return row[0] if row else 0


def get_event_summary(db: Database, repository_id: int) -> Dict[str, Any]:
    """
    Summary of a repository's events.

    Returns:
        Dictionary with per-type counts, total, and time range
    """
    db.execute("""
        SELECT event_type, COUNT(*) as count
        FROM timeline_events
        WHERE repository_id = ?
        GROUP BY event_type
        ORDER BY event_type
    """, (repository_id,))
    by_type = {row['event_type']: row['count'] for row in db.fetchall()}

    db.execute("""
        SELECT COUNT(*) as total, MIN(event_time) as first, MAX(event_time) as last,
               COUNT(DISTINCT branch) as branches
        FROM timeline_events
        WHERE repository_id = ?
    """, (repository_id,))
    row = db.fetchone()

    return {
        'total_events': row['total'] if row else 0,
        'branches': row['branches'] if row else 0,
        'first_event': row['first'] if row else None,
        'last_event': row['last'] if row else None,
        'by_type': {kind.value: by_type.get(kind.value, 0) for kind in EventKind},
    }


def record_to_domain(record: Dict[str, Any]) -> TimelineEvent:
    """
    Convert a database record to a TimelineEvent domain object.

    Args:
        record: Database row as dictionary

    Returns:
        TimelineEvent domain object
    """
    payload = record.get('payload') or '{}'
    if isinstance(payload, str):
        payload = json.loads(payload)

    return TimelineEvent(
        kind=EventKind(record['event_type']),
        event_time=parse_timestamp(record['event_time']),
        commit_hash=record['commit_hash'],
        branch=payload.get('branch'),
        author=payload.get('author') or '',
        message=payload.get('message') or '',
        parents=tuple(payload.get('parents') or ()),
        repository_id=record.get('repository_id'),
        id=record.get('id'),
    )
