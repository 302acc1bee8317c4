"""
Timeline event domain object for repotimeline.

Events are derived from commits by the synthesizer:
- COMMIT: an ordinary commit
- MERGE: a commit with two or more parents
- BRANCH_START: the earliest commit attributed to a branch

Events are timestamped, serializable for JSONL output, and carry the
stable payload shape consumed by rendering layers:
``{branch, author, message, commit_hash, parents}`` plus the envelope
``{event_type, event_time}``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Mapping, Optional, Tuple, Union
import json

from ..exit_codes import MalformedEvent
from ..utils import format_timestamp, parse_timestamp, to_utc


class EventKind(str, Enum):
    """Classification tag attached to a timeline event."""
    COMMIT = 'COMMIT'
    MERGE = 'MERGE'
    BRANCH_START = 'BRANCH_START'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TimelineEvent:
    """
    One classified commit on the repository timeline.

    Attributes:
        kind: Event classification
        event_time: Authored timestamp of the commit (aware UTC)
        commit_hash: Hash of the commit the event describes
        branch: Branch the commit is attributed to (may be None)
        author: Commit author name
        message: Commit message
        parents: Ordered parent hashes
        repository_id: Owning repository (None for detached events)
        id: Store row id, reflecting insertion order
    """

    kind: EventKind
    event_time: datetime
    commit_hash: str
    branch: Optional[str] = None
    author: str = ''
    message: str = ''
    parents: Tuple[str, ...] = field(default_factory=tuple)
    repository_id: Optional[int] = None
    id: Optional[int] = None

    @property
    def payload(self) -> Dict[str, Any]:
        """Persisted payload shape."""
        return {
            'branch': self.branch,
            'author': self.author,
            'message': self.message,
            'commit_hash': self.commit_hash,
            'parents': list(self.parents),
        }

    def payload_json(self) -> str:
        """Canonical JSON encoding of the payload (stable key order)."""
        return json.dumps(self.payload, ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_record(cls, record: Union['TimelineEvent', Mapping[str, Any]]) -> 'TimelineEvent':
        """
        Build an event from a consumer-shaped mapping.

        Accepts ``{event_type, event_time, payload: {...}}`` as well as a
        flattened mapping with the payload keys at top level.

        Raises:
            MalformedEvent: if the commit hash or event time is missing or invalid
        """
        if isinstance(record, TimelineEvent):
            if not record.commit_hash:
                raise MalformedEvent("Event is missing commit_hash")
            if not isinstance(record.event_time, datetime):
                raise MalformedEvent(f"Event {record.commit_hash[:8]} is missing event_time")
            if record.event_time.tzinfo is None:
                return replace(record, event_time=to_utc(record.event_time))
            return record
        if not isinstance(record, Mapping):
            raise MalformedEvent(f"Event must be a mapping, got {type(record).__name__}")

        payload = record.get('payload')
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise MalformedEvent(f"Event payload is not valid JSON: {e}") from e
        if payload is None:
            payload = record
        if not isinstance(payload, Mapping):
            raise MalformedEvent("Event payload must be a mapping")

        commit_hash = payload.get('commit_hash')
        if not commit_hash or not isinstance(commit_hash, str):
            raise MalformedEvent("Event is missing commit_hash")

        try:
            event_time = parse_timestamp(record.get('event_time'))
        except (TypeError, ValueError) as e:
            raise MalformedEvent(f"Event {commit_hash[:8]} has invalid event_time: {e}") from e
        if event_time is None:
            raise MalformedEvent(f"Event {commit_hash[:8]} is missing event_time")

        raw_kind = record.get('event_type') or EventKind.COMMIT.value
        try:
            kind = EventKind(str(raw_kind))
        except ValueError as e:
            raise MalformedEvent(f"Event {commit_hash[:8]} has unknown event_type {raw_kind!r}") from e

        parents = payload.get('parents') or ()
        if not isinstance(parents, (list, tuple)) or not all(isinstance(p, str) for p in parents):
            raise MalformedEvent(f"Event {commit_hash[:8]} has invalid parents")

        return cls(
            kind=kind,
            event_time=event_time,
            commit_hash=commit_hash,
            branch=payload.get('branch'),
            author=payload.get('author') or '',
            message=payload.get('message') or '',
            parents=tuple(parents),
            repository_id=record.get('repository_id'),
            id=record.get('id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'repository_id': self.repository_id,
            'event_type': self.kind.value,
            'event_time': format_timestamp(self.event_time),
            'payload': self.payload,
        }

    def to_jsonl(self) -> str:
        """Convert to single-line JSON for streaming output."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def __str__(self) -> str:
        return f"{self.kind.value} {self.commit_hash[:8]} on {self.branch} at {self.event_time.isoformat()}"
