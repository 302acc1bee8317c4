"""
Repository, branch and commit domain objects for repotimeline.

These mirror the durable rows in the commit store. They are immutable and
serializable; the database layer maps them to and from SQLite records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Tuple

from ..utils import canonical_url, format_timestamp


@dataclass(frozen=True)
class Repository:
    """
    A hosted repository, identified by (owner, name).

    Attributes:
        owner: Account or organization that owns the repository
        name: Repository name
        url: Canonical URL
        id: Store identity (None until persisted)
        last_analyzed: When ingestion last completed successfully
    """
    owner: str
    name: str
    url: str = ''
    id: Optional[int] = None
    last_analyzed: Optional[datetime] = None

    @classmethod
    def from_reference(cls, owner: str, name: str) -> 'Repository':
        return cls(owner=owner, name=name, url=canonical_url(owner, name))

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'owner': self.owner,
            'name': self.name,
            'url': self.url,
            'last_analyzed': format_timestamp(self.last_analyzed) if self.last_analyzed else None,
        }


@dataclass(frozen=True)
class Branch:
    """A branch of a repository and the commit its head points to."""
    name: str
    head_hash: str
    repository_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository_id': self.repository_id,
            'name': self.name,
            'head_hash': self.head_hash,
        }


@dataclass(frozen=True)
class Commit:
    """
    A commit in the DAG.

    ``branch`` is the first branch the commit was discovered under; a commit
    reachable from several branches is stored once and keeps that attribution.
    Parent hashes may point outside the fetched window.
    """
    hash: str
    author: str
    message: str
    authored_at: datetime
    parents: Tuple[str, ...] = field(default_factory=tuple)
    branch: Optional[str] = None
    repository_id: Optional[int] = None

    @property
    def is_merge(self) -> bool:
        return len(self.parents) >= 2

    @property
    def is_root(self) -> bool:
        return not self.parents

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'author': self.author,
            'message': self.message,
            'authored_at': format_timestamp(self.authored_at),
            'parents': list(self.parents),
            'branch': self.branch,
        }

    def __repr__(self) -> str:
        return f"Commit(hash={self.hash[:8]!r}, branch={self.branch!r}, parents={len(self.parents)})"
