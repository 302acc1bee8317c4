"""
Domain layer for repotimeline.

Contains pure domain objects with no I/O or side effects:
- Repository, Branch, Commit: the ingested commit DAG
- TimelineEvent, EventKind: classified timeline events
- Layout, LayoutNode, LayoutEdge, Lane: positioned view of a timeline

These objects are immutable and provide serialization methods for
JSON/JSONL output.
"""

from .repository import Repository, Branch, Commit
from .event import EventKind, TimelineEvent
from .layout import (
    DEFAULT_PALETTE,
    Highlight,
    Lane,
    Layout,
    LayoutEdge,
    LayoutNode,
    LayoutOptions,
)

__all__ = [
    'Repository',
    'Branch',
    'Commit',
    'EventKind',
    'TimelineEvent',
    'DEFAULT_PALETTE',
    'Highlight',
    'Lane',
    'Layout',
    'LayoutEdge',
    'LayoutNode',
    'LayoutOptions',
]
