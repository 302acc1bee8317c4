"""
Layout domain objects for repotimeline.

A Layout is the read-only result of laying out a timeline: one node per
event on a grid of branch lanes and time columns, plus routed edges between
parent and child commits. Nothing here is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .event import TimelineEvent
from ..utils import to_utc

Point = Tuple[float, float]

DEFAULT_PALETTE: Tuple[str, ...] = (
    "#00f3ff",  # cyan
    "#ff0055",  # pink
    "#9d00ff",  # purple
    "#00ff41",  # green
    "#ffff00",  # yellow
    "#ff8000",  # orange
)


@dataclass(frozen=True)
class LayoutOptions:
    """
    Filters and geometry for a layout call.

    Filters are applied before lanes and time indices are assigned, so a
    filtered layout is as compact as an unfiltered one.
    """
    # Filters
    branches: Optional[FrozenSet[str]] = None
    search: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    # Geometry
    time_spacing: float = 150
    lane_height: float = 120
    origin_x: float = 100
    origin_y: float = 50
    edge_padding: float = 20
    corner_radius: float = 15
    palette: Tuple[str, ...] = DEFAULT_PALETTE
    default_branch: str = 'main'

    def __post_init__(self):
        if self.branches is not None and not isinstance(self.branches, frozenset):
            object.__setattr__(self, 'branches', frozenset(self.branches))
        if not isinstance(self.palette, tuple):
            object.__setattr__(self, 'palette', tuple(self.palette))
        if not self.palette:
            raise ValueError("palette must contain at least one color")
        if self.time_spacing <= 0 or self.lane_height <= 0:
            raise ValueError("time_spacing and lane_height must be positive")
        if self.since is not None:
            object.__setattr__(self, 'since', to_utc(self.since))
        if self.until is not None:
            object.__setattr__(self, 'until', to_utc(self.until))

    @classmethod
    def from_config(cls, config: Dict[str, Any], **filters: Any) -> 'LayoutOptions':
        """Build options from the ``layout`` config section plus filter kwargs."""
        section = dict(config.get('layout', {}))
        known = {
            'time_spacing', 'lane_height', 'origin_x', 'origin_y',
            'edge_padding', 'corner_radius', 'palette', 'default_branch',
        }
        geometry = {k: v for k, v in section.items() if k in known}
        return cls(**geometry, **filters)

    @property
    def is_filtered(self) -> bool:
        return bool(self.branches or self.search or self.since or self.until)


@dataclass(frozen=True)
class Lane:
    """A horizontal track assigned to one branch."""
    name: str
    index: int
    color: str
    y: float
    first_hash: str  # node that carries the branch label

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'index': self.index,
            'color': self.color,
            'y': self.y,
            'first_hash': self.first_hash,
        }


@dataclass(frozen=True)
class LayoutNode:
    """A positioned event."""
    event: TimelineEvent
    lane: int
    time_index: int
    x: float
    y: float
    color: str

    @property
    def id(self) -> str:
        return self.event.commit_hash

    @property
    def branch_label(self) -> str:
        return self.event.branch or ''

    @property
    def date_label(self) -> str:
        """Short date shown on the column's vertical grid line."""
        return self.event.event_time.strftime('%b %d')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'lane': self.lane,
            'time_index': self.time_index,
            'x': self.x,
            'y': self.y,
            'color': self.color,
            'date_label': self.date_label,
            'event_type': self.event.kind.value,
            'event_time': self.event.event_time.isoformat(),
            'payload': self.event.payload,
        }


@dataclass(frozen=True)
class LayoutEdge:
    """
    A routed parent -> child edge.

    ``points`` is the orthogonal polyline: two points for a straight edge,
    four for a lane-changing edge (two direction changes).
    """
    source: LayoutNode
    target: LayoutNode
    points: Tuple[Point, ...]
    color: str
    lane: int
    corner_radius: float = 0

    @property
    def id(self) -> str:
        return f"{self.source.id}->{self.target.id}"

    @property
    def is_straight(self) -> bool:
        return len(self.points) == 2

    @property
    def bends(self) -> int:
        return max(0, len(self.points) - 2)

    def svg_path(self) -> str:
        """
        SVG path data for the edge.

        Corners are rounded with quadratic curves; the radius is clamped so
        the curves never overshoot short segments.
        """
        (sx, sy) = self.points[0]
        if self.is_straight:
            (tx, ty) = self.points[-1]
            return f"M{_fmt(sx)},{_fmt(sy)} L{_fmt(tx)},{_fmt(ty)}"

        (cx, _), (_, ty) = self.points[1], self.points[2]
        (tx, _) = self.points[3]
        dir_y = 1 if ty > sy else -1
        r = min(self.corner_radius, abs(ty - sy) / 2, max(0.0, cx - sx), max(0.0, tx - cx))
        if r <= 0:
            return "M" + " L".join(f"{_fmt(x)},{_fmt(y)}" for x, y in self.points)

        return (
            f"M{_fmt(sx)},{_fmt(sy)} "
            f"L{_fmt(cx - r)},{_fmt(sy)} "
            f"Q{_fmt(cx)},{_fmt(sy)} {_fmt(cx)},{_fmt(sy + r * dir_y)} "
            f"L{_fmt(cx)},{_fmt(ty - r * dir_y)} "
            f"Q{_fmt(cx)},{_fmt(ty)} {_fmt(cx + r)},{_fmt(ty)} "
            f"L{_fmt(tx)},{_fmt(ty)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'source': self.source.id,
            'target': self.target.id,
            'points': [list(p) for p in self.points],
            'path': self.svg_path(),
            'color': self.color,
            'lane': self.lane,
        }


def _fmt(value: float) -> str:
    return f"{value:g}"


@dataclass(frozen=True)
class Layout:
    """Positioned graph returned by the layout engine."""
    nodes: Tuple[LayoutNode, ...] = ()
    edges: Tuple[LayoutEdge, ...] = ()
    lanes: Tuple[Lane, ...] = ()
    width: float = 0
    height: float = 0
    skipped: int = 0
    _index: Dict[str, LayoutNode] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        if not self._index:
            self._index.update((node.id, node) for node in self.nodes)

    def node(self, commit_hash: str) -> Optional[LayoutNode]:
        return self._index.get(commit_hash)

    def __contains__(self, commit_hash: object) -> bool:
        return commit_hash in self._index

    def __len__(self) -> int:
        return len(self.nodes)

    def edges_into(self, commit_hash: str) -> List[LayoutEdge]:
        return [e for e in self.edges if e.target.id == commit_hash]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'width': self.width,
            'height': self.height,
            'lanes': [lane.to_dict() for lane in self.lanes],
            'nodes': [node.to_dict() for node in self.nodes],
            'edges': [edge.to_dict() for edge in self.edges],
            'skipped': self.skipped,
        }


@dataclass(frozen=True)
class Highlight:
    """
    Result of an ancestor-highlight query: the focal node's lineage and the
    partition of the layout into emphasized and de-emphasized elements.
    """
    focal: str
    ancestors: FrozenSet[str]
    emphasized_edges: FrozenSet[str] = frozenset()
    dimmed_nodes: FrozenSet[str] = frozenset()
    dimmed_edges: FrozenSet[str] = frozenset()

    def is_emphasized(self, commit_hash: str) -> bool:
        return commit_hash in self.ancestors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'focal': self.focal,
            'ancestors': sorted(self.ancestors),
            'emphasized_edges': sorted(self.emphasized_edges),
            'dimmed_nodes': sorted(self.dimmed_nodes),
            'dimmed_edges': sorted(self.dimmed_edges),
        }
