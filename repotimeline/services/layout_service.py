"""
Layout service for repotimeline.

Lays a timeline out on a grid: one horizontal lane per branch, one column
per event in time order, and orthogonally routed ("subway map") edges from
each parent to its children.

Layout is a pure function of its input. Malformed events are logged and
skipped rather than failing the whole layout.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from ..domain import (
    Highlight,
    Lane,
    Layout,
    LayoutEdge,
    LayoutNode,
    LayoutOptions,
    TimelineEvent,
)
from ..exit_codes import MalformedEvent

logger = logging.getLogger(__name__)

EventInput = Union[TimelineEvent, Mapping[str, Any]]


def filter_events(events: Iterable[TimelineEvent], options: LayoutOptions) -> List[TimelineEvent]:
    """Apply the branch, search and date filters of ``options``."""
    needle = options.search.strip().lower() if options.search else ''
    kept = []
    for event in events:
        if options.branches is not None and (event.branch or options.default_branch) not in options.branches:
            continue
        if needle and needle not in event.message.lower() and needle not in event.commit_hash.lower():
            continue
        if options.since is not None and event.event_time < options.since:
            continue
        if options.until is not None and event.event_time > options.until:
            continue
        kept.append(event)
    return kept


def route_edge(source: LayoutNode, target: LayoutNode, options: LayoutOptions) -> Tuple[Tuple[float, float], ...]:
    """
    Orthogonal route from source to target.

    Same lane: a straight segment. Different lanes: leave the source
    horizontally, turn toward the target lane, run vertically, then turn
    again into the target.
    """
    if source.y == target.y:
        return ((source.x, source.y), (target.x, target.y))

    turn_x = source.x + options.edge_padding + options.corner_radius
    return (
        (source.x, source.y),
        (turn_x, source.y),
        (turn_x, target.y),
        (target.x, target.y),
    )


class LayoutEngine:
    """
    Computes positioned graphs from timeline events.

    Stateless: the same engine can lay out any number of differently
    filtered event lists, from any thread.

    Example:
        engine = LayoutEngine()
        layout = engine.layout(events, LayoutOptions(branches={"main"}))
        lineage = engine.ancestors(layout, layout.nodes[-1].id)
    """

    def __init__(self, options: Optional[LayoutOptions] = None):
        self.options = options or LayoutOptions()

    def layout(self, events: Iterable[EventInput], options: Optional[LayoutOptions] = None) -> Layout:
        """
        Lay out events.

        Args:
            events: TimelineEvent objects or ``{event_type, event_time, payload}`` mappings
            options: Filters and geometry (defaults to the engine's options)

        Returns:
            Layout with one node per valid, unfiltered event
        """
        options = options or self.options

        valid, skipped = self._normalize(events)
        selected = filter_events(valid, options)
        ordered = sorted(selected, key=lambda e: e.event_time)

        lanes_by_branch: Dict[str, int] = {}
        lanes: List[Lane] = []
        nodes: List[LayoutNode] = []
        by_hash: Dict[str, LayoutNode] = {}

        for event in ordered:
            if event.commit_hash in by_hash:
                logger.warning(f"Skipping duplicate event for commit {event.commit_hash[:8]}")
                skipped += 1
                continue

            branch = event.branch or options.default_branch
            lane = lanes_by_branch.get(branch)
            if lane is None:
                lane = len(lanes)
                lanes_by_branch[branch] = lane
                lanes.append(Lane(
                    name=branch,
                    index=lane,
                    color=options.palette[lane % len(options.palette)],
                    y=options.origin_y + lane * options.lane_height,
                    first_hash=event.commit_hash,
                ))

            node = LayoutNode(
                event=event,
                lane=lane,
                time_index=len(nodes),
                x=options.origin_x + len(nodes) * options.time_spacing,
                y=options.origin_y + lane * options.lane_height,
                color=lanes[lane].color,
            )
            nodes.append(node)
            by_hash[event.commit_hash] = node

        edges = []
        for node in nodes:
            for parent_hash in node.event.parents:
                parent = by_hash.get(parent_hash)
                if parent is None:
                    continue
                edges.append(LayoutEdge(
                    source=parent,
                    target=node,
                    points=route_edge(parent, node, options),
                    color=node.color,
                    lane=node.lane,
                    corner_radius=options.corner_radius,
                ))

        if skipped:
            logger.warning(f"Layout skipped {skipped} malformed event(s)")

        return Layout(
            nodes=tuple(nodes),
            edges=tuple(edges),
            lanes=tuple(lanes),
            width=len(nodes) * options.time_spacing + 2 * options.origin_x,
            height=len(lanes) * options.lane_height + 2 * options.origin_y,
            skipped=skipped,
        )

    def _normalize(self, events: Iterable[EventInput]) -> Tuple[List[TimelineEvent], int]:
        valid = []
        skipped = 0
        for position, raw in enumerate(events):
            try:
                valid.append(TimelineEvent.from_record(raw))
            except MalformedEvent as e:
                logger.warning(f"Skipping malformed event #{position}: {e}")
                skipped += 1
        return valid, skipped

    def ancestors(self, layout: Layout, focal_hash: str) -> frozenset:
        """
        Hashes of the focal commit and every ancestor reachable through
        parent links within the layout.

        Iterative depth-first walk. Each hash is visited at most once and the
        walk never takes more steps than the layout has nodes, so duplicate
        or self-referencing parents and cyclic input still terminate.
        """
        if focal_hash not in layout:
            return frozenset()

        limit = len(layout)
        visited: Set[str] = set()
        stack = [focal_hash]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            if len(visited) >= limit:
                logger.warning(f"Ancestor walk from {focal_hash[:8]} hit the {limit}-node bound")
                break
            visited.add(current)
            node = layout.node(current)
            for parent_hash in node.event.parents:
                if parent_hash not in visited and parent_hash in layout:
                    stack.append(parent_hash)

        return frozenset(visited)

    def highlight(self, layout: Layout, focal_hash: str) -> Highlight:
        """
        Partition a layout around the focal commit's lineage.

        An edge is emphasized when both of its endpoints are in the lineage;
        everything else is dimmed.
        """
        lineage = self.ancestors(layout, focal_hash)
        emphasized_edges = frozenset(
            e.id for e in layout.edges
            if e.source.id in lineage and e.target.id in lineage
        )
        return Highlight(
            focal=focal_hash,
            ancestors=lineage,
            emphasized_edges=emphasized_edges,
            dimmed_nodes=frozenset(n.id for n in layout.nodes if n.id not in lineage),
            dimmed_edges=frozenset(e.id for e in layout.edges if e.id not in emphasized_edges),
        )
