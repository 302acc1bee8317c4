"""
Rendering functions for repotimeline output.

This module handles all pretty-printing and table formatting.
Services return data, this module makes it human-readable.
"""

from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.table import Table

from .domain import EventKind, Highlight, Layout, TimelineEvent
from .utils import short_hash

console = Console()

KIND_STYLES = {
    EventKind.COMMIT: "white",
    EventKind.MERGE: "magenta",
    EventKind.BRANCH_START: "green",
}


def _table(title: str) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_ingest_result(result: Dict[str, Any]) -> None:
    """
    Render the outcome of an ingestion run.

    Args:
        result: IngestResult.to_dict() output
    """
    console.print(f"[bold]{result['repository']}[/bold] (id {result['repository_id']})")
    console.print(f"  Branches: {result['branches']}")
    console.print(f"  Commits fetched: {result['commits_fetched']}")
    console.print(f"  [green]New commits: {result['commits_inserted']}[/green]")
    for branch, error in result.get('failed', {}).items():
        console.print(f"  [red]✗[/red] {branch}: {error}")


def render_events_table(events: List[TimelineEvent]) -> None:
    """
    Render timeline events as a table, oldest first.

    Args:
        events: Events as returned by fetch_events
    """
    if not events:
        console.print("[yellow]No events found. Run 'repotimeline synthesize' first.[/yellow]")
        return

    table = _table(f"Timeline ({len(events)} events)")
    table.add_column("Time", style="dim")
    table.add_column("Type")
    table.add_column("Branch", style="cyan")
    table.add_column("Commit", style="yellow")
    table.add_column("Author")
    table.add_column("Message")

    for event in events:
        style = KIND_STYLES.get(event.kind, "white")
        message = event.message.splitlines()[0] if event.message else ''
        table.add_row(
            event.event_time.strftime('%Y-%m-%d %H:%M'),
            f"[{style}]{event.kind.value}[/{style}]",
            event.branch or '',
            short_hash(event.commit_hash),
            event.author,
            message[:60],
        )

    console.print(table)


def render_layout_summary(layout: Layout) -> None:
    """
    Render the lanes of a layout plus its canvas size.

    Args:
        layout: Layout from the layout engine
    """
    if not layout.nodes:
        console.print("[yellow]No events to lay out.[/yellow]")
        return

    per_lane: Dict[int, int] = {}
    for node in layout.nodes:
        per_lane[node.lane] = per_lane.get(node.lane, 0) + 1

    table = _table(f"Lanes ({len(layout.lanes)})")
    table.add_column("Lane", justify="right")
    table.add_column("Branch", style="cyan")
    table.add_column("Color")
    table.add_column("Events", justify="right")
    table.add_column("First commit", style="yellow")

    for lane in layout.lanes:
        table.add_row(
            str(lane.index),
            lane.name,
            f"[{lane.color}]■[/{lane.color}] {lane.color}",
            str(per_lane.get(lane.index, 0)),
            short_hash(lane.first_hash),
        )

    console.print(table)
    console.print(
        f"{len(layout.nodes)} nodes, {len(layout.edges)} edges, "
        f"canvas {layout.width:g}x{layout.height:g}"
    )
    if layout.skipped:
        console.print(f"[yellow]{layout.skipped} event(s) skipped[/yellow]")


def render_highlight(layout: Layout, highlight: Highlight) -> None:
    """
    Render the lineage of a focal commit in time order.

    Args:
        layout: Layout the highlight was computed on
        highlight: Result of LayoutEngine.highlight
    """
    if not highlight.ancestors:
        console.print(f"[yellow]Commit {highlight.focal} is not in the layout.[/yellow]")
        return

    table = _table(f"Lineage of {short_hash(highlight.focal)} ({len(highlight.ancestors)} commits)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Commit", style="yellow")
    table.add_column("Branch", style="cyan")
    table.add_column("Type")
    table.add_column("Message")

    for node in layout.nodes:
        if node.id not in highlight.ancestors:
            continue
        marker = " ◆" if node.id == highlight.focal else ""
        table.add_row(
            str(node.time_index),
            short_hash(node.id) + marker,
            node.branch_label,
            node.event.kind.value,
            (node.event.message.splitlines()[0] if node.event.message else '')[:60],
        )

    console.print(table)
    console.print(
        f"{len(highlight.emphasized_edges)} edges emphasized, "
        f"{len(highlight.dimmed_nodes)} nodes dimmed"
    )


def render_status(info: Dict[str, Any]) -> None:
    """
    Render the stored state of one repository.

    Args:
        info: RepoTimeline.status() output
    """
    table = _table(f"{info['owner']}/{info['name']}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("ID", str(info['id']))
    table.add_row("URL", info['url'] or '')
    table.add_row("Last analyzed", info['last_analyzed'] or "[dim]never[/dim]")
    table.add_row("Branches", str(info['branches']))
    table.add_row("Commits", str(info['commits']))
    table.add_row("Events", str(info['events']))
    for kind, count in info.get('by_type', {}).items():
        table.add_row(f"  {kind}", str(count))

    console.print(table)


def render_database_info(info: Dict[str, Any]) -> None:
    """
    Render commit store statistics.

    Args:
        info: get_database_info() output
    """
    if not info.get('exists'):
        console.print(f"[yellow]No database at {info['path']}[/yellow]")
        return

    table = _table("Commit store")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Path", info['path'])
    table.add_row("Size", info['size_human'])
    table.add_row("Schema version", str(info['schema_version']))
    for key in ('repositories', 'branches', 'commits', 'timeline_events'):
        table.add_row(key.replace('_', ' ').capitalize(), str(info.get(key, 0)))

    console.print(table)
