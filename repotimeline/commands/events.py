"""
Events command for repotimeline.

Queries timeline events from the commit store (populated by 'repotimeline synthesize').
"""

import click

from ..cli_utils import get_timeline, resolve_repository_id, standard_command
from ..domain import EventKind
from ..render import render_events_table


@click.command('events')
@click.argument('repository')
@click.option('--type', '-t', 'event_type',
              type=click.Choice([k.value for k in EventKind], case_sensitive=False),
              help='Only events of this type')
@click.option('--limit', '-n', type=int, default=0,
              help='Show only the most recent N events (default: all)')
@click.option('--json', 'output_json', is_flag=True,
              help='Output as JSONL (default: pretty table)')
@click.pass_context
@standard_command
def events_handler(ctx, repository: str, event_type, limit: int, output_json: bool):
    """
    List a repository's timeline events, oldest first.

    REPOSITORY is a store id or owner/name.

    \b
    Examples:
        repotimeline events octocat/hello-world
        repotimeline events octocat/hello-world --type MERGE
        # JSONL output, e.g. as input to 'repotimeline layout --input -'
        repotimeline events octocat/hello-world --json
    """
    timeline = get_timeline(ctx)
    repository_id = resolve_repository_id(timeline, repository)
    events = timeline.fetch_events(
        repository_id,
        event_type=event_type.upper() if event_type else None,
    )
    if limit > 0:
        events = events[-limit:]

    if output_json:
        for event in events:
            print(event.to_jsonl(), flush=True)
    else:
        render_events_table(events)
