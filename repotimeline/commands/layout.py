"""
Layout commands for repotimeline.

Lays a timeline out as lanes, nodes and routed edges, and highlights the
lineage of a single commit.
"""

import json
import logging
from typing import List, Optional

import click

from ..cli_utils import (
    build_layout_options,
    get_timeline,
    layout_options,
    resolve_repository_id,
    standard_command,
)
from ..render import render_highlight, render_layout_summary

logger = logging.getLogger(__name__)


def _load_events(ctx, repository: Optional[str], input_file) -> List:
    """Events from the store, or raw mappings from a JSONL file."""
    timeline = get_timeline(ctx)
    if input_file is not None:
        records = []
        for lineno, line in enumerate(input_file, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                # Kept so the layout engine counts it as skipped
                logger.warning(f"Line {lineno} is not valid JSON: {e}")
                records.append(None)
        return records

    if repository is None:
        raise click.UsageError("Give a REPOSITORY or --input FILE")
    return timeline.fetch_events(resolve_repository_id(timeline, repository))


@click.command('layout')
@click.argument('repository', required=False)
@click.option('--input', '-i', 'input_file', type=click.File('r'),
              help="Read events as JSONL instead of from the store ('-' for stdin)")
@layout_options
@click.option('--json', 'output_json', is_flag=True,
              help='Output the full layout as JSON (default: lane summary)')
@click.pass_context
@standard_command
def layout_handler(ctx, repository, input_file, branches, search, since, until, output_json: bool):
    """
    Lay out a repository's timeline.

    One lane per branch, one column per event in time order. Filters are
    applied before lanes and columns are assigned.

    \b
    Examples:
        repotimeline layout octocat/hello-world
        repotimeline layout octocat/hello-world --branch main --branch dev
        repotimeline layout octocat/hello-world --search fix --since 2024-01-01 --json
        repotimeline events octocat/hello-world --json | repotimeline layout --input -
    """
    timeline = get_timeline(ctx)
    events = _load_events(ctx, repository, input_file)
    options = build_layout_options(timeline, branches, search, since, until)
    result = timeline.layout(events, options)

    if output_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False), flush=True)
    else:
        render_layout_summary(result)


@click.command('highlight')
@click.argument('repository')
@click.argument('commit')
@layout_options
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.pass_context
@standard_command
def highlight_handler(ctx, repository, commit: str, branches, search, since, until, output_json: bool):
    """
    Show the ancestors of COMMIT within a repository's layout.

    COMMIT may be a full hash or a unique prefix of one laid-out commit.

    \b
    Examples:
        repotimeline highlight octocat/hello-world 7fd1a60
        repotimeline highlight octocat/hello-world 7fd1a60 --branch main --json
    """
    timeline = get_timeline(ctx)
    events = _load_events(ctx, repository, None)
    options = build_layout_options(timeline, branches, search, since, until)
    result = timeline.layout(events, options)

    matches = [node.id for node in result.nodes if node.id.startswith(commit)]
    if len(matches) > 1 and commit not in matches:
        raise click.BadParameter(f"{commit!r} matches {len(matches)} commits", param_hint='COMMIT')
    focal = commit if commit in result else (matches[0] if matches else commit)

    highlight = timeline.highlight(result, focal)

    if output_json:
        print(json.dumps(highlight.to_dict(), ensure_ascii=False), flush=True)
    else:
        render_highlight(result, highlight)
