"""
Synthesize command for repotimeline.

Regenerates a repository's timeline events from its stored commits.
"""

import json

import click

from ..cli_utils import get_timeline, resolve_repository_id, standard_command


@click.command('synthesize')
@click.argument('repository')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.pass_context
@standard_command
def synthesize_handler(ctx, repository: str, output_json: bool):
    """
    Classify a repository's commits into timeline events.

    REPOSITORY is a store id or owner/name. Previous events are replaced.

    \b
    Examples:
        repotimeline synthesize octocat/hello-world
        repotimeline synthesize 3 --json
    """
    timeline = get_timeline(ctx)
    repository_id = resolve_repository_id(timeline, repository)
    count = timeline.synthesize(repository_id)

    if output_json:
        print(json.dumps({'repository_id': repository_id, 'events': count}), flush=True)
    else:
        click.echo(f"Synthesized {count} events for repository {repository_id}")
