"""
Ingest command for repotimeline.

Pulls a repository's branches and commit windows into the commit store.
"""

import json

import click

from ..cli_utils import get_timeline, standard_command
from ..exit_codes import PartialIngestionFailure
from ..render import render_ingest_result


@click.command('ingest')
@click.argument('repo_ref')
@click.option('--window', '-w', type=click.IntRange(min=1),
              help='Commits fetched per branch (default: github.commit_window)')
@click.option('--synthesize', 'then_synthesize', is_flag=True,
              help='Regenerate the timeline after ingesting')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.pass_context
@standard_command
def ingest_handler(ctx, repo_ref: str, window, then_synthesize: bool, output_json: bool):
    """
    Ingest a GitHub repository into the commit store.

    REPO_REF may be owner/name or a GitHub URL. Re-running is safe: commits
    already stored keep their original branch attribution.

    \b
    Examples:
        repotimeline ingest octocat/hello-world
        repotimeline ingest https://github.com/octocat/hello-world --synthesize
        repotimeline ingest git@github.com:octocat/hello-world.git --json
    """
    timeline = get_timeline(ctx)
    if window:
        timeline.ingester.commit_window = window

    try:
        repository_id = timeline.ingest(repo_ref)
    except PartialIngestionFailure:
        # Stored branches are kept; show what made it before failing
        _report(timeline.last_ingest.to_dict(), output_json)
        raise

    result = timeline.last_ingest.to_dict()
    if then_synthesize:
        result['events'] = timeline.synthesize(repository_id)
    _report(result, output_json)


def _report(result: dict, output_json: bool) -> None:
    if output_json:
        print(json.dumps(result, ensure_ascii=False), flush=True)
        return
    render_ingest_result(result)
    if 'events' in result:
        click.echo(f"  Events: {result['events']}")
