"""
Analyze command for repotimeline.

Runs the whole pipeline for one repository: ingest, synthesize and lay out.
"""

import json

import click

from ..cli_utils import build_layout_options, get_timeline, layout_options, standard_command
from ..render import render_layout_summary


@click.command('analyze')
@click.argument('repo_ref')
@layout_options
@click.option('--json', 'output_json', is_flag=True, help='Output the layout as JSON')
@click.pass_context
@standard_command
def analyze_handler(ctx, repo_ref: str, branches, search, since, until, output_json: bool):
    """
    Ingest, synthesize and lay out a repository in one step.

    Branches that fail to ingest are reported; the layout covers what was stored.

    \b
    Examples:
        repotimeline analyze octocat/hello-world
        repotimeline analyze https://github.com/octocat/hello-world --json
    """
    timeline = get_timeline(ctx)
    options = build_layout_options(timeline, branches, search, since, until)
    result = timeline.analyze(repo_ref, options)

    if output_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False), flush=True)
    else:
        render_layout_summary(result)
