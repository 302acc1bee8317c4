"""
Status command for repotimeline.

Shows what the commit store holds for one repository, or for all of them.
"""

import json
from typing import Optional

import click

from ..cli_utils import get_timeline, standard_command
from ..render import render_status, console
from ..services import parse_repo_reference


@click.command('status')
@click.argument('repo_ref', required=False)
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON (JSONL when listing)')
@click.pass_context
@standard_command
def status_handler(ctx, repo_ref: Optional[str], output_json: bool):
    """
    Show the stored state of a repository.

    Without REPO_REF, lists every repository in the store.

    \b
    Examples:
        repotimeline status
        repotimeline status octocat/hello-world
        repotimeline status octocat/hello-world --json
    """
    timeline = get_timeline(ctx)

    if repo_ref is None:
        repos = timeline.repositories()
        if output_json:
            for repo in repos:
                print(json.dumps(repo.to_dict(), ensure_ascii=False), flush=True)
            return
        if not repos:
            console.print("[yellow]No repositories ingested yet. Run 'repotimeline ingest OWNER/NAME'.[/yellow]")
            return
        for repo in repos:
            analyzed = repo.to_dict()['last_analyzed'] or 'never'
            console.print(f"[cyan]{repo.full_name}[/cyan] (id {repo.id}) last analyzed {analyzed}")
        return

    owner, name = parse_repo_reference(repo_ref)
    info = timeline.status(owner, name)

    if output_json:
        print(json.dumps(info, ensure_ascii=False), flush=True)
    else:
        render_status(info)
