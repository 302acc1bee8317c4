"""
Database commands for repotimeline.

Inspect or reset the commit store.
"""

import json

import click

from ..cli_utils import get_timeline, standard_command
from ..database import get_database_info, get_db_path, reset_database
from ..render import render_database_info


@click.group('db')
def db_cmd():
    """Inspect and manage the commit store."""
    pass


def _db_path(ctx):
    timeline = get_timeline(ctx)
    return ctx.obj.get('db_path') or get_db_path(timeline.config)


@db_cmd.command('info')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.pass_context
@standard_command
def db_info(ctx, output_json: bool):
    """Show commit store location, size and row counts."""
    info = get_database_info(db_path=_db_path(ctx))
    if output_json:
        print(json.dumps(info, indent=2))
    else:
        render_database_info(info)


@db_cmd.command('path')
@click.pass_context
def db_path(ctx):
    """Print the commit store path."""
    click.echo(str(_db_path(ctx)))


@db_cmd.command('reset')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
@standard_command
def db_reset(ctx, yes: bool):
    """Delete all stored repositories, commits and events."""
    path = _db_path(ctx)
    if not yes:
        click.confirm(f"Delete everything in {path}?", abort=True)
    reset_database(db_path=path)
    click.echo("Database reset.", err=True)
