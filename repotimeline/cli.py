#!/usr/bin/env python3

import logging
import sys

import click

from repotimeline import __version__
from repotimeline.config import configure_logging, load_config
from repotimeline.exit_codes import ConfigError
from repotimeline.commands.ingest import ingest_handler
from repotimeline.commands.synthesize import synthesize_handler
from repotimeline.commands.events import events_handler
from repotimeline.commands.layout import layout_handler, highlight_handler
from repotimeline.commands.analyze import analyze_handler
from repotimeline.commands.status import status_handler
from repotimeline.commands.db import db_cmd


@click.group()
@click.version_option(version=__version__)
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              envvar='REPOTIMELINE_CONFIG', help='Config file (JSON, YAML or TOML)')
@click.option('--db', 'db_path', type=click.Path(dir_okay=False),
              help='Commit store path (overrides config and REPOTIMELINE_DB)')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
@click.option('--quiet', '-q', is_flag=True, help='Only log warnings and errors')
@click.pass_context
def cli(ctx, config_path, db_path, verbose, quiet):
    """repotimeline - Branch timelines for GitHub repositories.

    Ingests branches and recent commits into a local store, classifies them
    into timeline events and lays them out as a subway map of branch lanes.
    """
    try:
        config = load_config(config_path)
        configure_logging(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)

    if verbose:
        logging.getLogger('repotimeline').setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger('repotimeline').setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['db_path'] = db_path


# Pipeline commands
cli.add_command(ingest_handler, name='ingest')
cli.add_command(synthesize_handler, name='synthesize')
cli.add_command(events_handler, name='events')
cli.add_command(layout_handler, name='layout')
cli.add_command(highlight_handler, name='highlight')
cli.add_command(analyze_handler, name='analyze')
cli.add_command(status_handler, name='status')

# Command groups
cli.add_command(db_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
