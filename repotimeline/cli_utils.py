"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
from datetime import date, timedelta
from functools import wraps
from typing import Optional

import click

from .api import RepoTimeline
from .domain import LayoutOptions
from .exit_codes import (
    INTERRUPTED, USAGE_ERROR,
    get_exit_code_for_exception, CommandError
)
from .services import parse_repo_reference
from .utils import parse_timestamp


def standard_command(func):
    """
    Decorator that provides standard CLI error behavior:
    - CommandError: message on stderr, exit with the error's code
    - --json commands also get a JSON error object on stdout
    - Ctrl+C exits with INTERRUPTED
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        output_json = kwargs.get('output_json', False)
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            click.echo(f"Error: {e}", err=True)
            if output_json:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                # Partial ingestion carries per-branch detail
                if hasattr(e, 'succeeded'):
                    error_obj['repository_id'] = e.repository_id
                    error_obj['succeeded'] = e.succeeded
                    error_obj['failed'] = e.failed
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except (OSError, ValueError) as e:
            click.echo(f"Command failed: {e}", err=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def get_timeline(ctx: click.Context) -> RepoTimeline:
    """RepoTimeline built from the group's --config/--db options, cached on the context."""
    obj = ctx.ensure_object(dict)
    if 'timeline' not in obj:
        obj['timeline'] = RepoTimeline(
            config=obj.get('config'),
            db_path=obj.get('db_path'),
        )
    return obj['timeline']


def resolve_repository_id(timeline: RepoTimeline, reference: str) -> int:
    """
    Accept either a store id or an ``owner/name`` reference.

    Raises:
        InvalidReference: if the reference is neither
        RepositoryNotFound: if the repository has not been ingested
    """
    if reference.isdigit():
        return int(reference)
    owner, name = parse_repo_reference(reference)
    return timeline.status(owner, name)['id']


def parse_time_option(ctx, param, value):
    """click callback turning an ISO date/time option into an aware datetime."""
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise click.BadParameter(f"expected an ISO date or timestamp, got {value!r}")


def parse_until_option(ctx, param, value):
    """Like parse_time_option, but a bare date means the end of that day."""
    parsed = parse_time_option(ctx, param, value)
    if parsed is not None and _is_date_only(value):
        return parsed + timedelta(days=1, microseconds=-1)
    return parsed


def _is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def layout_options(f):
    """Decorator adding the layout filter options to a command."""
    f = click.option('--until', callback=parse_until_option,
                     help='Only events at or before this time (ISO date; a bare date includes that whole day)')(f)
    f = click.option('--since', callback=parse_time_option,
                     help='Only events at or after this time (ISO date)')(f)
    f = click.option('--search', '-s',
                     help='Match commit messages (case-insensitive) or hash substrings')(f)
    f = click.option('--branch', '-b', 'branches', multiple=True,
                     help='Only events on this branch (repeatable)')(f)
    return f


def build_layout_options(timeline: RepoTimeline, branches: tuple, search: Optional[str],
                         since, until) -> LayoutOptions:
    """LayoutOptions from config geometry and CLI filters."""
    try:
        return timeline.layout_options(
            branches=frozenset(branches) if branches else None,
            search=search or None,
            since=since,
            until=until,
        )
    except ValueError as e:
        click.echo(f"Invalid layout configuration: {e}", err=True)
        sys.exit(USAGE_ERROR)
