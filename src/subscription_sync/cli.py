"""
Command-line interface for GitHub Subscription Sync.
"""

import click
import sys
import traceback
from typing import Optional
from pathlib import Path

from . import __version__
from .config import ConfigManager
from .error_handling import SubscriptionSyncError
from .logging import LoggerConfig, close_logging, setup_logging
from .orchestrator import SyncManager


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML configuration file'
)
@click.option(
    '--verbose', '-v',
    count=True,
    help='Increase verbosity (-v for info, -vv for debug)'
)
@click.option(
    '--org',
    help='Organization whose repositories are synchronized'
)
@click.option(
    '--manifest', '-m',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Path of the subscription manifest (JSON)'
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    org: Optional[str],
    manifest: Optional[Path]
) -> None:
    """
    Synchronize GitHub notification subscriptions with a local manifest.

    Typical workflow:

        github-subscription-sync export

        # edit subscriptions.json, or:
        github-subscription-sync unsubscribe-new

        github-subscription-sync update
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_usage(), err=True)
        ctx.exit(2)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    try:
        app_config = ConfigManager(config).load_config({
            'sync.organization': org,
            'sync.manifest_path': str(manifest) if manifest else None,
        })
    except SubscriptionSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setup_logging(LoggerConfig.from_app_config(app_config.logging, verbose))
    ctx.call_on_close(close_logging)
    ctx.obj['config'] = app_config


def _manager(ctx: click.Context) -> SyncManager:
    return SyncManager(ctx.obj['config'])


def _fail(ctx: click.Context, error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose', 0) > 1:
        traceback.print_exc()
    sys.exit(1)


@cli.command()
@click.pass_context
def export(ctx: click.Context) -> None:
    """
    Write the current subscriptions of every repository to the manifest.

    Repositories that were not in the previous manifest are marked as new.
    """
    try:
        summary = _manager(ctx).export()
    except SubscriptionSyncError as e:
        _fail(ctx, e)
        return

    click.echo(
        f"Exported {summary.total} repositories "
        f"({summary.new} new, {summary.dropped} dropped)"
    )


@cli.command()
@click.option(
    '--continue-on-error/--stop-on-error',
    default=None,
    help='Keep going when a repository fails to update and report failures at the end'
)
@click.pass_context
def update(ctx: click.Context, continue_on_error: Optional[bool]) -> None:
    """
    Apply the manifest to GitHub.

    Only repositories whose desired status differs from GitHub are changed.
    """
    try:
        result = _manager(ctx).update(continue_on_error=continue_on_error)
    except SubscriptionSyncError as e:
        _fail(ctx, e)
        return

    click.echo(
        f"{len(result.updated)} updated, {len(result.skipped)} already up-to-date"
        + (f", {len(result.failed)} failed" if result.failed else "")
    )
    if result.failed:
        for repo, message in result.failed:
            click.echo(f"  - {repo}: {message}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def review(ctx: click.Context) -> None:
    """Show the manifest sorted by status, one repository per line."""
    try:
        listing = _manager(ctx).review()
    except SubscriptionSyncError as e:
        _fail(ctx, e)
        return

    click.echo_via_pager(listing)


@cli.command('unsubscribe-new')
@click.pass_context
def unsubscribe_new(ctx: click.Context) -> None:
    """
    Unsubscribe from repositories that the last export marked as new.

    Only the manifest is changed; run 'update' to push it to GitHub.
    """
    try:
        changed = _manager(ctx).unsubscribe_new()
    except SubscriptionSyncError as e:
        _fail(ctx, e)
        return

    for repo in changed:
        click.echo(f"{repo}: SUBSCRIBED -> UNSUBSCRIBED")
    click.echo(f"{len(changed)} repositories changed in the manifest")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
