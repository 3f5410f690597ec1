"""Sync commands: credentials, manual passes and outbox control."""

import asyncio
import logging

import click
import questionary

from ..models.outbox import OutboxStatus
from ..sync import AuthError, DrainResult, SyncError, SyncOutcome
from ..utils.timeutils import format_ms
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    open_context,
)


def _report_outcome(outcome: SyncOutcome) -> None:
    stats = outcome.stats
    if stats.total_changes:
        echo_info(
            f"Imported {stats.tasks_created} new / {stats.tasks_updated} updated tasks, "
            f"{stats.workouts_created} new / {stats.workouts_updated} updated workouts, "
            f"{stats.log_entries_created} log entries "
            f"({stats.log_entries_duplicate} duplicates skipped)"
        )
    for issue in outcome.issues:
        echo_warning(f"Skipped {issue}")


def _report_drain(result: DrainResult) -> None:
    if result.stopped == "busy":
        echo_warning("Another sync is running; try again shortly")
        return
    if not result.ran:
        echo_info("Nothing to sync")
        return
    if result.synced:
        echo_success(f"Synced {len(result.synced)} change(s)")
    for item_id, error in result.errors.items():
        echo_warning(f"Outbox item {item_id}: {error}")
    if result.failed:
        echo_error(
            f"{len(result.failed)} change(s) gave up after repeated failures; "
            "run 'liftlog sync retry-failed'"
        )
    if result.stopped == "auth":
        echo_error("GitHub rejected the token. Run 'liftlog sync login' again.")
    elif result.stopped == "network":
        echo_warning("Network unavailable; pending changes will be retried")


@click.group()
@click.pass_context
def sync(ctx):
    """Synchronize with the GitHub gist shared by your devices."""
    ensure_initialized(ctx)


@sync.command()
@click.option("--token", help="GitHub personal access token with the gist scope")
@click.pass_context
@async_command
async def login(ctx, token: str | None):
    """Store a GitHub token and run a first sync."""
    if not token:
        token = await questionary.password(
            "GitHub personal access token (gist scope):"
        ).ask_async()
    if not token or not token.strip():
        echo_error("No token given")
        ctx.exit(1)

    app = await open_context()
    await app.client.set_token(token)
    app.processor.reset_auth()

    try:
        outcome = await app.engine.sync_once()
    except AuthError as e:
        await app.client.logout()
        echo_error(str(e))
        ctx.exit(1)
    except SyncError as e:
        echo_warning(f"Token stored, but the first sync failed: {e}")
        return

    _report_outcome(outcome)
    echo_success(f"Logged in; syncing with gist {outcome.document_id}")


@sync.command()
@async_command
async def logout():
    """Forget the token and remembered gist (local data is kept)."""
    app = await open_context()
    await app.client.logout()
    echo_success("Logged out")


@sync.command()
@click.pass_context
@async_command
async def now(ctx):
    """Drain pending changes now, or run a single full pass if none are pending."""
    app = await open_context()
    if not await app.client.is_authenticated():
        echo_error("Not logged in. Run 'liftlog sync login' first.")
        ctx.exit(1)

    counts = await app.repository.outbox.count_by_status()
    if counts[OutboxStatus.PENDING]:
        _report_drain(await app.processor.drain())
        return

    try:
        outcome = await app.engine.sync_once()
    except SyncError as e:
        echo_error(f"Sync failed: {e}")
        ctx.exit(1)

    _report_outcome(outcome)
    if outcome.skipped:
        echo_warning("Another upload is in progress; nothing was written")
        return
    echo_success(f"Synced with gist {outcome.document_id}")


@sync.command()
@click.pass_context
@async_command
async def pull(ctx):
    """Merge the remote document into local data without uploading."""
    app = await open_context()
    try:
        outcome = await app.engine.pull()
    except SyncError as e:
        echo_error(f"Pull failed: {e}")
        ctx.exit(1)

    if outcome.document_id is None:
        echo_info("No remote document yet")
        return
    _report_outcome(outcome)
    echo_success("Pulled")


@sync.command()
@click.pass_context
@async_command
async def push(ctx):
    """Upload local data, replacing the remote document (no merge)."""
    app = await open_context()
    try:
        outcome = await app.engine.push()
    except SyncError as e:
        echo_error(f"Push failed: {e}")
        ctx.exit(1)

    if outcome.skipped:
        echo_warning("Not uploaded (not logged in, or another upload in progress)")
        return
    echo_success(f"Pushed to gist {outcome.document_id}")


@sync.command()
@async_command
async def status():
    """Show login state, outbox counts and the last successful sync."""
    app = await open_context(auto_sync=False)
    current = await app.processor.status()
    snapshot = await app.repository.export_snapshot()

    click.echo()
    click.echo(f"Device:       {app.repository.device_id}")
    click.echo(f"Logged in:    {'yes' if current.authenticated else 'no'}")
    click.echo(f"Gist:         {current.document_id or 'not created yet'}")
    click.echo(f"Last sync:    {format_ms(current.last_sync)}")
    click.echo(f"Pending:      {current.pending}")
    click.echo(f"Failed:       {current.failed}")
    click.echo(f"Local data:   {snapshot.get_summary()}")
    click.echo()
    if current.failed:
        echo_warning("Some changes failed to sync. Run 'liftlog sync retry-failed'.")


@sync.command(name="retry-failed")
@async_command
async def retry_failed():
    """Re-queue failed changes with a fresh retry budget and drain."""
    app = await open_context()
    result = await app.processor.retry_failed()
    _report_drain(result)


@sync.command()
@click.option("--interval", type=float, help="Seconds between drains (default from settings)")
@click.pass_context
def watch(ctx, interval: float | None):
    """Keep draining the outbox in the foreground until interrupted."""

    async def _watch():
        app = await open_context()
        if interval:
            app.scheduler.interval = interval
        echo_info(
            f"Watching outbox every {app.scheduler.interval:g}s. Press Ctrl+C to stop."
        )
        await app.scheduler.run()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        logging.getLogger("liftlog.cli").debug("Watch interrupted")
        echo_info("Stopped")
