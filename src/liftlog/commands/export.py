"""Snapshot export and import commands."""

import json

import click

from ..sync import ValidationError
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    open_context,
)


@click.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Write to file instead of stdout",
)
@click.pass_context
@async_command
async def export(ctx, output: str | None):
    """Export all local data as a snapshot document.

    The document has the same layout as the synced gist file, so it can be
    imported on another install with 'liftlog import'.

    Examples:
        # Print to stdout
        liftlog export

        # Save to file
        liftlog export -o backup.json
    """
    ensure_initialized(ctx)

    app = await open_context(auto_sync=False)
    snapshot = await app.engine.export_snapshot()
    content = json.dumps(snapshot.to_dict(), indent=2)

    if output:
        with open(output, "w") as f:
            f.write(content)
        echo_success(f"Exported {snapshot.get_summary()} to {output}")
    else:
        click.echo(content)


@click.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
@async_command
async def import_snapshot(ctx, file: str):
    """Merge a snapshot file into local data.

    Accepts files from any version of the app; older layouts are upgraded
    first. Entities are matched by ID, then by name, and the newer copy
    wins; logged sessions already present are skipped.
    """
    ensure_initialized(ctx)

    try:
        with open(file) as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        echo_error(f"{file} is not valid JSON: {e}")
        ctx.exit(1)

    app = await open_context(auto_sync=False)
    try:
        outcome = await app.engine.import_snapshot(payload)
    except ValidationError as e:
        echo_error(f"Cannot import {file}: {e}")
        ctx.exit(1)

    stats = outcome.stats
    echo_success(
        f"Imported {stats.tasks_created} new / {stats.tasks_updated} updated tasks, "
        f"{stats.workouts_created} new / {stats.workouts_updated} updated workouts, "
        f"{stats.log_entries_created} log entries"
    )
    if stats.log_entries_duplicate:
        echo_info(f"{stats.log_entries_duplicate} log entries were already present")
    for issue in outcome.issues:
        echo_warning(f"Skipped {issue}")
