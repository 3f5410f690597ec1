"""Workout, task and log management commands."""

import click

from ..utils.timeutils import format_ms
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    open_context,
    parse_sets,
)


# --- Workouts ---


@click.group()
@click.pass_context
def workout(ctx):
    """Manage workouts (ordered groups of tasks)."""
    ensure_initialized(ctx)


@workout.command(name="add")
@click.argument("name")
@click.pass_context
@async_command
async def add_workout(ctx, name: str):
    """Create a workout."""
    app = await open_context()
    try:
        created = await app.tracker.create_workout(name)
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Workout '{created.name}' created (ID: {created.id})")


@workout.command(name="list")
@async_command
async def list_workouts():
    """List workouts and their tasks."""
    app = await open_context(auto_sync=False)
    workouts = await app.repository.workouts.get_all()
    if not workouts:
        echo_info("No workouts yet. Create one with 'liftlog workout add'")
        return

    tasks = {t.id: t for t in await app.repository.tasks.get_all()}
    for w in workouts:
        click.echo()
        click.echo(click.style(f"{w.name} (ID: {w.id})", bold=True))
        if not w.task_ids:
            click.echo("  (no tasks)")
        for task_id in w.task_ids:
            task = tasks.get(task_id)
            label = task.name if task else click.style("missing task", fg="yellow")
            click.echo(f"  [{task_id}] {label}")
    click.echo()


@workout.command(name="add-task")
@click.argument("workout_id", type=int)
@click.argument("task_id", type=int)
@click.pass_context
@async_command
async def add_task(ctx, workout_id: int, task_id: int):
    """Add an existing task to a workout."""
    app = await open_context()
    try:
        updated = await app.tracker.add_task_to_workout(workout_id, task_id)
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Workout '{updated.name}' now has {len(updated.task_ids)} task(s)")


@workout.command(name="move-task")
@click.argument("workout_id", type=int)
@click.argument("task_id", type=int)
@click.option("--down", is_flag=True, help="Move one place down instead of up")
@click.pass_context
@async_command
async def move_task(ctx, workout_id: int, task_id: int, down: bool):
    """Reorder a task within a workout."""
    app = await open_context()
    try:
        await app.tracker.move_task(workout_id, task_id, 1 if down else -1)
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success("Task moved")


@workout.command(name="delete")
@click.argument("workout_id", type=int)
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
@async_command
async def delete_workout(ctx, workout_id: int, force: bool):
    """Delete a workout (its tasks and history are kept)."""
    app = await open_context()
    existing = await app.repository.workouts.get_by_id(workout_id)
    if not existing:
        echo_error(f"Workout ID {workout_id} not found")
        ctx.exit(1)

    if not force and not click.confirm(f"Delete workout '{existing.name}'?"):
        echo_info("Cancelled")
        return

    await app.tracker.delete_workout(workout_id)
    echo_success(f"Workout {workout_id} deleted")


# --- Tasks ---


@click.group()
@click.pass_context
def task(ctx):
    """Manage tasks (exercises)."""
    ensure_initialized(ctx)


@task.command(name="add")
@click.argument("name")
@click.option("--workout", "-w", "workout_id", type=int, help="Add to this workout")
@click.option("--tips", default="", help="Short form cues")
@click.option("--instructions", default="", help="Longer instructions")
@click.option("--video", "video_ref", help="Video URL or file name")
@click.option("--sets", "default_sets", default=3, show_default=True, type=int)
@click.option("--reps", "default_reps", default=10, show_default=True, type=int)
@click.pass_context
@async_command
async def add_task_cmd(
    ctx,
    name: str,
    workout_id: int | None,
    tips: str,
    instructions: str,
    video_ref: str | None,
    default_sets: int,
    default_reps: int,
):
    """Create a task."""
    app = await open_context()
    try:
        created = await app.tracker.create_task(
            name,
            tips=tips,
            instructions=instructions,
            video_ref=video_ref,
            default_sets=default_sets,
            default_reps=default_reps,
            workout_id=workout_id,
        )
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Task '{created.name}' created (ID: {created.id})")


@task.command(name="list")
@async_command
async def list_tasks():
    """List all tasks."""
    app = await open_context(auto_sync=False)
    tasks = await app.repository.tasks.get_all()
    if not tasks:
        echo_info("No tasks yet. Create one with 'liftlog task add'")
        return

    headers = ["ID", "Name", "Default", "Modified"]
    rows = [
        [
            str(t.id),
            t.name[:30] + "..." if len(t.name) > 30 else t.name,
            f"{t.default_sets}x{t.default_reps}",
            format_ms(t.last_modified),
        ]
        for t in tasks
    ]

    click.echo()
    click.echo(format_table(headers, rows))
    click.echo()
    click.echo(f"Total: {len(tasks)} task(s)")


@task.command(name="edit")
@click.argument("task_id", type=int)
@click.option("--name")
@click.option("--tips")
@click.option("--instructions")
@click.option("--video", "video_ref")
@click.option("--sets", "default_sets", type=int)
@click.option("--reps", "default_reps", type=int)
@click.pass_context
@async_command
async def edit_task(ctx, task_id: int, **changes):
    """Edit a task's fields."""
    app = await open_context()
    existing = await app.repository.tasks.get_by_id(task_id)
    if not existing:
        echo_error(f"Task ID {task_id} not found")
        ctx.exit(1)

    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        echo_info("Nothing to change")
        return

    for key, value in changes.items():
        setattr(existing, key, value)
    await app.tracker.update_task(existing)
    echo_success(f"Task {task_id} updated")


@task.command(name="delete")
@click.argument("task_id", type=int)
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
@async_command
async def delete_task(ctx, task_id: int, force: bool):
    """Delete a task and its logged history."""
    app = await open_context()
    existing = await app.repository.tasks.get_by_id(task_id)
    if not existing:
        echo_error(f"Task ID {task_id} not found")
        ctx.exit(1)

    if not force:
        history = await app.repository.log_entries.get_by_task(task_id)
        click.echo(f"Task: {existing.name} ({len(history)} log entries)")
        if not click.confirm("Are you sure you want to delete this task?"):
            echo_info("Cancelled")
            return

    await app.tracker.delete_task(task_id)
    echo_success(f"Task {task_id} deleted")


# --- Log ---


@click.group()
@click.pass_context
def log(ctx):
    """Log completed sets and view history."""
    ensure_initialized(ctx)


@log.command(name="add")
@click.argument("task_id", type=int)
@click.argument("sets", nargs=-1, required=True)
@click.pass_context
@async_command
async def add_log(ctx, task_id: int, sets: tuple[str, ...]):
    """Log sets for a task, e.g. ``liftlog log add 1 10x60 8x65``."""
    parsed = parse_sets(sets)
    app = await open_context()
    try:
        entry = await app.tracker.log_sets(task_id, parsed)
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Logged {entry.format_sets()} (volume {entry.total_volume:g} kg)")


@log.command(name="history")
@click.argument("task_id", type=int)
@click.option("--limit", "-n", default=10, show_default=True, help="Entries to show")
@click.pass_context
@async_command
async def history(ctx, task_id: int, limit: int):
    """Show recent log entries for a task."""
    app = await open_context(auto_sync=False)
    existing = await app.repository.tasks.get_by_id(task_id)
    if not existing:
        echo_error(f"Task ID {task_id} not found")
        ctx.exit(1)

    entries = await app.repository.log_entries.get_by_task(task_id, limit=limit)
    if not entries:
        echo_info(f"No history for '{existing.name}'")
        return

    headers = ["ID", "Date", "Sets", "Volume"]
    rows = [
        [str(e.id), format_ms(e.date), e.format_sets(), f"{e.total_volume:g}"]
        for e in entries
    ]
    click.echo()
    click.echo(click.style(existing.name, bold=True))
    click.echo(format_table(headers, rows))


@log.command(name="delete")
@click.argument("entry_id", type=int)
@click.pass_context
@async_command
async def delete_log(ctx, entry_id: int):
    """Delete a log entry."""
    app = await open_context()
    try:
        await app.tracker.delete_log_entry(entry_id)
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Log entry {entry_id} deleted")
