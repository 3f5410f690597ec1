"""Initialize project command."""

import click

from ..config import get_settings
from ..db import LocalRepository
from .base import async_command, echo_info, echo_success


@click.command()
@async_command
async def init():
    """Initialize the liftlog data directory and database.

    This creates the data directory, the SQLite schema and this install's
    device ID. Running it again is harmless.
    """
    settings = get_settings()
    data_dir = settings.data_dir

    echo_info(f"Initializing liftlog in {data_dir}")
    data_dir.mkdir(parents=True, exist_ok=True)

    repository = await LocalRepository.open(settings.db_path)
    echo_success("Database initialized")
    echo_info(f"Device ID: {repository.device_id}")

    click.echo()
    click.echo("liftlog is ready to use!")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Create a workout and its tasks:")
    click.echo('     liftlog workout add "Push Day"')
    click.echo('     liftlog task add "Bench Press" --workout 1')
    click.echo()
    click.echo("  2. Log a session:")
    click.echo("     liftlog log add 1 10x60 8x65 6x70")
    click.echo()
    click.echo("  3. Sync across devices:")
    click.echo("     liftlog sync login")
