"""CLI entry point for liftlog."""

import logging
import sys

import click

from . import __version__
from .commands import export, import_snapshot, init, log, serve, sync, task, workout
from .config import get_settings


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr so stdout stays clean for exports."""
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(version=__version__, prog_name="liftlog")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """liftlog: workout log with offline-first sync across devices.

    Everything is stored locally first; changes are queued and merged into a
    private GitHub gist whenever the network and a token are available.

    Example usage:

        # Initialize the project
        liftlog init

        # Build a workout and log a session
        liftlog workout add "Push Day"
        liftlog task add "Bench Press" --workout 1
        liftlog log add 1 10x60 8x65

        # Connect devices
        liftlog sync login
        liftlog sync status
    """
    configure_logging(verbose)


# Register commands
main.add_command(init)
main.add_command(workout)
main.add_command(task)
main.add_command(log)
main.add_command(sync)
main.add_command(export)
main.add_command(import_snapshot)
main.add_command(serve)


def run():
    """Run the CLI (handles async event loop)."""
    main()


if __name__ == "__main__":
    run()
