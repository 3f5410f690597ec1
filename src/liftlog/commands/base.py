"""Shared CLI utilities."""

import asyncio
import re
from functools import wraps

import click

from ..config import get_settings
from ..models.workout import SetEntry
from ..services.context import AppContext, create_context


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_settings().db_path
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'liftlog init' first."
        )
        ctx.exit(1)


async def open_context(auto_sync: bool = True) -> AppContext:
    """Open the configured database with the sync services attached."""
    return await create_context(auto_sync=auto_sync)


_SET_PATTERN = re.compile(r"^\s*(\d+)\s*[xX@]\s*(\d+(?:\.\d+)?)\s*$")


def parse_sets(values: tuple[str, ...] | list[str]) -> list[SetEntry]:
    """Parse ``REPSxWEIGHT`` tokens (e.g. ``10x60`` or ``8@62.5``).

    Raises:
        click.BadParameter: If a token is not in that form
    """
    sets = []
    for value in values:
        match = _SET_PATTERN.match(value)
        if not match:
            raise click.BadParameter(f"'{value}' is not REPSxWEIGHT (e.g. 10x60)")
        sets.append(SetEntry(reps=int(match.group(1)), weight=float(match.group(2))))
    return sets


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message)


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format data as a simple table."""
    if not rows:
        return ""

    # Calculate column widths
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = [
        "".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers)),
        "".join("-" * w + " " * padding for w in widths),
    ]
    for row in rows:
        lines.append("".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row)))

    return "\n".join(lines)
