"""Epoch-millisecond helpers shared by the models and the sync engine."""

import time
from datetime import datetime, timezone, tzinfo


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_datetime(epoch_ms: int | float, tz: tzinfo | None = None) -> datetime:
    """Convert epoch milliseconds to an aware datetime.

    Args:
        epoch_ms: Milliseconds since the Unix epoch
        tz: Target zone (defaults to the machine's local zone)
    """
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    if tz is None:
        return moment.astimezone()
    return moment.astimezone(tz)


def local_midnight_ms(epoch_ms: int | float, tz: tzinfo | None = None) -> int:
    """Truncate a timestamp to midnight of its calendar day.

    The day is taken in ``tz`` (or the local zone), so two timestamps on the
    same local day always map to the same value.
    """
    moment = to_datetime(epoch_ms, tz)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def from_datetime(moment: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are local time)."""
    return int(moment.timestamp() * 1000)


def format_ms(epoch_ms: int | None, fmt: str = "%Y-%m-%d %H:%M") -> str:
    """Format epoch milliseconds for display."""
    if not epoch_ms:
        return "never"
    return to_datetime(epoch_ms).strftime(fmt)
