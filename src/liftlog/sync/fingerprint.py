"""Content fingerprints for log entry deduplication.

A log entry's identity across devices is its content, not its ID:

    (normalized task name, calendar day of ``date``, sorted (weight, reps) pairs)

Day granularity is deliberate so that clock drift or sync latency between
devices never splits one workout into two records.
"""

import hashlib
import json
import math
from datetime import tzinfo
from typing import Any

from ..models.workout import LogEntry
from ..utils.timeutils import local_midnight_ms

FINGERPRINT_LENGTH = 16  # hex characters of the SHA-256 digest


def _to_number(value: Any) -> float:
    """Coerce a reps/weight value to float (anything unreadable is 0)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def normalize_task_name(name: str | None) -> str:
    """Lowercase and trim a task name for identity comparison."""
    return (name or "").strip().lower()


def _normalize_sets(entry: LogEntry) -> list[tuple[float, float]]:
    pairs = []
    for s in getattr(entry, "sets", None) or []:
        if isinstance(s, dict):
            reps, weight = s.get("reps"), s.get("weight")
        else:
            reps, weight = getattr(s, "reps", None), getattr(s, "weight", None)
        pairs.append((_to_number(weight), _to_number(reps)))
    return sorted(pairs)


def _normalize_day(entry: LogEntry, tz: tzinfo | None) -> int:
    try:
        return local_midnight_ms(_to_number(getattr(entry, "date", 0)), tz)
    except (OverflowError, OSError, ValueError):
        # Out-of-range timestamps all land on one bucket
        return 0


def canonical_form(
    entry: LogEntry, task_name: str | None, tz: tzinfo | None = None
) -> tuple[str, int, list[tuple[float, float]]]:
    """Normalized (name, day, sets) triple that fingerprints are derived from."""
    return (normalize_task_name(task_name), _normalize_day(entry, tz), _normalize_sets(entry))


def fingerprint(entry: LogEntry, task_name: str | None, tz: tzinfo | None = None) -> str:
    """Compute the content fingerprint of a log entry.

    Args:
        entry: The log entry
        task_name: Name of the task the entry belongs to
        tz: Zone that defines calendar days (defaults to the local zone)

    Returns:
        Hex digest identifying the logical workout record
    """
    name, day, sets = canonical_form(entry, task_name, tz)
    serialized = json.dumps([name, day, [list(pair) for pair in sets]], separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def are_duplicate(
    a: LogEntry,
    b: LogEntry,
    name_a: str | None,
    name_b: str | None,
    tz: tzinfo | None = None,
) -> bool:
    """Exact comparison of two entries' canonical forms.

    Guards against fingerprint collisions; agrees with fingerprint equality
    whenever the hash does not collide.
    """
    return canonical_form(a, name_a, tz) == canonical_form(b, name_b, tz)
