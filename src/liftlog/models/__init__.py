"""Data models for liftlog."""

from .outbox import EntityType, OutboxItem, OutboxOperation, OutboxStatus
from .snapshot import SNAPSHOT_VERSION, Snapshot
from .workout import LogEntry, SetEntry, Task, Workout

__all__ = [
    "EntityType",
    "LogEntry",
    "OutboxItem",
    "OutboxOperation",
    "OutboxStatus",
    "SetEntry",
    "Snapshot",
    "SNAPSHOT_VERSION",
    "Task",
    "Workout",
]
