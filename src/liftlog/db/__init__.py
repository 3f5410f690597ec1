"""Database layer for liftlog."""

from .engine import get_db_path, init_db
from .repositories import (
    LocalRepository,
    LocalStateRepository,
    LogEntryRepository,
    OutboxRepository,
    TaskRepository,
    WorkoutRepository,
)

__all__ = [
    "get_db_path",
    "init_db",
    "LocalRepository",
    "LocalStateRepository",
    "LogEntryRepository",
    "OutboxRepository",
    "TaskRepository",
    "WorkoutRepository",
]
