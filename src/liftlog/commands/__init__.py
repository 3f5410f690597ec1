"""CLI commands for liftlog."""

from .export import export, import_snapshot
from .init import init
from .serve import serve
from .sync_cmd import sync
from .workouts import log, task, workout

__all__ = [
    "export",
    "import_snapshot",
    "init",
    "log",
    "serve",
    "sync",
    "task",
    "workout",
]
