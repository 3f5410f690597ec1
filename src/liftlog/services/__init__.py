"""Application services for liftlog."""

from .context import AppContext, create_context
from .tracker import TrackerService

__all__ = [
    "AppContext",
    "create_context",
    "TrackerService",
]
