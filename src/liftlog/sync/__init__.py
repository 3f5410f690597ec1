"""Synchronization and reconciliation engine."""

from .connectivity import ConnectivityMonitor
from .engine import SyncEngine, SyncOutcome
from .errors import (
    AuthError,
    NotFoundError,
    SyncError,
    TransientError,
    ValidationError,
    ValidationIssue,
)
from .fingerprint import are_duplicate, fingerprint
from .merge import MergePlan, MergeStats, apply_plan, merge, reconcile
from .migrations import load_snapshot, migrate_payload
from .outbox import DrainResult, OutboxProcessor, SyncStatus
from .remote import GistClient, RemoteDocument
from .scheduler import SyncScheduler

__all__ = [
    "apply_plan",
    "are_duplicate",
    "AuthError",
    "ConnectivityMonitor",
    "DrainResult",
    "fingerprint",
    "GistClient",
    "load_snapshot",
    "merge",
    "MergePlan",
    "MergeStats",
    "migrate_payload",
    "NotFoundError",
    "OutboxProcessor",
    "reconcile",
    "RemoteDocument",
    "SyncEngine",
    "SyncError",
    "SyncOutcome",
    "SyncScheduler",
    "SyncStatus",
    "TransientError",
    "ValidationError",
    "ValidationIssue",
]
