"""Snapshot: the full exported state exchanged with the remote store."""

from dataclasses import dataclass, field

from .workout import LogEntry, Task, Workout

# Version 1 was the muscle-group layout; 2 split workouts from tasks.
SNAPSHOT_VERSION = 2


@dataclass
class Snapshot:
    """Every synchronizable entity at a point in time."""

    workouts: list[Workout] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    log_entries: list[LogEntry] = field(default_factory=list)
    last_sync: int = 0  # epoch ms
    version: int = SNAPSHOT_VERSION

    @property
    def is_empty(self) -> bool:
        return not (self.workouts or self.tasks or self.log_entries)

    def to_dict(self) -> dict:
        """Convert to the remote document layout."""
        return {
            "version": self.version,
            "workouts": [w.to_dict() for w in self.workouts],
            "tasks": [t.to_dict() for t in self.tasks],
            "logEntries": [e.to_dict() for e in self.log_entries],
            "lastSync": self.last_sync,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        """Create from a current-version document.

        Older layouts must go through ``liftlog.sync.migrations`` first.
        """
        return cls(
            version=data.get("version", SNAPSHOT_VERSION),
            workouts=[Workout.from_dict(w) for w in data.get("workouts") or []],
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            log_entries=[LogEntry.from_dict(e) for e in data.get("logEntries") or []],
            last_sync=data.get("lastSync") or 0,
        )

    def get_summary(self) -> str:
        """One-line summary for status output."""
        return (
            f"{len(self.workouts)} workouts, {len(self.tasks)} tasks, "
            f"{len(self.log_entries)} log entries"
        )
