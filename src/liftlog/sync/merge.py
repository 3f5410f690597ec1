"""Snapshot reconciliation.

``merge`` is a pure function from (local, remote) snapshots to a
``MergePlan``; ``apply_plan`` applies a plan to a snapshot value and
``SyncEngine`` applies it to the local database.

Identity rules:
    * Workouts and tasks match by ID first, then by case-insensitive name.
      Two different tasks that share a name on different devices are merged
      into one; names are the only cross-device identity available.
    * A matched entity takes the remote version only when the remote
      ``last_modified`` is strictly newer, so re-applying the same remote
      state changes nothing.
    * Log entries are insert-only and deduplicated by content fingerprint.
"""

import copy
import logging
from dataclasses import dataclass, field, fields
from datetime import tzinfo
from typing import TypeVar

from ..models.snapshot import Snapshot
from ..models.workout import LogEntry, Task, Workout
from .errors import ValidationIssue
from .fingerprint import are_duplicate, fingerprint, normalize_task_name

logger = logging.getLogger("liftlog.sync.merge")

Entity = TypeVar("Entity", Workout, Task)


@dataclass
class MergeStats:
    """Counts of what a merge decided."""

    workouts_created: int = 0
    workouts_updated: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    log_entries_created: int = 0
    log_entries_duplicate: int = 0
    skipped: int = 0

    @property
    def total_changes(self) -> int:
        return (
            self.workouts_created
            + self.workouts_updated
            + self.tasks_created
            + self.tasks_updated
            + self.log_entries_created
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class MergePlan:
    """Local changes required to absorb a remote snapshot.

    Upserted workouts and tasks carry their local ID: an existing ID means
    update, an unknown one (or ``None``) means insert.
    """

    workouts_to_upsert: list[Workout] = field(default_factory=list)
    tasks_to_upsert: list[Task] = field(default_factory=list)
    log_entries_to_insert: list[LogEntry] = field(default_factory=list)
    task_id_map: dict[int, int] = field(default_factory=dict)  # remote -> local
    issues: list[ValidationIssue] = field(default_factory=list)
    stats: MergeStats = field(default_factory=MergeStats)

    @property
    def is_empty(self) -> bool:
        return not (self.workouts_to_upsert or self.tasks_to_upsert or self.log_entries_to_insert)


def _name_key(name: str | None) -> str:
    return normalize_task_name(name)


def _adopt(target: Entity, remote: Entity) -> None:
    """Copy every field except the ID from ``remote`` onto ``target``."""
    for f in fields(remote):
        if f.name != "id":
            setattr(target, f.name, copy.deepcopy(getattr(remote, f.name)))


def _reconcile_entities(
    local_items: list[Entity],
    remote_items: list[Entity],
    id_map: dict[int, int],
) -> tuple[list[Entity], int, int]:
    """Match remote entities to local ones and apply last-write-wins.

    Indexes are updated while planning, so a remote entity can match one
    that was planned earlier in the same pass (session-global identity).

    Returns:
        (changed entities, created count, updated count); ``id_map`` is
        filled with remote ID -> local ID for every remote entity
    """
    by_id: dict[int, Entity] = {}
    by_name: dict[str, Entity] = {}
    for item in local_items:
        working = copy.deepcopy(item)
        if working.id is not None:
            by_id[working.id] = working
        by_name.setdefault(_name_key(working.name), working)

    changed: list[Entity] = []
    changed_keys: set[int] = set()
    created = updated = 0

    for remote in remote_items:
        target = by_id.get(remote.id) if remote.id is not None else None
        if target is None:
            target = by_name.get(_name_key(remote.name))

        if target is None:
            new = copy.deepcopy(remote)
            if new.id is not None:
                by_id[new.id] = new
                id_map[new.id] = new.id
            by_name.setdefault(_name_key(new.name), new)
            changed.append(new)
            changed_keys.add(id(new))
            created += 1
            continue

        if remote.id is not None and target.id is not None:
            id_map[remote.id] = target.id

        if remote.last_modified > target.last_modified:
            old_key = _name_key(target.name)
            _adopt(target, remote)
            new_key = _name_key(target.name)
            if new_key != old_key:
                if by_name.get(old_key) is target:
                    del by_name[old_key]
                by_name.setdefault(new_key, target)
            if id(target) not in changed_keys:
                changed.append(target)
                changed_keys.add(id(target))
                updated += 1

    return changed, created, updated


def merge(local: Snapshot, remote: Snapshot, tz: tzinfo | None = None) -> MergePlan:
    """Compute the local changes needed to absorb ``remote``.

    Args:
        local: Current local state
        remote: Remote state (already migrated to the current version)
        tz: Zone that defines calendar days for log entry fingerprints

    Returns:
        A plan; empty when the remote holds nothing new
    """
    plan = MergePlan()
    if remote.is_empty:
        return plan

    # Tasks first: workouts and log entries refer to them
    plan.tasks_to_upsert, plan.stats.tasks_created, plan.stats.tasks_updated = _reconcile_entities(
        local.tasks, remote.tasks, plan.task_id_map
    )

    remote_workouts = []
    for workout in remote.workouts:
        translated = copy.deepcopy(workout)
        # IDs the remote does not know are kept as dangling references
        translated.task_ids = [plan.task_id_map.get(tid, tid) for tid in workout.task_ids]
        remote_workouts.append(translated)
    workout_map: dict[int, int] = {}
    (
        plan.workouts_to_upsert,
        plan.stats.workouts_created,
        plan.stats.workouts_updated,
    ) = _reconcile_entities(local.workouts, remote_workouts, workout_map)

    task_names = {t.id: t.name for t in local.tasks}
    task_names.update({t.id: t.name for t in plan.tasks_to_upsert if t.id is not None})

    # Fingerprint index of existing entries, built per task on demand
    index: dict[int, dict[str, list[LogEntry]]] = {}
    local_by_task: dict[int, list[LogEntry]] = {}
    for entry in local.log_entries:
        local_by_task.setdefault(entry.task_id, []).append(entry)

    def bucket_for(task_id: int) -> dict[str, list[LogEntry]]:
        if task_id not in index:
            name = task_names.get(task_id)
            bucket: dict[str, list[LogEntry]] = {}
            for existing in local_by_task.get(task_id, []):
                bucket.setdefault(fingerprint(existing, name, tz), []).append(existing)
            index[task_id] = bucket
        return index[task_id]

    for entry in remote.log_entries:
        if entry.task_id not in plan.task_id_map:
            issue = ValidationIssue("logEntry", entry.id, f"unknown task {entry.task_id}")
            logger.warning("Skipping remote log entry: %s", issue)
            plan.issues.append(issue)
            plan.stats.skipped += 1
            continue

        local_task_id = plan.task_id_map[entry.task_id]
        name = task_names.get(local_task_id)
        key = fingerprint(entry, name, tz)
        bucket = bucket_for(local_task_id)

        candidates = bucket.get(key, [])
        if any(are_duplicate(c, entry, name, name, tz) for c in candidates):
            plan.stats.log_entries_duplicate += 1
            continue
        if candidates:
            logger.error(
                "Fingerprint collision for log entry %s (task %s); importing it",
                entry.id,
                local_task_id,
            )

        new = copy.deepcopy(entry)
        new.id = None
        new.task_id = local_task_id
        plan.log_entries_to_insert.append(new)
        bucket.setdefault(key, []).append(new)
        plan.stats.log_entries_created += 1

    return plan


def _upsert_into(items: list, changes: list) -> list:
    result = [copy.deepcopy(i) for i in items]
    positions = {item.id: n for n, item in enumerate(result) if item.id is not None}
    next_id = max([i.id for i in result if i.id is not None] + [0]) + 1
    for change in changes:
        change = copy.deepcopy(change)
        if change.id is not None and change.id in positions:
            result[positions[change.id]] = change
            continue
        if change.id is None:
            change.id = next_id
        next_id = max(next_id, change.id + 1)
        positions[change.id] = len(result)
        result.append(change)
    return result


def apply_plan(local: Snapshot, plan: MergePlan) -> Snapshot:
    """Apply a plan to a snapshot value (new entities without an ID get one)."""
    return Snapshot(
        version=local.version,
        workouts=_upsert_into(local.workouts, plan.workouts_to_upsert),
        tasks=_upsert_into(local.tasks, plan.tasks_to_upsert),
        log_entries=_upsert_into(local.log_entries, plan.log_entries_to_insert),
        last_sync=local.last_sync,
    )


def reconcile(local: Snapshot, remote: Snapshot, tz: tzinfo | None = None) -> Snapshot:
    """Local state after absorbing ``remote``."""
    return apply_plan(local, merge(local, remote, tz))
