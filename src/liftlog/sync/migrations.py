"""Versioned upgrades of remote snapshot documents.

Runs once, before merging, so the merge engine only ever sees the current
document layout.
"""

import logging
from typing import Callable

from ..models.snapshot import SNAPSHOT_VERSION, Snapshot
from ..models.workout import LogEntry, Task, Workout
from .errors import ValidationError, ValidationIssue

logger = logging.getLogger("liftlog.sync.migrations")


def _upgrade_v1(payload: dict) -> dict:
    """Muscle-group layout -> workouts referencing tasks.

    Each muscle group becomes a workout whose ``taskIds`` are the group's
    tasks in ``orderIndex`` order. Scalar ``sets``/``reps``/``weightKg`` log
    entries become a list of identical sets.
    """
    raw_tasks = [t for t in payload.get("tasks") or [] if isinstance(t, dict)]
    workouts = list(payload.get("workouts") or [])

    for group in payload.get("muscleGroups") or []:
        if not isinstance(group, dict):
            continue
        members = [t for t in raw_tasks if t.get("muscleGroupId") == group.get("id")]
        members.sort(key=lambda t: (t.get("orderIndex") or 0, t.get("id") or 0))
        workouts.append({
            "id": group.get("id"),
            "name": group.get("name", ""),
            "taskIds": [t["id"] for t in members if t.get("id") is not None],
            "orderIndex": group.get("orderIndex") or 0,
            "lastModified": group.get("lastModified") or 0,
            "deviceId": group.get("deviceId") or "",
        })

    tasks = []
    for task in raw_tasks:
        upgraded = {k: v for k, v in task.items() if k not in ("muscleGroupId", "videoUrl", "videoFileName")}
        upgraded.setdefault("videoRef", task.get("videoUrl") or task.get("videoFileName"))
        tasks.append(upgraded)

    entries = []
    for entry in payload.get("logEntries") or []:
        if not isinstance(entry, dict):
            continue
        upgraded = {k: v for k, v in entry.items() if k not in ("reps", "weightKg")}
        if not isinstance(entry.get("sets"), list):
            try:
                count = max(int(entry.get("sets") or 1), 1)
            except (TypeError, ValueError):
                count = 1
            one_set = {"reps": entry.get("reps") or 0, "weight": entry.get("weightKg") or 0}
            upgraded["sets"] = [dict(one_set) for _ in range(count)]
        entries.append(upgraded)

    return {
        "version": 2,
        "workouts": workouts,
        "tasks": tasks,
        "logEntries": entries,
        "lastSync": payload.get("lastSync") or 0,
    }


# version -> upgrade to version + 1
MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    1: _upgrade_v1,
}


def detect_version(payload: dict) -> int:
    """Document version, inferring 1 for unversioned muscle-group exports."""
    version = payload.get("version")
    if version is None:
        return 1 if "muscleGroups" in payload else SNAPSHOT_VERSION
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValidationError(f"Invalid snapshot version: {version!r}")
    return version


def migrate_payload(payload: dict) -> dict:
    """Upgrade a remote document to the current layout.

    Raises:
        ValidationError: If the payload is not a document or is newer than
            this build understands
    """
    if not isinstance(payload, dict):
        raise ValidationError(f"Snapshot must be an object, got {type(payload).__name__}")

    version = detect_version(payload)
    if version > SNAPSHOT_VERSION:
        raise ValidationError(
            f"Snapshot version {version} is newer than supported version {SNAPSHOT_VERSION}"
        )

    while version < SNAPSHOT_VERSION:
        upgrade = MIGRATIONS.get(version)
        if upgrade is None:
            raise ValidationError(f"No migration from snapshot version {version}")
        logger.info("Upgrading snapshot from version %d", version)
        payload = upgrade(payload)
        version = payload["version"]

    return payload


def _parse_records(records, parser, entity_type: str, issues: list[ValidationIssue]) -> list:
    parsed = []
    for record in records or []:
        record_id = record.get("id") if isinstance(record, dict) else None
        try:
            parsed.append(parser(record))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            issues.append(ValidationIssue(entity_type, record_id, f"malformed record: {e!r}"))
    return parsed


def load_snapshot(payload: dict) -> tuple[Snapshot, list[ValidationIssue]]:
    """Migrate and parse a document, skipping malformed records.

    Returns:
        The snapshot and one issue per record that could not be parsed
    """
    payload = migrate_payload(payload)
    issues: list[ValidationIssue] = []
    snapshot = Snapshot(
        version=payload.get("version", SNAPSHOT_VERSION),
        workouts=_parse_records(payload.get("workouts"), Workout.from_dict, "workout", issues),
        tasks=_parse_records(payload.get("tasks"), Task.from_dict, "task", issues),
        log_entries=_parse_records(payload.get("logEntries"), LogEntry.from_dict, "logEntry", issues),
        last_sync=payload.get("lastSync") or 0,
    )
    for issue in issues:
        logger.warning("Skipping snapshot record: %s", issue)
    return snapshot, issues
