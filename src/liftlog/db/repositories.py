"""Data access layer for liftlog."""

import json
import uuid
from pathlib import Path

import aiosqlite

from ..models.outbox import EntityType, OutboxItem, OutboxOperation, OutboxStatus
from ..models.snapshot import Snapshot
from ..models.workout import LogEntry, SetEntry, Task, Workout
from ..utils.timeutils import now_ms
from .engine import get_db_path, init_db


def _stamp(entity: Workout | Task | LogEntry, device_id: str) -> None:
    """Mark an entity as locally modified.

    ``last_modified`` only ever moves forward, even if the clock goes back.
    """
    entity.last_modified = max(now_ms(), entity.last_modified + 1)
    entity.device_id = device_id


class WorkoutRepository:
    """Repository for workouts."""

    def __init__(self, db_path: Path | None = None, device_id: str = ""):
        self.db_path = db_path or get_db_path()
        self.device_id = device_id

    async def get_all(self) -> list[Workout]:
        """List all workouts in display order."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM workouts ORDER BY order_index, id"
            )
            rows = await cursor.fetchall()
            return [self._row_to_workout(row) for row in rows]

    async def get_by_id(self, workout_id: int) -> Workout | None:
        """Get a workout by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM workouts WHERE id = ?", (workout_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_workout(row)

    async def insert(self, workout: Workout, touch: bool = True) -> int:
        """Insert a workout and return its ID.

        With ``touch=False`` the modification stamp is kept as given, which is
        how remote state is applied.
        """
        if touch:
            _stamp(workout, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO workouts
                (id, name, task_ids, order_index, last_modified, device_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    workout.id,
                    workout.name,
                    json.dumps(workout.task_ids),
                    workout.order_index,
                    workout.last_modified,
                    workout.device_id,
                ),
            )
            await db.commit()
            workout.id = cursor.lastrowid
            return workout.id

    async def update(self, workout: Workout, touch: bool = True) -> None:
        """Update an existing workout."""
        if workout.id is None:
            raise ValueError("Workout must have an ID to update")

        if touch:
            _stamp(workout, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE workouts SET
                    name = ?, task_ids = ?, order_index = ?,
                    last_modified = ?, device_id = ?
                WHERE id = ?
                """,
                (
                    workout.name,
                    json.dumps(workout.task_ids),
                    workout.order_index,
                    workout.last_modified,
                    workout.device_id,
                    workout.id,
                ),
            )
            await db.commit()

    async def delete(self, workout_id: int) -> None:
        """Delete a workout (its tasks are left alone)."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM workouts WHERE id = ?", (workout_id,))
            await db.commit()

    def _row_to_workout(self, row: aiosqlite.Row) -> Workout:
        """Convert a database row to a Workout."""
        return Workout(
            id=row["id"],
            name=row["name"],
            task_ids=json.loads(row["task_ids"]) if row["task_ids"] else [],
            order_index=row["order_index"] or 0,
            last_modified=row["last_modified"] or 0,
            device_id=row["device_id"] or "",
        )


class TaskRepository:
    """Repository for tasks (exercises)."""

    def __init__(self, db_path: Path | None = None, device_id: str = ""):
        self.db_path = db_path or get_db_path()
        self.device_id = device_id

    async def get_all(self) -> list[Task]:
        """List all tasks in display order."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM tasks ORDER BY order_index, id")
            rows = await cursor.fetchall()
            return [self._row_to_task(row) for row in rows]

    async def get_by_id(self, task_id: int) -> Task | None:
        """Get a task by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_task(row)

    async def insert(self, task: Task, touch: bool = True) -> int:
        """Insert a task and return its ID."""
        if touch:
            _stamp(task, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO tasks
                (id, name, tips, instructions, video_ref, default_sets, default_reps,
                 order_index, last_modified, device_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.name,
                    task.tips,
                    task.instructions,
                    task.video_ref,
                    task.default_sets,
                    task.default_reps,
                    task.order_index,
                    task.last_modified,
                    task.device_id,
                ),
            )
            await db.commit()
            task.id = cursor.lastrowid
            return task.id

    async def update(self, task: Task, touch: bool = True) -> None:
        """Update an existing task."""
        if task.id is None:
            raise ValueError("Task must have an ID to update")

        if touch:
            _stamp(task, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE tasks SET
                    name = ?, tips = ?, instructions = ?, video_ref = ?,
                    default_sets = ?, default_reps = ?, order_index = ?,
                    last_modified = ?, device_id = ?
                WHERE id = ?
                """,
                (
                    task.name,
                    task.tips,
                    task.instructions,
                    task.video_ref,
                    task.default_sets,
                    task.default_reps,
                    task.order_index,
                    task.last_modified,
                    task.device_id,
                    task.id,
                ),
            )
            await db.commit()

    async def delete(self, task_id: int) -> None:
        """Delete a task and its log entries.

        Workouts keep their (now dangling) reference to the task.
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM log_entries WHERE task_id = ?", (task_id,))
            await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await db.commit()

    def _row_to_task(self, row: aiosqlite.Row) -> Task:
        """Convert a database row to a Task."""
        return Task(
            id=row["id"],
            name=row["name"],
            tips=row["tips"] or "",
            instructions=row["instructions"] or "",
            video_ref=row["video_ref"],
            default_sets=row["default_sets"],
            default_reps=row["default_reps"],
            order_index=row["order_index"] or 0,
            last_modified=row["last_modified"] or 0,
            device_id=row["device_id"] or "",
        )


class LogEntryRepository:
    """Repository for logged sets."""

    def __init__(self, db_path: Path | None = None, device_id: str = ""):
        self.db_path = db_path or get_db_path()
        self.device_id = device_id

    async def get_all(self) -> list[LogEntry]:
        """List all log entries, newest first."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM log_entries ORDER BY date DESC, id")
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    async def get_by_id(self, entry_id: int) -> LogEntry | None:
        """Get a log entry by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM log_entries WHERE id = ?", (entry_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_entry(row)

    async def get_by_task(self, task_id: int, limit: int | None = None) -> list[LogEntry]:
        """Get log entries for a task, newest first."""
        query = "SELECT * FROM log_entries WHERE task_id = ? ORDER BY date DESC, id"
        params: tuple = (task_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (task_id, limit)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    async def insert(self, entry: LogEntry, touch: bool = True) -> int:
        """Insert a log entry and return its ID."""
        if touch:
            _stamp(entry, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO log_entries
                (id, task_id, date, sets, last_modified, device_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.task_id,
                    entry.date,
                    json.dumps([s.to_dict() for s in entry.sets]),
                    entry.last_modified,
                    entry.device_id,
                ),
            )
            await db.commit()
            entry.id = cursor.lastrowid
            return entry.id

    async def update(self, entry: LogEntry, touch: bool = True) -> None:
        """Replace the date and sets of an existing entry."""
        if entry.id is None:
            raise ValueError("Log entry must have an ID to update")

        if touch:
            _stamp(entry, self.device_id)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE log_entries SET
                    task_id = ?, date = ?, sets = ?, last_modified = ?, device_id = ?
                WHERE id = ?
                """,
                (
                    entry.task_id,
                    entry.date,
                    json.dumps([s.to_dict() for s in entry.sets]),
                    entry.last_modified,
                    entry.device_id,
                    entry.id,
                ),
            )
            await db.commit()

    async def delete(self, entry_id: int) -> None:
        """Delete a log entry."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM log_entries WHERE id = ?", (entry_id,))
            await db.commit()

    def _row_to_entry(self, row: aiosqlite.Row) -> LogEntry:
        """Convert a database row to a LogEntry."""
        sets = json.loads(row["sets"]) if row["sets"] else []
        return LogEntry(
            id=row["id"],
            task_id=row["task_id"],
            date=row["date"],
            sets=[SetEntry.from_dict(s) for s in sets],
            last_modified=row["last_modified"] or 0,
            device_id=row["device_id"] or "",
        )


class OutboxRepository:
    """Repository for the durable queue of pending sync operations."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def enqueue(
        self,
        operation: OutboxOperation,
        entity_type: EntityType,
        payload: dict,
    ) -> int:
        """Append a pending item and return its ID."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO outbox
                (operation, entity_type, entity_payload, timestamp, retries, status)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (
                    operation.value,
                    entity_type.value,
                    json.dumps(payload),
                    now_ms(),
                    OutboxStatus.PENDING.value,
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, item_id: int) -> OutboxItem | None:
        """Get an outbox item by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM outbox WHERE id = ?", (item_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_item(row)

    async def get_all(self, status: OutboxStatus | None = None) -> list[OutboxItem]:
        """List outbox items oldest first, optionally filtered by status."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            if status:
                cursor = await db.execute(
                    "SELECT * FROM outbox WHERE status = ? ORDER BY timestamp, id",
                    (status.value,),
                )
            else:
                cursor = await db.execute("SELECT * FROM outbox ORDER BY timestamp, id")
            rows = await cursor.fetchall()
            return [self._row_to_item(row) for row in rows]

    async def dequeue_pending(self) -> list[OutboxItem]:
        """Pending items in FIFO order (items are removed by ``clear``)."""
        return await self.get_all(OutboxStatus.PENDING)

    async def record_failure(self, item_id: int, error: str) -> int:
        """Increment the retry count of an item and return the new count."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE outbox SET
                    retries = retries + 1, last_error = ?, last_retry = ?
                WHERE id = ?
                """,
                (error, now_ms(), item_id),
            )
            await db.commit()
            cursor = await db.execute("SELECT retries FROM outbox WHERE id = ?", (item_id,))
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def mark_failed(self, item_id: int, error: str) -> None:
        """Freeze an item; automatic drains skip it from now on."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE outbox SET status = ?, last_error = ? WHERE id = ?",
                (OutboxStatus.FAILED.value, error, item_id),
            )
            await db.commit()

    async def clear(self, item_id: int) -> None:
        """Remove a successfully synchronized item."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM outbox WHERE id = ?", (item_id,))
            await db.commit()

    async def requeue_failed(self) -> int:
        """Move every failed item back to pending with a fresh retry budget."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE outbox SET status = ?, retries = 0, last_error = NULL
                WHERE status = ?
                """,
                (OutboxStatus.PENDING.value, OutboxStatus.FAILED.value),
            )
            await db.commit()
            return cursor.rowcount

    async def count_by_status(self) -> dict[OutboxStatus, int]:
        """Count items per status."""
        counts = {status: 0 for status in OutboxStatus}
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT status, COUNT(*) FROM outbox GROUP BY status"
            )
            for status, count in await cursor.fetchall():
                counts[OutboxStatus(status)] = count
        return counts

    def _row_to_item(self, row: aiosqlite.Row) -> OutboxItem:
        """Convert a database row to an OutboxItem."""
        return OutboxItem(
            id=row["id"],
            operation=OutboxOperation(row["operation"]),
            entity_type=EntityType(row["entity_type"]),
            entity_payload=json.loads(row["entity_payload"]) if row["entity_payload"] else {},
            timestamp=row["timestamp"],
            retries=row["retries"] or 0,
            status=OutboxStatus(row["status"]),
            last_error=row["last_error"],
            last_retry=row["last_retry"],
        )


class LocalStateRepository:
    """Key/value store for per-install state."""

    DEVICE_ID = "device_id"
    AUTH_TOKEN = "auth_token"
    REMOTE_DOCUMENT_ID = "remote_document_id"
    LAST_SYNC = "last_sync"

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self, key: str) -> str | None:
        """Read a value."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT value FROM local_state WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        """Write a value."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO local_state (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            await db.commit()

    async def delete(self, key: str) -> None:
        """Remove a value."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM local_state WHERE key = ?", (key,))
            await db.commit()

    async def get_device_id(self) -> str:
        """Get the installation's device ID, creating it on first use."""
        device_id = await self.get(self.DEVICE_ID)
        if device_id is None:
            device_id = uuid.uuid4().hex
            await self.set(self.DEVICE_ID, device_id)
        return device_id

    async def get_last_sync(self) -> int | None:
        """Epoch ms of the last successful sync, if any."""
        value = await self.get(self.LAST_SYNC)
        return int(value) if value else None


class LocalRepository:
    """All local collections of one database, sharing a device ID."""

    def __init__(self, db_path: Path | None = None, device_id: str = ""):
        self.db_path = db_path or get_db_path()
        self.device_id = device_id
        self.workouts = WorkoutRepository(self.db_path, device_id)
        self.tasks = TaskRepository(self.db_path, device_id)
        self.log_entries = LogEntryRepository(self.db_path, device_id)
        self.outbox = OutboxRepository(self.db_path)
        self.state = LocalStateRepository(self.db_path)

    @classmethod
    async def open(cls, db_path: Path | None = None) -> "LocalRepository":
        """Initialize the schema and load the device ID."""
        db_path = db_path or get_db_path()
        await init_db(db_path)
        device_id = await LocalStateRepository(db_path).get_device_id()
        return cls(db_path, device_id)

    async def export_snapshot(self) -> Snapshot:
        """Export every synchronizable entity."""
        return Snapshot(
            workouts=await self.workouts.get_all(),
            tasks=await self.tasks.get_all(),
            log_entries=await self.log_entries.get_all(),
            last_sync=now_ms(),
        )
