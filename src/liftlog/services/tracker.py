"""Local mutations: every write is recorded in the outbox."""

import logging

from ..db.repositories import LocalRepository
from ..models.outbox import EntityType, OutboxOperation
from ..models.workout import LogEntry, SetEntry, Task, Workout
from ..sync.outbox import OutboxProcessor
from ..utils.timeutils import now_ms

logger = logging.getLogger("liftlog.services.tracker")


class TrackerService:
    """Create, edit and delete workouts, tasks and log entries.

    Each mutation writes the repository, appends an outbox item and, when a
    processor is attached, makes a best-effort drain attempt.
    """

    def __init__(self, repository: LocalRepository, processor: OutboxProcessor | None = None):
        self.repository = repository
        self.processor = processor

    async def _record(
        self,
        operation: OutboxOperation,
        entity_type: EntityType,
        payload: dict,
    ) -> None:
        item_id = await self.repository.outbox.enqueue(operation, entity_type, payload)
        logger.debug("Queued %s %s as outbox item %s", operation.value, entity_type.value, item_id)
        if self.processor is not None:
            await self.processor.trigger()

    # --- Workouts ---

    async def create_workout(self, name: str, task_ids: list[int] | None = None) -> Workout:
        """Create a workout at the end of the list."""
        name = name.strip()
        if not name:
            raise ValueError("Workout name is required")

        existing = await self.repository.workouts.get_all()
        workout = Workout(
            name=name,
            task_ids=list(task_ids or []),
            order_index=max((w.order_index for w in existing), default=-1) + 1,
        )
        await self.repository.workouts.insert(workout)
        await self._record(OutboxOperation.CREATE, EntityType.WORKOUT, workout.to_dict())
        return workout

    async def update_workout(self, workout: Workout) -> Workout:
        """Save changes to a workout."""
        await self.repository.workouts.update(workout)
        await self._record(OutboxOperation.UPDATE, EntityType.WORKOUT, workout.to_dict())
        return workout

    async def get_workout(self, workout_id: int) -> Workout:
        workout = await self.repository.workouts.get_by_id(workout_id)
        if workout is None:
            raise ValueError(f"Workout {workout_id} not found")
        return workout

    async def add_task_to_workout(self, workout_id: int, task_id: int) -> Workout:
        """Append a task reference to a workout."""
        workout = await self.get_workout(workout_id)
        if await self.repository.tasks.get_by_id(task_id) is None:
            raise ValueError(f"Task {task_id} not found")
        if task_id not in workout.task_ids:
            workout.task_ids.append(task_id)
        return await self.update_workout(workout)

    async def move_task(self, workout_id: int, task_id: int, offset: int) -> Workout:
        """Move a task up (negative offset) or down within a workout."""
        workout = await self.get_workout(workout_id)
        if task_id not in workout.task_ids:
            raise ValueError(f"Task {task_id} is not part of workout {workout_id}")

        index = workout.task_ids.index(task_id)
        target = max(0, min(len(workout.task_ids) - 1, index + offset))
        if target == index:
            return workout
        workout.task_ids.insert(target, workout.task_ids.pop(index))
        return await self.update_workout(workout)

    async def delete_workout(self, workout_id: int) -> None:
        """Delete a workout (tasks are kept)."""
        workout = await self.get_workout(workout_id)
        await self.repository.workouts.delete(workout_id)
        await self._record(OutboxOperation.DELETE, EntityType.WORKOUT, workout.to_dict())

    # --- Tasks ---

    async def create_task(
        self,
        name: str,
        tips: str = "",
        instructions: str = "",
        video_ref: str | None = None,
        default_sets: int = 3,
        default_reps: int = 10,
        workout_id: int | None = None,
    ) -> Task:
        """Create a task, optionally adding it to a workout."""
        name = name.strip()
        if not name:
            raise ValueError("Task name is required")

        existing = await self.repository.tasks.get_all()
        task = Task(
            name=name,
            tips=tips,
            instructions=instructions,
            video_ref=video_ref,
            default_sets=default_sets,
            default_reps=default_reps,
            order_index=max((t.order_index for t in existing), default=-1) + 1,
        )
        await self.repository.tasks.insert(task)
        await self._record(OutboxOperation.CREATE, EntityType.TASK, task.to_dict())

        if workout_id is not None:
            await self.add_task_to_workout(workout_id, task.id)
        return task

    async def get_task(self, task_id: int) -> Task:
        task = await self.repository.tasks.get_by_id(task_id)
        if task is None:
            raise ValueError(f"Task {task_id} not found")
        return task

    async def update_task(self, task: Task) -> Task:
        """Save changes to a task."""
        await self.repository.tasks.update(task)
        await self._record(OutboxOperation.UPDATE, EntityType.TASK, task.to_dict())
        return task

    async def delete_task(self, task_id: int) -> None:
        """Delete a task and its history; workouts keep a dangling reference."""
        task = await self.get_task(task_id)
        await self.repository.tasks.delete(task_id)
        await self._record(OutboxOperation.DELETE, EntityType.TASK, task.to_dict())

    # --- Log entries ---

    async def log_sets(
        self,
        task_id: int,
        sets: list[SetEntry],
        date: int | None = None,
    ) -> LogEntry:
        """Record a completed task."""
        await self.get_task(task_id)
        if not sets:
            raise ValueError("At least one set is required")

        entry = LogEntry(task_id=task_id, date=date or now_ms(), sets=list(sets))
        await self.repository.log_entries.insert(entry)
        await self._record(OutboxOperation.CREATE, EntityType.LOG_ENTRY, entry.to_dict())
        return entry

    async def update_log_entry(self, entry: LogEntry) -> LogEntry:
        """Replace the sets and date of an entry."""
        await self.repository.log_entries.update(entry)
        await self._record(OutboxOperation.UPDATE, EntityType.LOG_ENTRY, entry.to_dict())
        return entry

    async def delete_log_entry(self, entry_id: int) -> None:
        """Delete a log entry."""
        entry = await self.repository.log_entries.get_by_id(entry_id)
        if entry is None:
            raise ValueError(f"Log entry {entry_id} not found")
        await self.repository.log_entries.delete(entry_id)
        await self._record(OutboxOperation.DELETE, EntityType.LOG_ENTRY, entry.to_dict())
