"""Workout, task and log entry models.

Attributes are snake_case; ``to_dict``/``from_dict`` use the camelCase keys of
the synchronized snapshot document.
"""

from dataclasses import dataclass, field


def _int_field(data: dict, key: str, default: int | None = 0) -> int:
    """Read a numeric field; missing or empty gives ``default``.

    Raises:
        KeyError: If the field is missing and there is no default
        TypeError: If the value is not a number
    """
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            raise KeyError(key)
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, got {value!r}")
    return int(value)


def _optional_int(data: dict, key: str) -> int | None:
    if data.get(key) is None:
        return None
    return _int_field(data, key)


def _str_field(data: dict, key: str, default: str | None = "") -> str:
    value = data.get(key)
    if value is None:
        if default is None:
            raise KeyError(key)
        return default
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {value!r}")
    return value


def _int_list(data: dict, key: str) -> list[int]:
    values = data.get(key) or []
    if not isinstance(values, list):
        raise TypeError(f"{key} must be a list, got {values!r}")
    return [_int_field({key: v}, key, default=None) for v in values]


@dataclass
class SetEntry:
    """A single performed set."""

    reps: int
    weight: float  # in kg

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"reps": self.reps, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: dict) -> "SetEntry":
        """Create from dictionary."""
        return cls(reps=data.get("reps", 0), weight=data.get("weight", 0))

    def __str__(self) -> str:
        return f"{self.reps}x{self.weight:g}"


@dataclass
class Task:
    """An exercise that can be logged and placed in workouts."""

    name: str
    tips: str = ""
    instructions: str = ""
    video_ref: str | None = None  # URL or file name, never the binary
    default_sets: int = 3
    default_reps: int = 10
    order_index: int = 0
    last_modified: int = 0  # epoch ms
    device_id: str = ""
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "tips": self.tips,
            "instructions": self.instructions,
            "videoRef": self.video_ref,
            "defaultSets": self.default_sets,
            "defaultReps": self.default_reps,
            "orderIndex": self.order_index,
            "lastModified": self.last_modified,
            "deviceId": self.device_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create from dictionary."""
        return cls(
            id=_optional_int(data, "id"),
            name=_str_field(data, "name", default=None),
            tips=_str_field(data, "tips"),
            instructions=_str_field(data, "instructions"),
            # Older exports carried videoUrl/videoFileName instead of videoRef
            video_ref=data.get("videoRef") or data.get("videoUrl") or data.get("videoFileName"),
            default_sets=_int_field(data, "defaultSets") or 3,
            default_reps=_int_field(data, "defaultReps") or 10,
            order_index=_int_field(data, "orderIndex"),
            last_modified=_int_field(data, "lastModified"),
            device_id=_str_field(data, "deviceId"),
        )


@dataclass
class Workout:
    """A named, ordered collection of task references."""

    name: str
    task_ids: list[int] = field(default_factory=list)
    order_index: int = 0
    last_modified: int = 0  # epoch ms
    device_id: str = ""
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "taskIds": list(self.task_ids),
            "orderIndex": self.order_index,
            "lastModified": self.last_modified,
            "deviceId": self.device_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Workout":
        """Create from dictionary."""
        return cls(
            id=_optional_int(data, "id"),
            name=_str_field(data, "name", default=None),
            task_ids=_int_list(data, "taskIds"),
            order_index=_int_field(data, "orderIndex"),
            last_modified=_int_field(data, "lastModified"),
            device_id=_str_field(data, "deviceId"),
        )


@dataclass
class LogEntry:
    """One logged performance of a task on a given date."""

    task_id: int
    date: int  # epoch ms
    sets: list[SetEntry] = field(default_factory=list)
    last_modified: int = 0
    device_id: str = ""
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "taskId": self.task_id,
            "date": self.date,
            "sets": [s.to_dict() for s in self.sets],
            "lastModified": self.last_modified,
            "deviceId": self.device_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        """Create from dictionary."""
        return cls(
            id=_optional_int(data, "id"),
            task_id=_int_field(data, "taskId", default=None),
            date=_int_field(data, "date"),
            sets=[SetEntry.from_dict(s) for s in data.get("sets") or []],
            last_modified=_int_field(data, "lastModified"),
            device_id=_str_field(data, "deviceId"),
        )

    @property
    def total_volume(self) -> float:
        """Sum of reps x weight across all sets."""
        return sum(s.reps * s.weight for s in self.sets)

    def format_sets(self) -> str:
        """Format sets for display."""
        if not self.sets:
            return "No sets"
        return ", ".join(str(s) for s in self.sets)
