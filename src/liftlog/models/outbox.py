"""Outbox (pending sync operation) model."""

from dataclasses import dataclass, field
from enum import Enum


class OutboxOperation(str, Enum):
    """Kind of local mutation that produced an outbox item."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EntityType(str, Enum):
    """Entity collection an outbox item refers to."""

    WORKOUT = "workout"
    TASK = "task"
    LOG_ENTRY = "logEntry"


class OutboxStatus(str, Enum):
    """Outbox item state."""

    PENDING = "pending"
    FAILED = "failed"  # retry ceiling reached, waits for a manual retry


@dataclass
class OutboxItem:
    """A local mutation waiting to be propagated to the remote store.

    The payload is informational only: every drain sends a full snapshot, so
    items mainly drive retry bookkeeping.
    """

    operation: OutboxOperation
    entity_type: EntityType
    entity_payload: dict = field(default_factory=dict)
    timestamp: int = 0  # epoch ms
    retries: int = 0
    status: OutboxStatus = OutboxStatus.PENDING
    last_error: str | None = None
    last_retry: int | None = None
    id: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == OutboxStatus.PENDING

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "operation": self.operation.value,
            "entityType": self.entity_type.value,
            "entityPayload": self.entity_payload,
            "timestamp": self.timestamp,
            "retries": self.retries,
            "status": self.status.value,
            "lastError": self.last_error,
            "lastRetry": self.last_retry,
        }
