"""Outbox processor: drains pending mutations through full sync passes."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..db.repositories import LocalRepository, LocalStateRepository
from ..models.outbox import OutboxStatus
from ..utils.timeutils import now_ms
from .engine import SyncEngine
from .errors import AuthError, SyncError, TransientError

logger = logging.getLogger("liftlog.sync.outbox")

DEFAULT_MAX_RETRIES = 3

OnlineCheck = Callable[[], bool | Awaitable[bool]]


@dataclass
class DrainResult:
    """What a drain did.

    Attributes:
        ran:     True if pending items were processed (False for no-ops:
                 busy, offline, no token, empty outbox).
        synced:  Outbox item IDs cleared by successful passes.
        failed:  Item IDs frozen as failed during this drain.
        errors:  Error message per item ID that failed this drain.
        stopped: Why draining stopped early ("network", "auth", "busy").
    """

    ran: bool = False
    synced: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)
    stopped: str | None = None

    @property
    def network_failure(self) -> bool:
        return self.stopped == "network"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "ran": self.ran,
            "synced": self.synced,
            "failed": self.failed,
            "errors": {str(k): v for k, v in self.errors.items()},
            "stopped": self.stopped,
        }


@dataclass
class SyncStatus:
    """Sync state for status displays."""

    authenticated: bool
    auth_failed: bool
    pending: int
    failed: int
    last_sync: int | None
    document_id: str | None
    draining: bool

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "authenticated": self.authenticated,
            "auth_failed": self.auth_failed,
            "pending": self.pending,
            "failed": self.failed,
            "last_sync": self.last_sync,
            "document_id": self.document_id,
            "draining": self.draining,
        }


class OutboxProcessor:
    """Drain the outbox, one full sync pass per item.

    ``drain`` is safe to call from any trigger at any time: overlapping calls
    return immediately, and the gist client drops overlapping upserts.
    """

    def __init__(
        self,
        repository: LocalRepository,
        engine: SyncEngine,
        max_retries: int = DEFAULT_MAX_RETRIES,
        is_online: OnlineCheck | None = None,
    ):
        """Initialize the processor.

        Args:
            repository: Local repository (outbox and state)
            engine: Sync engine performing each pass
            max_retries: Failures after which an item is frozen as failed
            is_online: Optional connectivity check (sync or async callable)
        """
        self.repository = repository
        self.engine = engine
        self.max_retries = max_retries
        self._is_online = is_online
        self._draining = False
        self.auth_failed = False

    @property
    def draining(self) -> bool:
        return self._draining

    async def _online(self) -> bool:
        if self._is_online is None:
            return True
        result = self._is_online()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def drain(self) -> DrainResult:
        """Process every pending outbox item in FIFO order."""
        result = DrainResult()
        if self._draining:
            logger.debug("Drain already running")
            result.stopped = "busy"
            return result
        if not await self.engine.client.is_authenticated():
            return result
        if not await self._online():
            logger.debug("Offline, not draining")
            return result

        self._draining = True
        try:
            await self._drain_items(result)
        finally:
            self._draining = False
        return result

    async def _drain_items(self, result: DrainResult) -> None:
        outbox = self.repository.outbox
        items = await outbox.dequeue_pending()
        if not items:
            return

        result.ran = True
        logger.info("Processing %d outbox items", len(items))

        for item in items:
            if item.retries >= self.max_retries:
                await outbox.mark_failed(item.id, "Max retries exceeded")
                result.failed.append(item.id)
                continue

            try:
                outcome = await self.engine.sync_once()
            except SyncError as e:
                retries = await outbox.record_failure(item.id, str(e))
                result.errors[item.id] = str(e)
                logger.warning(
                    "Sync failed for outbox item %s, retry %d/%d: %s",
                    item.id,
                    retries,
                    self.max_retries,
                    e,
                )
                if retries >= self.max_retries:
                    await outbox.mark_failed(item.id, str(e))
                    result.failed.append(item.id)

                if isinstance(e, AuthError):
                    self.auth_failed = True
                    result.stopped = "auth"
                    break
                if isinstance(e, TransientError):
                    result.stopped = "network"
                    break
                continue

            if outcome.skipped:
                # Another pass holds the upsert; it will carry our changes or we retry later
                result.stopped = "busy"
                break

            await outbox.clear(item.id)
            await self._record_sync()
            result.synced.append(item.id)
            logger.info("Synced outbox item %s", item.id)

    async def _record_sync(self) -> None:
        await self.repository.state.set(LocalStateRepository.LAST_SYNC, str(now_ms()))

    async def trigger(self) -> DrainResult | None:
        """Best-effort drain after a local mutation; never raises."""
        if self.auth_failed:
            return None
        try:
            return await self.drain()
        except Exception:
            logger.exception("Background sync failed")
            return None

    async def retry_failed(self) -> DrainResult:
        """Re-queue failed items with a fresh retry budget, then drain."""
        count = await self.repository.outbox.requeue_failed()
        logger.info("Re-queued %d failed outbox items", count)
        return await self.drain()

    def reset_auth(self) -> None:
        """Allow automatic drains again after new credentials were stored."""
        self.auth_failed = False

    async def status(self) -> SyncStatus:
        """Current sync status."""
        counts = await self.repository.outbox.count_by_status()
        return SyncStatus(
            authenticated=await self.engine.client.is_authenticated(),
            auth_failed=self.auth_failed,
            pending=counts[OutboxStatus.PENDING],
            failed=counts[OutboxStatus.FAILED],
            last_sync=await self.repository.state.get_last_sync(),
            document_id=await self.engine.client.get_document_id(),
            draining=self._draining,
        )
