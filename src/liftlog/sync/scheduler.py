"""Background triggers for outbox drains."""

import asyncio
import logging

from .connectivity import ConnectivityMonitor
from .outbox import DrainResult, OutboxProcessor

logger = logging.getLogger("liftlog.sync.scheduler")


class SyncScheduler:
    """Drain the outbox on an interval and when the network comes back.

    After a drain that stopped on a network failure the wait doubles, up to
    ``max_backoff``; any other outcome resets it to ``interval``.
    """

    def __init__(
        self,
        processor: OutboxProcessor,
        connectivity: ConnectivityMonitor | None = None,
        interval: float = 30.0,
        max_backoff: float = 600.0,
    ):
        self.processor = processor
        self.connectivity = connectivity
        self.interval = interval
        self.max_backoff = max_backoff
        self._delay = interval
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()
        if connectivity is not None:
            connectivity.on_change(self._on_connectivity_change)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def current_delay(self) -> float:
        return self._delay

    def _next_delay(self, result: DrainResult | None) -> float:
        if result is not None and result.network_failure:
            return min(self._delay * 2, self.max_backoff)
        return self.interval

    def _on_connectivity_change(self, online: bool) -> None:
        # The probing tick runs the drain; only the backoff is reset here
        if online:
            logger.info("Network restored, draining outbox")
            self._delay = self.interval

    async def tick(self) -> DrainResult | None:
        """One scheduler step: probe connectivity, then drain if appropriate.

        A tick that sees the network come back runs exactly one drain.
        """
        if self.connectivity is not None:
            if not await self.connectivity.probe():
                return None
        if self.processor.auth_failed:
            return None

        result = await self.processor.trigger()
        self._delay = self._next_delay(result)
        if result is not None and result.network_failure:
            logger.info("Network failure, next drain in %.0fs", self._delay)
        return result

    async def run(self) -> None:
        """Run until ``stop`` is called."""
        self._stopping.clear()
        while not self._stopping.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._delay)
            except asyncio.TimeoutError:
                continue

    def start(self) -> asyncio.Task:
        """Start ``run`` as a background task."""
        if not self.running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for the current drain to finish."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
