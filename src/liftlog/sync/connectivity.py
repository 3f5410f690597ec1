"""Network reachability probe used to gate and trigger drains."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("liftlog.sync.connectivity")

ConnectivityCallback = Callable[[bool], None | Awaitable[None]]


class ConnectivityMonitor:
    """Probe a TCP endpoint and report online/offline transitions.

    Callbacks registered with ``on_change`` fire when a probe result differs
    from the previous one.
    """

    def __init__(self, host: str, port: int = 443, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._online: bool | None = None
        self._callbacks: list[ConnectivityCallback] = []

    @property
    def online(self) -> bool | None:
        """Result of the last probe (None before the first one)."""
        return self._online

    def on_change(self, callback: ConnectivityCallback) -> None:
        """Register a callback receiving the new online state."""
        self._callbacks.append(callback)

    async def _connect(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def probe(self) -> bool:
        """Check reachability and fire callbacks on a transition."""
        online = await self._connect()
        previous, self._online = self._online, online

        if previous is not None and online != previous:
            logger.info("Network %s", "online" if online else "offline")
            for callback in self._callbacks:
                result = callback(online)
                if inspect.isawaitable(result):
                    await result
        return online

    async def is_online(self) -> bool:
        """Probe and return the current state."""
        return await self.probe()
