"""Tests for connectivity probing and scheduled drains."""

import asyncio

import pytest

from liftlog.sync.connectivity import ConnectivityMonitor
from liftlog.sync.outbox import DrainResult
from liftlog.sync.scheduler import SyncScheduler


class StubMonitor(ConnectivityMonitor):
    """Connectivity monitor whose reachability is set by the test."""

    def __init__(self, reachable: bool = True):
        super().__init__("example.invalid")
        self.reachable = reachable

    async def _connect(self) -> bool:
        return self.reachable


class StubProcessor:
    """Records triggers and returns canned results."""

    def __init__(self, result: DrainResult | None = None):
        self.result = result or DrainResult(ran=True)
        self.triggers = 0
        self.auth_failed = False

    async def trigger(self) -> DrainResult | None:
        self.triggers += 1
        return self.result


class TestConnectivityMonitor:
    """Tests for ConnectivityMonitor."""

    @pytest.mark.asyncio
    async def test_callbacks_fire_on_transition_only(self):
        monitor = StubMonitor(reachable=True)
        seen = []
        monitor.on_change(seen.append)

        assert monitor.online is None
        await monitor.probe()
        await monitor.probe()
        monitor.reachable = False
        await monitor.probe()
        monitor.reachable = True
        await monitor.probe()

        assert seen == [False, True]

    @pytest.mark.asyncio
    async def test_async_callback(self):
        monitor = StubMonitor(reachable=False)
        seen = []

        async def record(online: bool) -> None:
            seen.append(online)

        monitor.on_change(record)
        await monitor.probe()
        monitor.reachable = True

        assert await monitor.is_online()
        assert seen == [True]

    @pytest.mark.asyncio
    async def test_unreachable_host(self):
        """A real probe against an unresolvable host reports offline."""
        monitor = ConnectivityMonitor("host.invalid", 443, timeout=1.0)
        assert await monitor.probe() is False


class TestSyncScheduler:
    """Tests for SyncScheduler."""

    @pytest.mark.asyncio
    async def test_tick_skips_when_offline(self):
        processor = StubProcessor()
        scheduler = SyncScheduler(processor, StubMonitor(reachable=False))

        assert await scheduler.tick() is None
        assert processor.triggers == 0

    @pytest.mark.asyncio
    async def test_tick_skips_after_auth_failure(self):
        processor = StubProcessor()
        processor.auth_failed = True
        scheduler = SyncScheduler(processor, StubMonitor())

        assert await scheduler.tick() is None
        assert processor.triggers == 0

    @pytest.mark.asyncio
    async def test_backoff_doubles_and_caps(self):
        """Network failures double the wait up to the cap."""
        processor = StubProcessor(DrainResult(ran=True, stopped="network"))
        scheduler = SyncScheduler(processor, interval=30, max_backoff=100)

        delays = []
        for _ in range(3):
            await scheduler.tick()
            delays.append(scheduler.current_delay)

        assert delays == [60, 100, 100]

        processor.result = DrainResult(ran=True)
        await scheduler.tick()
        assert scheduler.current_delay == 30

    @pytest.mark.asyncio
    async def test_reconnect_resets_backoff(self):
        monitor = StubMonitor(reachable=False)
        processor = StubProcessor()
        scheduler = SyncScheduler(processor, monitor, interval=30)
        scheduler._delay = 240

        await monitor.probe()
        monitor.reachable = True
        await monitor.probe()

        assert processor.triggers == 0
        assert scheduler.current_delay == 30

    @pytest.mark.asyncio
    async def test_reconnect_tick_drains_once(self):
        monitor = StubMonitor(reachable=False)
        processor = StubProcessor()
        scheduler = SyncScheduler(processor, monitor, interval=30)

        assert await scheduler.tick() is None
        monitor.reachable = True
        await scheduler.tick()

        assert processor.triggers == 1

    @pytest.mark.asyncio
    async def test_reconnect_charges_failing_item_once(self, make_context, gist_server):
        """A still-failing server costs one retry per reconnect tick."""
        context = await make_context(auto_sync=False)
        await context.tracker.create_task("Bench Press")
        [item] = await context.repository.outbox.get_all()
        monitor = StubMonitor(reachable=False)
        scheduler = SyncScheduler(context.processor, monitor, interval=30)
        gist_server.fail_status = 500

        await scheduler.tick()
        monitor.reachable = True
        result = await scheduler.tick()

        assert result.network_failure
        assert (await context.repository.outbox.get(item.id)).retries == 1
        assert len(gist_server.requests) == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        processor = StubProcessor()
        scheduler = SyncScheduler(processor, interval=0.01)

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.running
        assert processor.triggers >= 2
