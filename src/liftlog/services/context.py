"""Construction of the service objects shared by the CLI and the web app."""

from dataclasses import dataclass
from pathlib import Path

import httpx

from ..config import Settings, get_settings
from ..db.repositories import LocalRepository
from ..sync.connectivity import ConnectivityMonitor
from ..sync.engine import SyncEngine
from ..sync.outbox import OutboxProcessor
from ..sync.remote import GistClient
from ..sync.scheduler import SyncScheduler
from .tracker import TrackerService


@dataclass
class AppContext:
    """Every long-lived service, built once and passed explicitly."""

    settings: Settings
    repository: LocalRepository
    client: GistClient
    engine: SyncEngine
    processor: OutboxProcessor
    connectivity: ConnectivityMonitor
    scheduler: SyncScheduler
    tracker: TrackerService


async def create_context(
    db_path: Path | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    auto_sync: bool = True,
) -> AppContext:
    """Open the database and wire the sync services together.

    Args:
        db_path: Database file (defaults to the configured location)
        settings: Application settings
        http_client: Optional httpx client for the gist API (for testing)
        auto_sync: Whether local mutations trigger a drain immediately
    """
    settings = settings or get_settings()
    repository = await LocalRepository.open(db_path or settings.db_path)
    client = GistClient(repository.state, settings, http_client=http_client)
    engine = SyncEngine(repository, client)
    connectivity = ConnectivityMonitor(
        settings.connectivity_host,
        settings.connectivity_port,
        settings.connectivity_timeout_seconds,
    )
    # Drains read the last probe result; only the scheduler probes
    processor = OutboxProcessor(
        repository,
        engine,
        max_retries=settings.max_retries,
        is_online=lambda: connectivity.online is not False,
    )
    scheduler = SyncScheduler(
        processor,
        connectivity,
        interval=settings.sync_interval_seconds,
        max_backoff=settings.max_backoff_seconds,
    )
    tracker = TrackerService(repository, processor if auto_sync else None)
    return AppContext(
        settings=settings,
        repository=repository,
        client=client,
        engine=engine,
        processor=processor,
        connectivity=connectivity,
        scheduler=scheduler,
        tracker=tracker,
    )
