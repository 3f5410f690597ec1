"""Integration tests against the real GitHub gist API.

These tests create and delete a secret gist in the account of the token in
``LIFTLOG_TEST_TOKEN``. They are skipped when the variable is not set.
"""

import tempfile
import uuid
from pathlib import Path

import httpx
import pytest

from liftlog.config import Settings
from liftlog.models import SetEntry
from liftlog.services import create_context


@pytest.fixture
def settings():
    """Settings with a unique description so real data is never touched."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Settings(
            data_dir=Path(tmpdir),
            document_description=f"liftlog integration test {uuid.uuid4().hex[:8]}",
        )


class TestGistRoundtrip:
    """Full sync passes between two devices via a real gist."""

    @pytest.mark.asyncio
    async def test_two_devices(self, settings, gist_token):
        phone = await create_context(settings.data_dir / "phone.db", settings, auto_sync=False)
        laptop = await create_context(settings.data_dir / "laptop.db", settings, auto_sync=False)
        for device in (phone, laptop):
            await device.client.set_token(gist_token)

        try:
            task = await phone.tracker.create_task("Bench Press")
            await phone.tracker.log_sets(task.id, [SetEntry(10, 60)])
            result = await phone.processor.drain()
            assert result.synced

            outcome = await laptop.engine.sync_once()
            assert outcome.stats.tasks_created == 1
            assert outcome.stats.log_entries_created == 1

            again = await phone.engine.sync_once()
            assert again.stats.total_changes == 0
        finally:
            document_id = await phone.client.get_document_id()
            if document_id:
                async with httpx.AsyncClient() as http:
                    await http.delete(
                        f"{settings.api_base_url}/gists/{document_id}",
                        headers={"Authorization": f"Bearer {gist_token}"},
                    )
