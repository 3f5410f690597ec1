"""Tests for the gist client."""

import asyncio

import httpx
import pytest

from liftlog.db import LocalStateRepository
from liftlog.sync.errors import AuthError, TransientError, ValidationError
from liftlog.sync.remote import GistClient


@pytest.fixture
def client(repository, settings, http_client):
    """Gist client wired to the in-memory API."""
    return GistClient(repository.state, settings, http_client=http_client)


async def _login(client: GistClient) -> None:
    await client.set_token("test-token")


class TestCredentials:
    """Tests for token handling."""

    @pytest.mark.asyncio
    async def test_without_token_everything_is_inert(self, client, gist_server):
        """No token: no requests, no errors."""
        assert not await client.is_authenticated()
        assert await client.fetch_remote_document() is None
        assert await client.upsert_remote_document({"version": 2}) is None
        assert gist_server.requests == []

    @pytest.mark.asyncio
    async def test_logout_forgets_token_and_document(self, client, repository):
        await _login(client)
        await repository.state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, "gist1")

        await client.logout()

        assert not await client.is_authenticated()
        assert await client.get_document_id() is None


class TestFetch:
    """Tests for locating and reading the remote document."""

    @pytest.mark.asyncio
    async def test_fetch_by_remembered_id(self, client, gist_server, repository):
        gist_id = gist_server.add_gist({"version": 2, "tasks": []})
        await _login(client)
        await repository.state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, gist_id)

        document = await client.fetch_remote_document()

        assert document.document_id == gist_id
        assert document.payload == {"version": 2, "tasks": []}
        assert gist_server.requests == [("GET", f"/gists/{gist_id}")]

    @pytest.mark.asyncio
    async def test_fetch_searches_by_description(self, client, gist_server):
        """Without a remembered ID the listing is searched and the ID kept."""
        gist_server.add_gist({"other": True}, description="Something else")
        gist_id = gist_server.add_gist({"version": 2})
        await _login(client)

        document = await client.fetch_remote_document()

        assert document.document_id == gist_id
        assert await client.get_document_id() == gist_id

    @pytest.mark.asyncio
    async def test_stale_id_falls_back_to_search(self, client, gist_server, repository):
        """A deleted gist is forgotten and the listing searched."""
        gist_id = gist_server.add_gist({"version": 2})
        await _login(client)
        await repository.state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, "deleted")

        document = await client.fetch_remote_document()

        assert document.document_id == gist_id
        assert ("GET", "/gists/deleted") in gist_server.requests
        assert await client.get_document_id() == gist_id

    @pytest.mark.asyncio
    async def test_no_remote_document(self, client, gist_server):
        await _login(client)

        assert await client.fetch_remote_document() is None
        assert await client.get_document_id() is None

    @pytest.mark.asyncio
    async def test_gist_deleted_after_listing(self, client, gist_server, monkeypatch):
        """A gist removed between listing and fetch counts as no document."""
        await _login(client)

        async def listed_but_gone(token):
            return {"id": "gone", "description": "Gym Tracker Data"}

        monkeypatch.setattr(client, "_find_by_description", listed_but_gone)

        assert await client.fetch_remote_document() is None
        assert ("GET", "/gists/gone") in gist_server.requests
        assert await client.get_document_id() is None

    @pytest.mark.asyncio
    async def test_listing_is_paged(self, client, gist_server, settings):
        """The search walks listing pages until it finds the document."""
        settings.listing_page_size = 2
        for n in range(3):
            gist_server.add_gist({}, description=f"other {n}")
        gist_id = gist_server.add_gist({"version": 2})
        await _login(client)

        document = await client.fetch_remote_document()

        assert document.document_id == gist_id
        assert [p for m, p in gist_server.requests if p == "/gists"] == ["/gists", "/gists"]

    @pytest.mark.asyncio
    async def test_invalid_json_is_validation_error(self, client, gist_server, repository):
        gist_id = gist_server.add_gist("{not json")
        await _login(client)
        await repository.state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, gist_id)

        with pytest.raises(ValidationError):
            await client.fetch_remote_document()

    @pytest.mark.asyncio
    async def test_gist_without_data_file(self, client, gist_server, repository):
        gist_id = gist_server.add_gist(None)
        await _login(client)
        await repository.state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, gist_id)

        document = await client.fetch_remote_document()

        assert document.document_id == gist_id
        assert document.payload is None


class TestErrors:
    """Tests for error classification."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_errors(self, client, gist_server, status):
        gist_server.fail_status = status
        await _login(client)

        with pytest.raises(AuthError) as exc_info:
            await client.fetch_remote_document()
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_wrong_token(self, client):
        await client.set_token("wrong")

        with pytest.raises(AuthError):
            await client.upsert_remote_document({"version": 2})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [422, 500, 502])
    async def test_other_statuses_are_transient(self, client, gist_server, status):
        gist_server.fail_status = status
        await _login(client)

        with pytest.raises(TransientError):
            await client.upsert_remote_document({"version": 2})

    @pytest.mark.asyncio
    async def test_network_failure_is_transient(self, client, gist_server):
        gist_server.network_down = True
        await _login(client)

        with pytest.raises(TransientError):
            await client.fetch_remote_document()


class TestUpsert:
    """Tests for writing the remote document."""

    @pytest.mark.asyncio
    async def test_create_then_update(self, client, gist_server, settings):
        """First write creates a secret gist; later writes patch it."""
        await _login(client)

        created = await client.upsert_remote_document({"version": 2, "tasks": []})
        updated = await client.upsert_remote_document({"version": 2, "tasks": [{"id": 1}]})

        assert created.document_id == updated.document_id
        assert [m for m, _ in gist_server.requests] == ["POST", "PATCH"]
        assert gist_server.document(created.document_id)["tasks"] == [{"id": 1}]
        assert settings.document_filename in gist_server.gists[created.document_id]["files"]

    @pytest.mark.asyncio
    async def test_concurrent_upsert_is_dropped(self, client, gist_server, repository, settings):
        """A second upsert while one is in flight returns None without a request."""
        release = asyncio.Event()

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return gist_server.handler(request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(slow_handler)) as slow_http:
            slow_client = GistClient(repository.state, settings, http_client=slow_http)
            await _login(slow_client)

            first = asyncio.create_task(slow_client.upsert_remote_document({"version": 2}))
            await asyncio.sleep(0)
            while not slow_client.upsert_in_flight:
                await asyncio.sleep(0)

            assert await slow_client.upsert_remote_document({"version": 2}) is None

            release.set()
            document = await first

        assert document is not None
        assert [m for m, _ in gist_server.requests] == ["POST"]
        assert not slow_client.upsert_in_flight
