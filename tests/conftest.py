"""Pytest configuration and fixtures."""

import json
import tempfile
from datetime import datetime
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from liftlog.config import Settings
from liftlog.db import LocalRepository
from liftlog.models import LogEntry, SetEntry, Snapshot, Task, Workout
from liftlog.services import create_context
from liftlog.utils.timeutils import from_datetime

DOCUMENT_DESCRIPTION = "Gym Tracker Data"
DOCUMENT_FILENAME = "gym-tracker-data.json"


class FakeGistServer:
    """In-memory stand-in for the GitHub gist API, served via httpx.MockTransport."""

    def __init__(self):
        self.gists: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_status: int | None = None
        self.network_down = False
        self._next_id = 1

    def add_gist(self, content: dict | str | None, description: str = DOCUMENT_DESCRIPTION) -> str:
        """Seed a gist and return its ID."""
        gist_id = f"gist{self._next_id}"
        self._next_id += 1
        files = {}
        if content is not None:
            text = content if isinstance(content, str) else json.dumps(content)
            files[DOCUMENT_FILENAME] = {"content": text}
        self.gists[gist_id] = {"id": gist_id, "description": description, "files": files}
        return gist_id

    def document(self, gist_id: str) -> dict:
        """Parsed data file of a stored gist."""
        return json.loads(self.gists[gist_id]["files"][DOCUMENT_FILENAME]["content"])

    def _gist_json(self, gist: dict, with_content: bool = True) -> dict:
        files = {}
        for name, file in gist["files"].items():
            files[name] = {
                "filename": name,
                "raw_url": f"https://gist.githubusercontent.com/raw/{gist['id']}/{name}",
                "truncated": False,
            }
            if with_content:
                files[name]["content"] = file["content"]
        return {
            "id": gist["id"],
            "description": gist["description"],
            "files": files,
            "updated_at": "2024-01-05T08:00:00Z",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.network_down:
            raise httpx.ConnectError("network is unreachable", request=request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"message": "failure"})
        if request.headers.get("Authorization") != "Bearer test-token":
            return httpx.Response(401, json={"message": "Bad credentials"})

        path = request.url.path
        if request.method == "GET" and path == "/gists":
            page = int(request.url.params.get("page", 1))
            per_page = int(request.url.params.get("per_page", 30))
            listing = [self._gist_json(g, with_content=False) for g in self.gists.values()]
            return httpx.Response(200, json=listing[(page - 1) * per_page : page * per_page])

        if request.method == "POST" and path == "/gists":
            body = json.loads(request.content)
            gist_id = self.add_gist(None, body["description"])
            self.gists[gist_id]["files"] = {
                name: {"content": f["content"]} for name, f in body["files"].items()
            }
            return httpx.Response(201, json=self._gist_json(self.gists[gist_id]))

        gist_id = path.rsplit("/", 1)[-1]
        gist = self.gists.get(gist_id)
        if gist is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if request.method == "GET":
            return httpx.Response(200, json=self._gist_json(gist))
        if request.method == "PATCH":
            body = json.loads(request.content)
            for name, f in body["files"].items():
                gist["files"][name] = {"content": f["content"]}
            return httpx.Response(200, json=self._gist_json(gist))
        return httpx.Response(405, json={"message": "Method not allowed"})


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    """Settings pointing at a temporary data directory."""
    return Settings(data_dir=temp_dir, log_level="DEBUG")


@pytest.fixture
def gist_server():
    """A fresh in-memory gist API."""
    return FakeGistServer()


@pytest_asyncio.fixture
async def http_client(gist_server):
    """httpx client routed to the in-memory gist API."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(gist_server.handler)) as client:
        yield client


@pytest_asyncio.fixture
async def repository(temp_db_path):
    """An initialized local repository."""
    return await LocalRepository.open(temp_db_path)


@pytest.fixture
def make_context(temp_dir, settings, http_client):
    """Factory for device contexts sharing one gist server.

    Each call opens a separate database, i.e. a separate device.
    """
    counter = {"n": 0}

    async def _make(token: str | None = "test-token", auto_sync: bool = True):
        counter["n"] += 1
        context = await create_context(
            temp_dir / f"device{counter['n']}.db",
            settings,
            http_client=http_client,
            auto_sync=auto_sync,
        )
        if token:
            await context.client.set_token(token)
        return context

    return _make


@pytest.fixture
def sample_snapshot():
    """A small snapshot: one workout with two tasks and a logged session."""
    bench = Task(id=1, name="Bench Press", last_modified=100)
    fly = Task(id=2, name="Cable Fly", last_modified=100)
    push = Workout(id=1, name="Push Day", task_ids=[1, 2], last_modified=100)
    entry = LogEntry(
        id=1,
        task_id=1,
        date=from_datetime(datetime(2024, 1, 5, 8, 0)),
        sets=[SetEntry(reps=10, weight=60), SetEntry(reps=8, weight=65)],
        last_modified=100,
    )
    return Snapshot(workouts=[push], tasks=[bench, fly], log_entries=[entry])
