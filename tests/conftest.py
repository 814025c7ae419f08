import os
import datetime
import dataclasses

# Keep the module-level app in deploy_tracker.main from creating a database in the working tree.
os.environ["DEPLOY_TRACKER_DB"] = ""

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from deploy_tracker.config import Settings
from deploy_tracker.ingest import build_event
from deploy_tracker.main import create_app
from deploy_tracker.store import EventStore


class FakeUpstream:
    """Stands in for the reputation API behind an httpx.MockTransport."""

    def __init__(self):
        self.calls = []
        self.payloads = {}
        self.failing = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        repo = request.url.params["repo"]
        self.calls.append(repo)
        if repo in self.failing:
            return httpx.Response(500, json={"error": "boom"})
        return httpx.Response(200, json=self.payloads.get(repo, {"repo": repo, "stars": 1}))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "tracker.db")


@pytest.fixture
def store(db_path):
    return EventStore(db_path)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def settings(db_path):
    return Settings(db_path=db_path, api_key="secret", local=True)


@pytest.fixture
def seed(store):
    """Insert an event as if it had been received at ``when``."""
    def _seed(when: datetime.datetime, **payload):
        return store.insert(build_event(payload, now=when))
    return _seed


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def make_client(settings, store, upstream):
    """Build an ASGI test client; keyword arguments override settings fields."""
    clients = []

    def _make(**overrides):
        app = create_app(
            dataclasses.replace(settings, **overrides),
            store=store if overrides.get("db_path", settings.db_path) else None,
            http_client=upstream.client(),
        )
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return app, client

    yield _make

    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def test_client(make_client):
    _, client = make_client()
    yield client
