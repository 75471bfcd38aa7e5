"""Pytest configuration and shared fixtures for DevConnect tests."""

import os
import tempfile

# Settings are read at import time, so the environment goes first.
_DB_DIR = tempfile.mkdtemp(prefix="devconnect-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/devconnect.db"
os.environ["TRACING_ENABLED"] = "false"
os.environ["REALTIME_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from devconnect.auth import create_access_token  # noqa: E402
from devconnect.database import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from devconnect.main import app  # noqa: E402
from devconnect.realtime.broadcaster import Broadcaster  # noqa: E402
from devconnect.realtime.registry import InMemoryConnectionRegistry  # noqa: E402
from devconnect.services import users  # noqa: E402


async def reset_schema() -> None:
    await drop_db()
    await init_db()


async def create_account(name: str, email: str, role: str = "user") -> dict:
    async with AsyncSessionLocal() as db:
        user = await users.create_user(db, name, email, "secret123", role=role, verified=True)
        token = create_access_token(user)
    return {
        "id": user.id,
        "name": user.name,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


class RecordingBroadcaster(Broadcaster):
    """Captures pushes instead of delivering them."""

    def __init__(self) -> None:
        super().__init__(InMemoryConnectionRegistry())
        self.user_events: list[tuple[str, str, Any]] = []
        self.broadcasts: list[tuple[str, Any]] = []

    async def notify_user(self, user_id, event, payload) -> None:
        self.user_events.append((str(user_id), event, payload))

    async def broadcast_all(self, event, payload) -> None:
        self.broadcasts.append((event, payload))


# =============================================================================
# Sync fixtures (TestClient: HTTP + WebSocket)
# =============================================================================


@pytest.fixture
def client():
    """Running app with a fresh schema."""
    with TestClient(app) as test_client:
        test_client.portal.call(reset_schema)
        yield test_client


@pytest.fixture
def make_user(client) -> Callable[..., dict]:
    counter = {"n": 0}

    def _make(name: str | None = None, role: str = "user") -> dict:
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        email = f"user{counter['n']}@example.com"
        return client.portal.call(create_account, name, email, role)

    return _make


@pytest.fixture
def admin(make_user) -> dict:
    return make_user("Admin", role="admin")


# =============================================================================
# Async fixtures (service layer, httpx client)
# =============================================================================


@pytest_asyncio.fixture
async def db():
    await reset_schema()
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def recorder() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest_asyncio.fixture
async def http():
    """httpx client bound to the ASGI app (no lifespan, fresh schema)."""
    await reset_schema()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture
def make_account() -> Callable[..., Any]:
    """Async account factory for tests that run on the event loop."""
    return create_account
