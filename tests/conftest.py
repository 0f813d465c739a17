"""
tests/conftest.py -- Shared test fixtures for OrgKeeper.

This module provides:
  - store / hasher / tokens: isolated unit-level building blocks
  - RecordingTransport: in-memory MailTransport that records every message
  - _patch_lifespan(): wires a test store and transport into app.state
  - api_client: TestClient against the real FastAPI app

Design: CredentialStore keeps a single StaticPool connection for in-memory
URLs, so sync route handlers on TestClient's thread pool and the invite
flow's asyncio.to_thread lookups all see the same database. The API client
uses a named shared-memory URI per test module; unit fixtures use plain
:memory:.

Environment must be set before any api/ import: DEBUG lets get_settings()
auto-generate SECRET_KEY, ALLOWED_HOSTS admits TestClient's "testserver"
host, the login rate limit is raised so repeated logins across tests do not
trip it, and bcrypt runs at its minimum cost.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.hashing import HashService
from auth.store import CredentialStore
from auth.tokens import TokenService
from core.config import get_settings
from core.results import MailDeliveryError
from mail.transport import MailMessage

TEST_SECRET = "t" * 32
OTHER_SECRET = "o" * 32


# ---------------------------------------------------------------------------
# Mail double
# ---------------------------------------------------------------------------


class RecordingTransport:
    """MailTransport that keeps every message and can fail chosen recipients."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[MailMessage] = []
        self.attempts: list[MailMessage] = []
        self.fail_for = fail_for or set()

    async def send(self, message: MailMessage) -> None:
        self.attempts.append(message)
        if message.to in self.fail_for:
            raise MailDeliveryError(f"relay refused {message.to}")
        self.sent.append(message)

    def reset(self) -> None:
        self.sent.clear()
        self.attempts.clear()
        self.fail_for.clear()


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def hasher() -> HashService:
    return HashService(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret_key=TEST_SECRET)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, transport: RecordingTransport):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and recording transport into app.state through the
    same build_services() the real lifespan uses, so no SMTP relay or
    on-disk database is touched.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        build_services(app.state, get_settings(), store, transport)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, RecordingTransport], None, None]:
    """Yield (client, transport) for API integration tests.

    One isolated shared-memory database per test module.
    """
    db_name = request.module.__name__.replace(".", "_")
    store = CredentialStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    transport = RecordingTransport()

    app.router.lifespan_context = _patch_lifespan(store, transport)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, transport

    store.close()


def register(client: TestClient, email: str, password: str = "p1") -> str:
    """Register through the API and return the session token."""
    resp = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
