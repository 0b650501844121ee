"""
tests/conftest.py -- Shared test fixtures for VaultSync.

This module provides:
  - FakeClock / clock: injectable time source so expiry can be simulated
  - signer / revocations / directory / service: an isolated token core
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
Each api_client gets a fresh database name so tests cannot see each other's
accounts.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.revocation import RevocationStore
from auth.scheduler import CleanupScheduler
from auth.service import TokenService
from auth.store import UserStore
from auth.tokens import TokenSigner

TEST_SECRET = "test-secret-key-for-vaultsync-0123456789abcdef"
WRONG_SECRET = "another-secret-key-nobody-configured-0123456789"

# A fixed, arbitrary instant (2023-11-14) so expiry arithmetic is exact.
T0 = 1_700_000_000.0


class FakeClock:
    """Callable time source. advance() simulates the passage of time."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDirectory:
    """In-memory identity directory; set fail=True to simulate a DB outage.

    Subjects count as registered at T0 unless registered_at says otherwise.
    """

    def __init__(self, subjects: set[str] | None = None) -> None:
        self.subjects = set(subjects or ())
        self.registered_at: dict[str, float] = {}
        self.fail = False
        self.calls = 0

    def exists(self, subject: str, issued_at: float | None = None) -> bool:
        self.calls += 1
        if self.fail:
            raise RuntimeError("directory unavailable")
        if subject not in self.subjects:
            return False
        return issued_at is None or self.registered_at.get(subject, T0) <= issued_at


# ---------------------------------------------------------------------------
# Token core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer(clock: FakeClock) -> TokenSigner:
    return TokenSigner(TEST_SECRET, ttl_seconds=3600, clock=clock)


@pytest.fixture
def revocations(signer: TokenSigner) -> RevocationStore:
    return RevocationStore(expiry_of=signer.expiry_of)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory({"a@x.com"})


@pytest.fixture
def service(signer: TokenSigner, revocations: RevocationStore, directory: FakeDirectory) -> TokenService:
    return TokenService(signer, revocations, directory)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store() -> UserStore:
    """Create an isolated named shared-memory SQLite store."""
    name = f"test_vaultsync_{uuid.uuid4().hex}"
    return UserStore(db_url=f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, token_service: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and a real-clock TokenService into app.state. The
    real CleanupScheduler runs with a one-hour interval so it never fires
    during a test but is still started and stopped like in production.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_service = token_service
        app.state.cleanup = CleanupScheduler(token_service, interval_seconds=3600)
        app.state.cleanup.start()
        yield
        await app.state.cleanup.stop()

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with an isolated store.

    The client's app.state exposes user_store and token_service so tests can
    forge, revoke or inspect tokens directly.
    """
    user_store = _make_test_store()
    signer = TokenSigner(TEST_SECRET, ttl_seconds=3600)
    token_service = TokenService(signer, RevocationStore(expiry_of=signer.expiry_of), directory=user_store)

    app.router.lifespan_context = _patch_lifespan(user_store, token_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    user_store.close()


def register(client: TestClient, email: str = "test@example.com", password_hash: str = "hash123") -> str:
    """Register an account through the API and return its token."""
    resp = client.post("/api/v1/auth/register", json={"email": email, "password_hash": password_hash})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def login(client: TestClient, email: str = "test@example.com", password_hash: str = "hash123") -> str:
    resp = client.post("/api/v1/auth/login", json={"email": email, "password_hash": password_hash})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
