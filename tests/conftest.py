"""
tests/conftest.py -- Shared test fixtures for Chirpy auth tests.

This module provides:
  - store:       isolated in-memory UserStore per test
  - user:        a persisted user with a known password
  - refresh_tokens: RefreshTokenManager over the test store
  - api_client:  TestClient with a patched lifespan and isolated store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API client because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import asyncio
import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("API_KEY", "test-service-api-key")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.passwords import hash_password
from auth.refresh import RefreshTokenManager
from auth.store import UserStore
from core.config import get_settings

TEST_PASSWORD = "correct horse battery staple"

_db_counter = itertools.count()


def _shared_memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(_shared_memory_url("test_auth"))
    yield s
    s.close()


@pytest.fixture(scope="session")
def plain_password() -> str:
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    """One bcrypt hash for the whole session -- bcrypt is slow on purpose."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def user(store: UserStore, password_hash: str) -> User:
    u = User(email="walt@example.com", hashed_password=password_hash)
    store.create_user(u)
    return u


@pytest.fixture
def refresh_tokens(store: UserStore) -> RefreshTokenManager:
    return RefreshTokenManager(store)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store into app.state so routes never touch the on-disk
    database. The purge task is a long-sleeping coroutine so shutdown can
    cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.refresh_tokens = RefreshTokenManager(user_store, lifetime=settings.refresh_token_lifetime)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, store) for API integration tests.

    Each test gets a fresh database so sign-ups and revocations never leak
    between tests.
    """
    user_store = UserStore(_shared_memory_url("test_api"))
    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store

    user_store.close()
