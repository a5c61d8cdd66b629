"""
tests/conftest.py -- Shared test fixtures for AFMS unit and integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + records
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus an admin token and a user token
  - user_store / record_store: fresh single-thread in-memory stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the TestClient fixtures because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any core/auth/api import:
  DEBUG            -- get_settings() auto-generates SECRET_KEY instead of raising
  ALLOWED_HOSTS    -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT -- high enough that the suite never trips it
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["*"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from records.store import RecordStore

ADMIN_USERNAME = "testadmin"
ADMIN_PASSWORD = "testpass123"
USER_USERNAME = "testuser"
USER_PASSWORD = "userpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, RecordStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. the test module name).
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    records_url = f"sqlite:///file:test_records_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), RecordStore(db_url=records_url)


def _patch_lifespan(user_store: UserStore, record_store: RecordStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.record_store = record_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test stores -- one fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def record_store() -> Generator[RecordStore, None, None]:
    store = RecordStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Module-scoped client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, admin_token, user_token) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    One admin and one user account are created before the client starts;
    their passwords are ADMIN_PASSWORD and USER_PASSWORD.
    """
    suffix = request.module.__name__.replace(".", "_")
    user_store, record_store = _make_test_stores(suffix)

    admin_id = user_store.create_user(
        User(username=ADMIN_USERNAME, hashed_password=hash_password(ADMIN_PASSWORD), role=Role.admin.value)
    )
    user_id = user_store.create_user(
        User(username=USER_USERNAME, hashed_password=hash_password(USER_PASSWORD), role=Role.user.value)
    )
    admin_token = create_access_token(admin_id, ADMIN_USERNAME, Role.admin.value, expire_seconds=3600)
    user_token = create_access_token(user_id, USER_USERNAME, Role.user.value, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, record_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, admin_token, user_token

    user_store.close()
    record_store.close()


@pytest.fixture
def fresh_client(request) -> Generator[TestClient, None, None]:
    """TestClient over empty stores -- no accounts, no records."""
    suffix = f"{request.module.__name__}_{request.node.name}".replace(".", "_").replace("[", "_").replace("]", "_")
    user_store, record_store = _make_test_stores(suffix)
    app.router.lifespan_context = _patch_lifespan(user_store, record_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    user_store.close()
    record_store.close()
