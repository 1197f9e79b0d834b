"""
tests/conftest.py -- Shared test fixtures for Biblio.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + collections
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - stores / user_store / collection_store: seeded stores, fresh per test
  - client: TestClient over the real app using those stores
  - admin_headers / user_headers: Authorization headers for the seeded users

Seed data (every test starts from this):
  id 1  test1@yahoo.com  password1  admin
  id 2  test2@yahoo.com  password2  regular user

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The environment variables must be set before any api/auth/core import so
get_settings() generates throwaway secrets, pins bcrypt to its minimum cost
and builds the limiter disabled.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set these before any auth/core import. Settings is cached on
# first use and the limiter reads it at import time.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.flows import create_user_account
from auth.models import TokenClaims
from auth.store import UserStore
from auth.tokens import create_access_token
from library.store import CollectionStore

ADMIN_EMAIL = "test1@yahoo.com"
ADMIN_PASSWORD = "password1"
USER_EMAIL = "test2@yahoo.com"
USER_PASSWORD = "password2"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, CollectionStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so tests never see
                   each other's rows.
    """
    user_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    collection_url = f"sqlite:///file:test_collections_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=user_url), CollectionStore(db_url=collection_url)


def _patch_lifespan(user_store: UserStore, collection_store: CollectionStore):
    """Return an async context manager that replaces the real lifespan.

    The real lifespan opens stores on DATABASE_URL; this one hands the app
    the pre-seeded test stores instead. Closing them is the fixture's job.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.collection_store = collection_store
        yield

    return test_lifespan


def _seed(user_store: UserStore) -> None:
    create_user_account(
        user_store,
        email=ADMIN_EMAIL,
        first_name="Test",
        last_name="Admin",
        password=ADMIN_PASSWORD,
        is_admin=True,
    )
    create_user_account(
        user_store,
        email=USER_EMAIL,
        first_name="Test",
        last_name="User",
        password=USER_PASSWORD,
    )


# ---------------------------------------------------------------------------
# Fixtures -- function scoped; auth state is mutated by almost every test
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, CollectionStore], None, None]:
    user_store, collection_store = _make_test_stores(uuid.uuid4().hex[:12])
    _seed(user_store)
    yield user_store, collection_store
    collection_store.close()
    user_store.close()


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def collection_store(stores) -> CollectionStore:
    return stores[1]


@pytest.fixture
def client(stores) -> Generator[TestClient, None, None]:
    """TestClient over the real app with the seeded stores.

    The client keeps a cookie jar, so a login or register followed by
    /auth/refresh carries the "jwt" cookie automatically.
    """
    app.router.lifespan_context = _patch_lifespan(*stores)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def admin_token() -> str:
    return create_access_token(TokenClaims(id=1, email=ADMIN_EMAIL, is_admin=True), expire_seconds=3600)


@pytest.fixture
def user_token() -> str:
    return create_access_token(TokenClaims(id=2, email=USER_EMAIL, is_admin=False), expire_seconds=3600)


@pytest.fixture
def admin_headers(admin_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def user_headers(user_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_token}"}
