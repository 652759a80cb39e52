"""
tests/conftest.py -- Shared test fixtures for the portfolio auth API tests.

This module provides:
  - make_sql_store(): isolated in-memory SqlDirectoryStore
  - _patch_lifespan(): wires a test store and services into app.state,
    bypassing the real startup (which would build the configured backend)
  - api: module-scoped TestClient with a seeded admin and photographer
  - mock_store: MagicMock standing in for a DirectoryStore in service tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG and DIRECTORY_BACKEND must be set before any project import so
get_settings() auto-generates SECRET_KEY and does not ask for Supabase
credentials.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import MagicMock

# CRITICAL: configure before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DIRECTORY_BACKEND", "sql")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import DirectoryUser, Principal
from auth.service import AuthService, provision_user
from auth.store import SqlDirectoryStore
from auth.tokens import create_access_token
from directory.service import UserDirectoryService

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
PHOTOGRAPHER_EMAIL = "photo@example.com"
PHOTOGRAPHER_PASSWORD = "photopass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_sql_store(name: str | None = None) -> SqlDirectoryStore:
    """Create an isolated named shared-memory SQLite store."""
    db_name = name or uuid.uuid4().hex
    return SqlDirectoryStore(f"sqlite:///file:test_dir_{db_name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: SqlDirectoryStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.auth_service = AuthService(store)
        app.state.directory_service = UserDirectoryService(store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    store: SqlDirectoryStore
    admin: DirectoryUser
    admin_token: str
    photographer: DirectoryUser
    photographer_token: str


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext wired to a fresh in-memory directory.

    One admin and one photographer exist before the client starts. Tests
    that mutate or delete users create their own targets with unique emails
    so the module-scoped state stays predictable.
    """
    store = make_sql_store(request.module.__name__.replace(".", "_"))

    admin = provision_user(store, ADMIN_EMAIL, ADMIN_PASSWORD, "Ada", "Admin", "admin")
    photographer = provision_user(store, PHOTOGRAPHER_EMAIL, PHOTOGRAPHER_PASSWORD, "Pat", "Lens", None)

    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            store=store,
            admin=admin,
            admin_token=create_access_token(admin.id, admin.email, admin.role),
            photographer=photographer,
            photographer_token=create_access_token(photographer.id, photographer.email, photographer.role),
        )

    store.close()


# ---------------------------------------------------------------------------
# Service-level fixtures
# ---------------------------------------------------------------------------


ADMIN = Principal(id="11111111-1111-4111-8111-111111111111", email=ADMIN_EMAIL, role="admin")
PHOTOGRAPHER = Principal(id="22222222-2222-4222-8222-222222222222", email=PHOTOGRAPHER_EMAIL, role="photographer")


@pytest.fixture
def sql_store() -> Generator[SqlDirectoryStore, None, None]:
    """A fresh shared-memory SqlDirectoryStore per test."""
    store = make_sql_store()
    yield store
    store.close()


@pytest.fixture
def mock_store() -> MagicMock:
    """A DirectoryStore double. Every method is a MagicMock."""
    return MagicMock()


@pytest.fixture
def admin_principal() -> Principal:
    return ADMIN


@pytest.fixture
def photographer_principal() -> Principal:
    return PHOTOGRAPHER
