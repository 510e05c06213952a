"""
tests/conftest.py -- Shared test fixtures for the library API integration tests.

This module provides:
  - _make_test_stores(): builds the repositories on an isolated in-memory DB
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: one TestClient per test module with an admin, a librarian and two
    readers already seeded, plus an access token for each

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any api/auth/core import because
get_settings() is cached at first use.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-secret-0123456789abcdef01")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.stores import Stores, build_stores
from auth.models import User
from auth.tokens import create_access_token, hash_password
from core.db import make_engine
from core.models import Role

PASSWORD = "correct horse battery"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_name: str) -> Stores:
    """Build all repositories on a named shared-memory SQLite database.

    Args:
        db_name: Unique name so test modules don't share state.
    """
    engine = make_engine(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    return build_stores(engine)


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.stores = stores
        app.state.user_store = stores.users
        yield

    return test_lifespan


def _seed_user(stores: Stores, name: str, email: str, role: Role) -> User:
    uid = stores.users.create_user(User(name=name, email=email, password=hash_password(PASSWORD), role=role.value))
    return stores.users.get_by_id(uid)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def token_for(user: User) -> str:
    return create_access_token(user_id=user.id, email=user.email, role=user.role, expire_seconds=3600)


@dataclass
class ApiHarness:
    """Everything a route test needs: the client, the stores and seeded users."""

    client: TestClient
    stores: Stores
    users: dict[str, User] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)
    password: str = PASSWORD

    def headers(self, who: str) -> dict[str, str]:
        return bearer(self.tokens[who])


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api(request: pytest.FixtureRequest) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness on a fresh database.

    Seeded users (keys into .users / .tokens / .headers()):
      admin      ADMIN      admin@lib.test
      librarian  LIBRARIAN  librarian@lib.test
      reader_a   READER     a@x.com
      reader_b   READER     b@x.com

    All share the password in .password.
    """
    db_name = "test_" + request.module.__name__.rsplit(".", 1)[-1]
    stores = _make_test_stores(db_name)

    seeded = {
        "admin": _seed_user(stores, "Ada Admin", "admin@lib.test", Role.ADMIN),
        "librarian": _seed_user(stores, "Lee Librarian", "librarian@lib.test", Role.LIBRARIAN),
        "reader_a": _seed_user(stores, "Reader A", "a@x.com", Role.READER),
        "reader_b": _seed_user(stores, "Reader B", "b@x.com", Role.READER),
    }
    harness = ApiHarness(
        client=None,  # type: ignore[arg-type]
        stores=stores,
        users=seeded,
        tokens={k: token_for(u) for k, u in seeded.items()},
    )

    app.router.lifespan_context = _patch_lifespan(stores)

    with TestClient(app, raise_server_exceptions=True) as client:
        harness.client = client
        yield harness

    stores.close()


@pytest.fixture
def memory_stores() -> Generator[Stores, None, None]:
    """Fresh repositories on a private sqlite:///:memory: engine for store unit tests."""
    stores = build_stores(make_engine("sqlite:///:memory:"))
    yield stores
    stores.close()
