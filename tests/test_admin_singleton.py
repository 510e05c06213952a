"""
tests/test_admin_singleton.py -- Only one ADMIN can ever exist, even under concurrent sign-ups.

Coverage:
  - Eight simultaneous ADMIN registrations on an empty database: exactly one
    succeeds, the rest get 400 "Admin already exists..."
  - A registration that loses the race at the INSERT gets the admin message,
    not the email-conflict message

The database is a file under tmp_path rather than the shared-memory URI the
other modules use: shared-cache SQLite answers concurrent writers with
SQLITE_LOCKED instead of waiting for the lock.
"""

from __future__ import annotations

from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from api.errors import ADMIN_EXISTS
from api.main import app
from api.stores import Stores, build_stores
from core.db import make_engine

RACERS = 8


@pytest.fixture(scope="module")
def race(tmp_path_factory: pytest.TempPathFactory) -> Generator[tuple[TestClient, Stores], None, None]:
    db_path = tmp_path_factory.mktemp("admin-race") / "library.db"
    stores = build_stores(make_engine(f"sqlite:///{db_path}"))

    @asynccontextmanager
    async def lifespan(app_):
        app_.state.stores = stores
        app_.state.user_store = stores.users
        yield

    app.router.lifespan_context = lifespan
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, stores
    stores.close()


def _admin_body(i: int) -> dict:
    return {"name": f"Admin {i}", "email": f"admin{i}@lib.test", "password": "pw", "role": "ADMIN"}


def test_concurrent_admin_registration_creates_one_admin(race) -> None:
    client, stores = race

    with ThreadPoolExecutor(max_workers=RACERS) as pool:
        responses = list(pool.map(lambda i: client.post("/register", json=_admin_body(i)), range(RACERS)))

    statuses = sorted(r.status_code for r in responses)
    assert statuses == [201] + [400] * (RACERS - 1)
    assert {r.json()["message"] for r in responses if r.status_code == 400} == {ADMIN_EXISTS}
    assert stores.users.count_by_role("ADMIN") == 1


def test_insert_race_reports_admin_message(race, monkeypatch) -> None:
    """The count check passes, the unique index rejects the row."""
    client, stores = race
    assert stores.users.count_by_role("ADMIN") == 1

    monkeypatch.setattr(stores.users, "count_by_role", lambda role: 0)
    resp = client.post("/register", json=_admin_body(99))
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": ADMIN_EXISTS}
    assert stores.users.get_by_email("admin99@lib.test") is None
