"""
tests/test_rate_limit.py -- Per-IP rate limiting on /login and /register.

Coverage:
  - The request after the limit gets 429 in the standard envelope with a
    Retry-After header
  - /login and /register count separately
  - /refresh_token is not limited

The limit is read from settings on every request, so each test lowers it to
2/minute and clears the limiter's counters around itself.
"""

from __future__ import annotations

import pytest

from api.limiter import limiter
from core.config import get_settings

TOO_MANY = {"success": False, "message": "Too many requests. Please try again later."}


@pytest.fixture
def tight_limit(monkeypatch):
    monkeypatch.setattr(get_settings(), "login_rate_limit", "2/minute")
    limiter.reset()
    yield
    limiter.reset()


def test_login_limited(api, tight_limit) -> None:
    creds = {"email": "a@x.com", "password": "wrong"}
    for _ in range(2):
        assert api.client.post("/login", json=creds).status_code == 400

    resp = api.client.post("/login", json=creds)
    assert resp.status_code == 429
    assert resp.json() == TOO_MANY
    assert resp.headers["Retry-After"] == "60"


def test_register_limited_separately(api, tight_limit) -> None:
    api.client.post("/login", json={"email": "a@x.com", "password": "wrong"})
    for _ in range(2):
        assert api.client.post("/register", json={"name": "Nina"}).status_code == 400

    resp = api.client.post("/register", json={"name": "Nina"})
    assert resp.status_code == 429
    assert resp.json() == TOO_MANY
    assert int(resp.headers["Retry-After"]) > 0
    assert api.client.post("/login", json={"email": "a@x.com", "password": "wrong"}).status_code == 400


def test_refresh_not_limited(api, tight_limit) -> None:
    for _ in range(4):
        assert api.client.post("/refresh_token", json={}).status_code == 400
