"""
tests/test_site_routes.py -- /branch and /library (ADMIN routes).

Both are served by the same router factory, so every test runs against both
prefixes.

Coverage:
  - Create requires name + address and rejects unexpected keys
  - Duplicate names rejected on create and rename
  - Partial update keeps the omitted field
  - getAll / get embed the attached books
  - Delete clears the book link instead of deleting books
"""

from __future__ import annotations

from datetime import date

import pytest

from catalog.models import Book, Category

KINDS = [("branch", "Branch", "branch_id"), ("library", "Library", "library_id")]


@pytest.mark.parametrize(("prefix", "label", "fk"), KINDS)
class TestSiteRoutes:
    def test_create(self, api, prefix, label, fk) -> None:
        resp = api.client.post(
            f"/{prefix}/create", json={"name": f"{label} Create", "address": "1 Road"}, headers=api.headers("admin")
        )
        assert resp.status_code == 201
        assert resp.json()["message"] == f"{label} created successfully"
        assert resp.json()["data"]["address"] == "1 Road"

    def test_missing_address(self, api, prefix, label, fk) -> None:
        resp = api.client.post(f"/{prefix}/create", json={"name": "No Address"}, headers=api.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["data"] == {"missingFields": ["address"]}

    def test_unexpected_fields(self, api, prefix, label, fk) -> None:
        resp = api.client.post(
            f"/{prefix}/create",
            json={"name": f"{label} Extra", "address": "x", "phone": "555", "manager": "Kim"},
            headers=api.headers("admin"),
        )
        assert resp.status_code == 400
        assert resp.json()["data"]["errors"] == ["Unexpected fields provided: phone, manager"]

    def test_duplicate_name(self, api, prefix, label, fk) -> None:
        h = api.headers("admin")
        api.client.post(f"/{prefix}/create", json={"name": f"{label} Dup", "address": "a"}, headers=h)
        resp = api.client.post(f"/{prefix}/create", json={"name": f"{label} Dup", "address": "b"}, headers=h)
        assert resp.status_code == 400
        assert resp.json()["message"] == f"{label} with this name already exists"

    def test_partial_update(self, api, prefix, label, fk) -> None:
        h = api.headers("admin")
        sid = api.client.post(
            f"/{prefix}/create", json={"name": f"{label} Part", "address": "old"}, headers=h
        ).json()["data"]["id"]
        resp = api.client.patch(f"/{prefix}/update/{sid}", json={"address": "new"}, headers=h)
        assert resp.status_code == 200
        assert resp.json()["data"] == {"id": sid, "name": f"{label} Part", "address": "new"}

    def test_update_keeping_own_name(self, api, prefix, label, fk) -> None:
        h = api.headers("admin")
        sid = api.client.post(
            f"/{prefix}/create", json={"name": f"{label} Self", "address": "a"}, headers=h
        ).json()["data"]["id"]
        resp = api.client.patch(f"/{prefix}/update/{sid}", json={"name": f"{label} Self"}, headers=h)
        assert resp.status_code == 200

    def test_get_embeds_books_and_delete_unlinks(self, api, prefix, label, fk) -> None:
        h = api.headers("admin")
        stores = api.stores
        sid = api.client.post(
            f"/{prefix}/create", json={"name": f"{label} Books", "address": "a"}, headers=h
        ).json()["data"]["id"]
        cid = stores.categories.create(Category(name=f"{label} shelf"))
        bid = stores.books.create(
            Book(title="Linked", description="d", publication_date=date(2001, 1, 1), status="AVAILABLE", category_id=cid, **{fk: sid})
        )

        got = api.client.get(f"/{prefix}/get/{sid}", headers=h).json()["data"]
        assert [b["id"] for b in got["books"]] == [bid]

        everything = api.client.get(f"/{prefix}/getAll", headers=h).json()["data"]
        assert any(s["id"] == sid and s["books"] for s in everything)

        assert api.client.delete(f"/{prefix}/delete/{sid}", headers=h).status_code == 200
        book = stores.books.get(bid)
        assert book is not None
        assert getattr(book, fk) is None

    def test_delete_missing(self, api, prefix, label, fk) -> None:
        resp = api.client.delete(f"/{prefix}/delete/87654", headers=api.headers("admin"))
        assert resp.status_code == 404
        assert resp.json()["message"] == f"{label} not found"
