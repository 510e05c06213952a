"""
tests/test_user_routes.py -- /librarian (ADMIN) and /reader (LIBRARIAN) account management.

Coverage:
  - Admin creates, updates and deletes librarians; other roles are off limits
  - Passwords are hashed on create and on update; never returned
  - Email uniqueness on create and update
  - Promotion to ADMIN refused while an admin exists
  - Librarian manages readers; ADMIN/AUTHOR accounts are protected
"""

from __future__ import annotations

from auth.models import User
from auth.tokens import hash_password, verify_password


def _librarian_body(email: str, **overrides) -> dict:
    body = {"name": "New Librarian", "email": email, "password": "lib-pass", "role": "LIBRARIAN"}
    body.update(overrides)
    return body


class TestLibrarianRoutes:
    def test_create_librarian(self, api) -> None:
        resp = api.client.post("/librarian/create", json=_librarian_body("lib2@lib.test"), headers=api.headers("admin"))
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["role"] == "LIBRARIAN"
        assert "password" not in data
        stored = api.stores.users.get_by_id(data["id"])
        assert verify_password("lib-pass", stored.password)

    def test_create_other_role_forbidden(self, api) -> None:
        resp = api.client.post(
            "/librarian/create", json=_librarian_body("r@lib.test", role="READER"), headers=api.headers("admin")
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admins can only create Librarian users"

    def test_create_missing_fields(self, api) -> None:
        resp = api.client.post("/librarian/create", json={"name": "x"}, headers=api.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["data"]["missingFields"] == ["email", "password", "role"]

    def test_create_duplicate_email(self, api) -> None:
        resp = api.client.post(
            "/librarian/create", json=_librarian_body("librarian@lib.test"), headers=api.headers("admin")
        )
        assert resp.status_code == 400

    def test_get_all_lists_only_librarians(self, api) -> None:
        resp = api.client.get("/librarian/getAll", headers=api.headers("admin"))
        assert resp.status_code == 200
        roles = {u["role"] for u in resp.json()["data"]}
        assert roles == {"LIBRARIAN"}

    def test_get_by_id(self, api) -> None:
        lib = api.users["librarian"]
        resp = api.client.get(f"/librarian/get/{lib.id}", headers=api.headers("admin"))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == lib.email

    def test_invalid_id(self, api) -> None:
        resp = api.client.get("/librarian/get/abc", headers=api.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid ID format"

    def test_update_rehashes_password(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Upd", email="upd@lib.test", password=hash_password("old"), role="LIBRARIAN")
        )
        resp = api.client.patch(
            f"/librarian/update/{uid}", json={"name": "Updated", "password": "new-pass"}, headers=api.headers("admin")
        )
        assert resp.status_code == 200
        stored = api.stores.users.get_by_id(uid)
        assert stored.name == "Updated"
        assert stored.email == "upd@lib.test"
        assert verify_password("new-pass", stored.password)

    def test_update_email_in_use(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Clash", email="clash@lib.test", password=hash_password("pw"), role="LIBRARIAN")
        )
        resp = api.client.patch(f"/librarian/update/{uid}", json={"email": "a@x.com"}, headers=api.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email is already in use"

    def test_update_same_email_is_not_a_conflict(self, api) -> None:
        lib = api.users["librarian"]
        resp = api.client.patch(
            f"/librarian/update/{lib.id}", json={"email": lib.email}, headers=api.headers("admin")
        )
        assert resp.status_code == 200

    def test_promotion_to_admin_refused(self, api) -> None:
        lib = api.users["librarian"]
        resp = api.client.patch(f"/librarian/update/{lib.id}", json={"role": "ADMIN"}, headers=api.headers("admin"))
        assert resp.status_code == 400
        assert api.stores.users.get_by_id(lib.id).role == "LIBRARIAN"

    def test_create_refused_when_more_than_one_admin_counted(self, api, monkeypatch) -> None:
        monkeypatch.setattr(api.stores.users, "count_by_role", lambda role: 2 if role == "ADMIN" else 0)
        resp = api.client.post(
            "/librarian/create", json=_librarian_body("lib-blocked@lib.test"), headers=api.headers("admin")
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admin already exists"
        assert api.stores.users.get_by_email("lib-blocked@lib.test") is None

    def test_update_reader_forbidden(self, api) -> None:
        reader = api.users["reader_b"]
        resp = api.client.patch(f"/librarian/update/{reader.id}", json={"name": "x"}, headers=api.headers("admin"))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admins can only update Librarian users"

    def test_delete_reader_forbidden(self, api) -> None:
        reader = api.users["reader_b"]
        resp = api.client.delete(f"/librarian/delete/{reader.id}", headers=api.headers("admin"))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admins can only delete Librarian users"

    def test_delete_librarian(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Del", email="del@lib.test", password=hash_password("pw"), role="LIBRARIAN")
        )
        resp = api.client.delete(f"/librarian/delete/{uid}", headers=api.headers("admin"))
        assert resp.status_code == 200
        assert api.stores.users.get_by_id(uid) is None

    def test_delete_missing(self, api) -> None:
        resp = api.client.delete("/librarian/delete/999999", headers=api.headers("admin"))
        assert resp.status_code == 404


class TestReaderRoutes:
    def test_get_all_lists_readers(self, api) -> None:
        resp = api.client.get("/reader/getAll", headers=api.headers("librarian"))
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.json()["data"]}
        assert {"a@x.com", "b@x.com"} <= emails
        assert all(u["role"] == "READER" for u in resp.json()["data"])

    def test_get_reader(self, api) -> None:
        reader = api.users["reader_a"]
        resp = api.client.get(f"/reader/get/{reader.id}", headers=api.headers("librarian"))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert "password" not in data
        assert data["borrowings"] == []

    def test_update_reader_partial(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Partial", email="partial@x.com", password=hash_password("pw"), role="READER")
        )
        resp = api.client.patch(f"/reader/update/{uid}", json={"name": "Renamed"}, headers=api.headers("librarian"))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Renamed"
        assert data["email"] == "partial@x.com"

    def test_update_password_is_hashed(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Pw", email="pw@x.com", password=hash_password("pw"), role="READER")
        )
        resp = api.client.patch(f"/reader/update/{uid}", json={"password": "fresh"}, headers=api.headers("librarian"))
        assert resp.status_code == 200
        stored = api.stores.users.get_by_id(uid)
        assert stored.password != "fresh"
        assert verify_password("fresh", stored.password)

    def test_promotion_to_admin_refused(self, api) -> None:
        reader = api.users["reader_b"]
        resp = api.client.patch(f"/reader/update/{reader.id}", json={"role": "ADMIN"}, headers=api.headers("librarian"))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists. Only one admin can be created."
        assert api.stores.users.get_by_id(reader.id).role == "READER"

    def test_update_admin_forbidden(self, api) -> None:
        admin = api.users["admin"]
        resp = api.client.patch(f"/reader/update/{admin.id}", json={"name": "x"}, headers=api.headers("librarian"))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Cannot update Admin or Author users"

    def test_update_empty_body(self, api) -> None:
        reader = api.users["reader_a"]
        resp = api.client.patch(f"/reader/update/{reader.id}", json={}, headers=api.headers("librarian"))
        assert resp.status_code == 400
        assert resp.json()["message"] == "No fields to update"

    def test_delete_author_forbidden(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Writer", email="writer@x.com", password=hash_password("pw"), role="AUTHOR")
        )
        resp = api.client.delete(f"/reader/delete/{uid}", headers=api.headers("librarian"))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Cannot delete Admin or Author users"
        assert api.stores.users.get_by_id(uid) is not None

    def test_delete_reader(self, api) -> None:
        uid = api.stores.users.create_user(
            User(name="Bye", email="bye@x.com", password=hash_password("pw"), role="READER")
        )
        resp = api.client.delete(f"/reader/delete/{uid}", headers=api.headers("librarian"))
        assert resp.status_code == 200
        assert api.stores.users.get_by_id(uid) is None

    def test_delete_missing(self, api) -> None:
        resp = api.client.delete("/reader/delete/424242", headers=api.headers("librarian"))
        assert resp.status_code == 404
        assert resp.json()["message"] == "reader not found"
