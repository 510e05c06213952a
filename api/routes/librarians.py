"""
api/routes/librarians.py -- Librarian account management. ADMIN only.

Routes (mounted under /librarian):
  GET    /getAll
  GET    /get/{user_id}
  POST   /create              -- role must be LIBRARIAN
  PATCH  /update/{user_id}    -- target must be a LIBRARIAN
  DELETE /delete/{user_id}    -- target must be a LIBRARIAN

Admins provision librarians; every other role is out of reach from here.
Passwords are hashed on create and on update. Responses never carry the
password hash (User.to_public via api/responses.to_wire).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import (
    ADMIN_EXISTS,
    BadRequest,
    Conflict,
    Forbidden,
    NotFound,
    parse_id,
    persistence_guard,
    user_conflicts,
)
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from auth.models import User
from auth.tokens import hash_password
from core.models import Role

logger = logging.getLogger("libraryapi.api")

router = APIRouter(dependencies=[Depends(require_role(Role.ADMIN))])

_EMAIL_TAKEN = "A user with this email already exists."
_EMAIL_IN_USE = "Email is already in use"


def _librarian_or_404(stores: Stores, user_id: int) -> User:
    user = stores.users.get_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("/getAll")
def get_all_librarians(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch librarians"):
        found = stores.users.list_by_role(Role.LIBRARIAN.value)
    return ok("Librarians fetched successfully", found)


@router.get("/get/{user_id}")
def get_librarian(request: Request, user_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    with persistence_guard("Failed to fetch user"):
        user = stores.users.get_by_id(uid)
    if user is None or user.role != Role.LIBRARIAN:
        raise NotFound("Librarian not found")
    return ok("Librarian fetched successfully", user)


@router.post("/create", status_code=201)
def create_librarian(request: Request, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.UserCreate, body, stores)

    if values["role"] != Role.LIBRARIAN:
        raise Forbidden("Admins can only create Librarian users")
    # Historical threshold: counts above one, not above zero.
    if stores.users.count_by_role(Role.ADMIN.value) > 1:
        raise Forbidden("Admin already exists")
    if stores.users.get_by_email(values["email"]) is not None:
        raise Conflict(_EMAIL_TAKEN)

    values["password"] = hash_password(values["password"])
    with persistence_guard("Failed to create user", conflicts=user_conflicts(_EMAIL_TAKEN)):
        uid = stores.users.create_user(User(**values))
    logger.info("Librarian created id=%s", uid)
    return created("Librarian created successfully", stores.users.get_by_id(uid))


@router.patch("/update/{user_id}")
def update_librarian(request: Request, user_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    values = check(schemas.UserPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")

    target = _librarian_or_404(stores, uid)
    if target.role != Role.LIBRARIAN:
        raise Forbidden("Admins can only update Librarian users")

    if "email" in values:
        clash = stores.users.get_by_email(values["email"])
        if clash is not None and clash.id != uid:
            raise Conflict(_EMAIL_IN_USE)
    if values.get("role") == Role.ADMIN and stores.users.count_by_role(Role.ADMIN.value) > 0:
        raise BadRequest(ADMIN_EXISTS)
    if "password" in values:
        values["password"] = hash_password(values["password"])

    with persistence_guard("Failed to update user", conflicts=user_conflicts(_EMAIL_IN_USE)):
        stores.users.update_user(uid, **values)
    return ok("User updated successfully", stores.users.get_by_id(uid))


@router.delete("/delete/{user_id}")
def delete_librarian(request: Request, user_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    target = _librarian_or_404(stores, uid)
    if target.role != Role.LIBRARIAN:
        raise Forbidden("Admins can only delete Librarian users")
    with persistence_guard("Failed to delete user"):
        stores.users.delete_user(uid)
    logger.info("Librarian deleted id=%s", uid)
    return ok("User deleted successfully")
