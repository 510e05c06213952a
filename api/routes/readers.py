"""
api/routes/readers.py -- Reader account management. LIBRARIAN only.

Routes (mounted under /reader):
  GET    /getAll
  GET    /get/{user_id}       -- includes the reader's borrowings
  PATCH  /update/{user_id}
  DELETE /delete/{user_id}

Readers sign up through /register, so there is no create route. ADMIN and
AUTHOR accounts cannot be modified or removed from here.
"""

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
from api.responses import ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from auth.tokens import hash_password
from core.models import Role

router = APIRouter(dependencies=[Depends(require_role(Role.LIBRARIAN))])

_PROTECTED = (Role.ADMIN, Role.AUTHOR)
_EMAIL_IN_USE = "Email is already in use"


@router.get("/getAll")
def get_all_readers(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch readers"):
        found = stores.users.list_by_role(Role.READER.value)
    return ok("Readers fetched successfully", found)


@router.get("/get/{user_id}")
def get_reader(request: Request, user_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    with persistence_guard("Failed to fetch reader"):
        user = stores.users.get_by_id(uid)
        if user is None or user.role != Role.READER:
            raise NotFound("Reader not found")
        borrowings = stores.borrowings.list_by_user(uid)
    return ok("Reader fetched successfully", {**user.to_public(), "borrowings": borrowings})


@router.patch("/update/{user_id}")
def update_reader(request: Request, user_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    values = check(schemas.UserPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")

    target = stores.users.get_by_id(uid)
    if target is None:
        raise NotFound("Reader not found")
    if target.role in _PROTECTED:
        raise Forbidden("Cannot update Admin or Author users")

    if "email" in values:
        clash = stores.users.get_by_email(values["email"])
        if clash is not None and clash.id != uid:
            raise Conflict(_EMAIL_IN_USE)
    if values.get("role") == Role.ADMIN and stores.users.count_by_role(Role.ADMIN.value) > 0:
        raise BadRequest(ADMIN_EXISTS)
    if "password" in values:
        values["password"] = hash_password(values["password"])

    with persistence_guard("Failed to update reader", conflicts=user_conflicts(_EMAIL_IN_USE)):
        stores.users.update_user(uid, **values)
    return ok("Reader updated successfully", stores.users.get_by_id(uid))


@router.delete("/delete/{user_id}")
def delete_reader(request: Request, user_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    uid = parse_id(user_id)
    target = stores.users.get_by_id(uid)
    if target is None:
        raise NotFound("reader not found")
    if target.role in _PROTECTED:
        raise Forbidden("Cannot delete Admin or Author users")
    with persistence_guard("Failed to delete reader"):
        stores.users.delete_user(uid)
    return ok("Reader deleted successfully")
