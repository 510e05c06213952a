"""
api/routes/auth.py -- Registration, login and token refresh.

Routes:
  POST /register        -- self-service sign-up (READER, or the first ADMIN)
  POST /login           -- email/password login; returns access + refresh token
  POST /refresh_token   -- exchange a refresh token for a new access token

Security:
  /login and /register are rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline.
  "No such email" and "wrong password" share one message and one status so
  the endpoint cannot be used to enumerate accounts.
  Cache-Control: no-store on every response that carries tokens.
  The refresh token is not rotated on /refresh_token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from api.errors import ADMIN_EXISTS, BadRequest, Unauthenticated, persistence_guard, user_conflicts
from api.limiter import limiter
from api.responses import created, ok
from api.schemas import LoginRequest, RefreshRequest, RegisterRequest
from api.stores import Stores
from api.validation import validate
from auth.models import User
from auth.tokens import (
    authenticate_user,
    create_access_token,
    decode_refresh_token,
    hash_password,
    issue_token_pair,
)
from core.config import get_settings
from core.models import Role

logger = logging.getLogger("libraryapi.auth")

router = APIRouter()

_EMAIL_TAKEN = "A user with this email already exists."


def _login_rate_limit() -> str:
    # Read per request so a settings override takes effect without a re-import.
    return get_settings().login_rate_limit


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


# The router must register the limiter's wrapper: route limits are checked by
# the wrapper, not by SlowAPIMiddleware.
@router.post("/register", status_code=201)
@limiter.limit(_login_rate_limit)
def register(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Create an account and return a token pair.

    Checks run in a fixed order: required fields, field types, role validity,
    the admin singleton, the LIBRARIAN/AUTHOR ban, then email uniqueness.
    """
    stores: Stores = request.app.state.stores
    result = validate(RegisterRequest, body)
    if result.missing_fields:
        absent = result.missing_fields
        raise BadRequest("All fields are required: " + " ".join(absent), data={"missingFields": absent})
    if result.errors:
        raise BadRequest(result.errors[0])
    values = result.values
    role = values["role"]

    if role == Role.ADMIN and stores.users.count_by_role(Role.ADMIN.value) > 0:
        raise BadRequest(ADMIN_EXISTS)

    if role in (Role.LIBRARIAN, Role.AUTHOR):
        raise BadRequest("Librarians and authors cannot register.")

    if stores.users.get_by_email(values["email"]) is not None:
        raise BadRequest(_EMAIL_TAKEN)

    new_user = User(
        name=values["name"], email=values["email"], password=hash_password(values["password"]), role=role
    )
    with persistence_guard("Error during registration", conflicts=user_conflicts(_EMAIL_TAKEN)):
        user_id = stores.users.create_user(new_user)
    user = stores.users.get_by_id(user_id)
    access_token, refresh_token = issue_token_pair(user)
    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return _no_store(
        created(
            "User successfully registered",
            {"user": user, "accessToken": access_token, "refreshToken": refresh_token},
        )
    )


@router.post("/login")
@limiter.limit(_login_rate_limit)
def login(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Authenticate with email and password; return a token pair."""
    stores: Stores = request.app.state.stores
    result = validate(LoginRequest, body)
    if result.missing_fields:
        absent = result.missing_fields
        raise BadRequest("Email and password are required: " + " ".join(absent), data={"missingFields": absent})
    if result.errors:
        raise BadRequest("Incorrect email or password")

    user = authenticate_user(stores.users, result.values["email"], result.values["password"])
    if user is None:
        logger.info("Failed login attempt")
        raise BadRequest("Incorrect email or password")

    access_token, refresh_token = issue_token_pair(user)
    return _no_store(ok("Login successful", {"accessToken": access_token, "refreshToken": refresh_token}))


@router.post("/refresh_token")
def refresh_token(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Mint a new access token from a valid refresh token.

    The new token carries the same {id, email, role} claims as the refresh
    token; the user record is not re-read.
    """
    result = validate(RefreshRequest, body)
    if result.missing_fields:
        raise BadRequest("Refresh token is required")
    if result.errors:
        raise Unauthenticated("Invalid refresh token")

    payload = decode_refresh_token(result.values["refresh_token"])
    if payload is None:
        raise Unauthenticated("Invalid refresh token")

    access_token = create_access_token(payload["id"], payload["email"], payload["role"])
    return _no_store(ok("Access token refreshed", {"accessToken": access_token}))
