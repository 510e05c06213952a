"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two gates, applied in order on every protected route:
  1. get_current_user() -- the auth gate. Reads "Authorization: Bearer <token>",
     verifies the access token and attaches the User to request.state.user.
  2. require_role(role) -- the role gate. A dependency factory called once per
     route at registration time; the returned dependency compares the
     attached identity's role against the required one.

Role matching is exact equality. There is no hierarchy: an ADMIN calling a
LIBRARIAN-only route is rejected with 403 like any other role.

Both gates raise HTTPException with a plain string detail. The exception
handler in api/main.py renders it in the {success, message} envelope.

Layer rule: no imports from api/ or catalog/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.models import User
from auth.tokens import decode_access_token
from core.models import Role

logger = logging.getLogger("libraryapi.auth")


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises HTTP 401 otherwise.

    The token's id claim is resolved against the user store so a deleted
    account cannot keep using a token that has not expired yet.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Token not provided")

    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = request.app.state.user_store.get_by_id(payload["id"])
    if user is None:
        logger.info("Token for unknown user id=%s rejected", payload["id"])
        raise HTTPException(status_code=401, detail="Invalid token")

    request.state.user = user
    return user


def require_role(required: Role) -> Callable[..., User]:
    """Build a dependency that admits only users whose role is exactly `required`.

    Use at route registration:
        @router.get("/getAll")
        def route(user: User = Depends(require_role(Role.LIBRARIAN))): ...

    or for a whole router:
        router = APIRouter(dependencies=[Depends(require_role(Role.ADMIN))])
    """

    def check_role(request: Request, user: User = Depends(get_current_user)) -> User:
        if not user.role:
            raise HTTPException(status_code=401, detail="User role is not defined")
        if user.role != required.value:
            logger.info(
                "Role gate: user id=%s role=%s denied (requires %s) on %s",
                user.id,
                user.role,
                required.value,
                request.url.path,
            )
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return check_role
