"""
api/errors.py -- Error taxonomy for the library REST API.

Route handlers raise these exceptions; the ApiError handler in api/main.py
renders every one of them in the same {success: false, message, data?}
envelope. Nothing here knows about Starlette responses.

    ApiError               status_code, message, data
    |-- BadRequest      400  malformed id, missing/invalid/unexpected fields
    |   `-- Conflict    400  natural-key collision (email, branch/library/category name)
    |-- Unauthenticated 401
    |-- Forbidden       403  ownership or cross-role restrictions
    |-- NotFound        404
    `-- Unexpected      500  persistence/runtime failure

Conflict answers 400, not 409. Existing clients match on 400 for duplicates.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.db import SINGLE_ADMIN_INDEX

logger = logging.getLogger("libraryapi.api")


class ApiError(Exception):
    status_code: int = 500

    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


class BadRequest(ApiError):
    status_code = 400


class Conflict(BadRequest):
    pass


class Unauthenticated(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Unexpected(ApiError):
    status_code = 500

ADMIN_EXISTS = "Admin already exists. Only one admin can be created."

_ID_PATTERN = re.compile(r"[0-9]+")


def parse_id(raw: str) -> int:
    """Parse a path id. Anything but plain ASCII digits is a 400."""
    if not isinstance(raw, str) or not _ID_PATTERN.fullmatch(raw):
        raise BadRequest("Invalid ID format")
    return int(raw)


def user_conflicts(email_taken: str) -> dict[str, str]:
    """Conflict messages for the users table, keyed by the violated constraint.

    SQLite names the columns ("users.role"), PostgreSQL the constraint.
    """
    return {
        "users.role": ADMIN_EXISTS,
        SINGLE_ADMIN_INDEX: ADMIN_EXISTS,
        "users.email": email_taken,
        "users_email_key": email_taken,
    }


@contextmanager
def persistence_guard(
    action: str,
    conflict_message: Optional[str] = None,
    conflicts: Optional[dict[str, str]] = None,
) -> Iterator[None]:
    """Wrap store calls at the controller boundary.

    IntegrityError is the backstop for check-then-act races on UNIQUE and
    FOREIGN KEY constraints. The message comes from the first `conflicts`
    key found in the driver error, then `conflict_message`; with neither it
    is a BadRequest carrying the driver message. Any other SQLAlchemyError
    becomes a 500 with the driver message appended to `action`.

    Usage:
        with persistence_guard("Failed to create branch", "Branch with this name already exists"):
            branch_id = stores.branches.create(...)
    """
    try:
        yield
    except IntegrityError as exc:
        logger.warning("%s: integrity error: %s", action, exc.orig)
        detail = str(exc.orig)
        for marker, message in (conflicts or {}).items():
            if marker in detail:
                raise Conflict(message) from exc
        if conflict_message:
            raise Conflict(conflict_message) from exc
        raise BadRequest(f"{action}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        logger.exception("%s", action)
        raise Unexpected(f"{action}: {getattr(exc, 'orig', None) or exc}") from exc
