"""
api/responses.py -- The {success, message, data?} response envelope.

Every route returns through ok(); every error goes through fail() from the
exception handlers in api/main.py. `data` is left out of the body entirely
when there is nothing to carry.

Domain dataclasses use snake_case attributes; the wire format is camelCase
(publicationDate, categoryId, ...). to_wire() does the conversion and turns
dates into ISO strings. User records are always reduced to their public
fields so a password hash can never reach a response.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from auth.models import User


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def to_wire(obj: Any) -> Any:
    """Convert dataclasses (recursively, through dicts and lists) into camelCase JSON-ready values."""
    if isinstance(obj, User):
        return obj.to_public()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {_camel(k): to_wire(v) for k, v in asdict(obj).items()}
    if isinstance(obj, dict):
        return {k: to_wire(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_wire(v) for v in obj]
    return jsonable_encoder(obj)


def envelope(success: bool, message: str, data: Any = None) -> dict:
    body: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        body["data"] = to_wire(data)
    return body


def ok(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(True, message, data))


def created(message: str, data: Any = None) -> JSONResponse:
    return ok(message, data, status_code=201)


def fail(status_code: int, message: str, data: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, message, data))
