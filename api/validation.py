"""
api/validation.py -- Validate a raw JSON body against a Pydantic request model.

Request models live in api/schemas.py. Each field carries its rules as
Annotated metadata:

  Msg("...")                 -- message reported when the value is the wrong type
  Ref("books", "...")        -- Stores attribute that must contain the id(s)

validate() runs the model and sorts the outcome into three parts:

  missing_fields -- required keys that are absent, null or "" (on a patch
                    model, built by partial(), only an explicit "" counts)
  errors         -- wrong types, failed cross-references, unexpected keys
  values         -- the parsed values keyed by attribute name

check() turns the result into a BadRequest. Missing fields always win over
errors: a body with both gets the "Missing required fields" message.

Cross-reference lookups (book exists, user exists) only run for values that
parsed cleanly, so a missing or mistyped id never costs a database read.

Routes take `body: dict` and call check() themselves rather than declaring
the model as the body parameter. FastAPI's 422 would skip the missing/errors
split, the per-field messages and the reference checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictStr,
    TypeAdapter,
    ValidationError,
    create_model,
)

from api.errors import BadRequest

if TYPE_CHECKING:
    from api.stores import Stores


@dataclass(frozen=True)
class Msg:
    text: str


@dataclass(frozen=True)
class Ref:
    store: str
    error: str


class RequestModel(BaseModel):
    """Base for every request body. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    # Replaces the generic "Missing required fields: ..." message.
    missing_message: ClassVar[Optional[str]] = None
    # Set on patch models: the create model they were derived from.
    source: ClassVar[Optional[type[RequestModel]]] = None


# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

_TEXT = TypeAdapter(StrictStr)
_YMD_TEXT = TypeAdapter(Annotated[StrictStr, Field(pattern=r"^\d{4}-\d{2}-\d{2}$")])


def _to_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


# Any ISO 8601 date or datetime string, kept as a date.
IsoDate = Annotated[Union[date, datetime], BeforeValidator(_TEXT.validate_python), AfterValidator(_to_date)]

# Strictly YYYY-MM-DD.
YmdDate = Annotated[date, BeforeValidator(_YMD_TEXT.validate_python)]


def partial(model: type[RequestModel]) -> type[RequestModel]:
    """Build the patch variant of a create model: same fields and rules, all optional."""
    fields: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        inner = Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
        fields[name] = (Optional[inner], Field(default=None, alias=info.alias))
    base = type(f"{model.__name__}PatchBase", (RequestModel,), {"__module__": model.__module__, "source": model})
    return create_model(model.__name__.replace("Create", "") + "Patch", __base__=base, **fields)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationResult:
    missing_fields: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)


def _marker(info, kind: type):
    return next((m for m in info.metadata if isinstance(m, kind)), None)


def validate(model: type[RequestModel], body: dict, stores: Optional[Stores] = None) -> ValidationResult:
    rules = model.source or model
    keys = {name: info.alias or name for name, info in rules.model_fields.items()}
    required = [keys[name] for name, info in rules.model_fields.items() if info.is_required()]
    blank = {key for key in required if body.get(key) == ""}
    data = {k: v for k, v in body.items() if v is not None and k not in blank}

    result = ValidationResult()
    missing = set(blank)
    failed: dict[str, str] = {}
    unexpected: list[str] = []
    parsed: Optional[BaseModel] = None
    try:
        parsed = model.model_validate(data)
    except ValidationError as exc:
        for err in exc.errors():
            key = str(err["loc"][0]) if err["loc"] else ""
            if err["type"] == "missing":
                missing.add(key)
            elif err["type"] == "extra_forbidden":
                unexpected.append(key)
            elif key not in failed:
                name = next((n for n, k in keys.items() if k == key), None)
                marker = _marker(rules.model_fields[name], Msg) if name else None
                failed[key] = marker.text if marker else err["msg"]

    result.missing_fields = [k for k in keys.values() if k in missing]
    if result.missing_fields:
        return result

    for name, key in keys.items():
        if key in failed:
            result.errors.append(failed[key])
            continue
        ref = _marker(rules.model_fields[name], Ref)
        value = data.get(key)
        if ref is None or value is None or stores is None:
            continue
        ref_store = getattr(stores, ref.store)
        if isinstance(value, list):
            absent = [i for i in value if not ref_store.exists(i)]
            if absent:
                result.errors.append(f"{ref.error}: {', '.join(str(i) for i in absent)}")
        elif not ref_store.exists(value):
            result.errors.append(ref.error)
    if unexpected:
        result.errors.append(f"Unexpected fields provided: {', '.join(unexpected)}")

    if parsed is not None and not result.errors:
        result.values = parsed.model_dump(exclude_unset=True)
    return result


def check(model: type[RequestModel], body: dict, stores: Optional[Stores] = None) -> dict[str, Any]:
    """Validate `body` against `model` and return the parsed values keyed by attribute.

    Raises BadRequest with data={"missingFields": [...]} or data={"errors": [...]}.
    """
    result = validate(model, body, stores)
    if result.missing_fields:
        rules = model.source or model
        message = rules.missing_message or "Missing required fields: " + ", ".join(result.missing_fields)
        raise BadRequest(message, data={"missingFields": result.missing_fields})
    if result.errors:
        raise BadRequest("Validation error: " + ", ".join(result.errors), data={"errors": result.errors})
    return result.values
