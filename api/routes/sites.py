"""
api/routes/sites.py -- Branch and Library CRUD. ADMIN only.

Branches and libraries have the same shape (unique name + address, many
books) and the same rules, so one router factory serves both:

  branch_router   mounted under /branch
  library_router  mounted under /library

Routes per router:
  GET    /getAll              -- every record with its books embedded
  GET    /get/{site_id}
  POST   /create              -- name + address required, no other keys
  PATCH  /update/{site_id}    -- partial; omitted fields keep their value
  DELETE /delete/{site_id}    -- books keep existing, their link is cleared

Unexpected body keys are rejected rather than ignored.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, Conflict, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import RequestModel, check
from auth.dependencies import require_role
from catalog.models import Branch, Library
from core.models import Role


def _site_router(
    label: str,
    plural: str,
    store_attr: str,
    books_by: str,
    model: type,
    schema: type[RequestModel],
    patch_schema: type[RequestModel],
) -> APIRouter:
    """Build the CRUD router for one site kind.

    label      -- "Branch" / "Library", used in messages
    plural     -- "Branches" / "Libraries"
    store_attr -- attribute on Stores holding the repository
    books_by   -- BookStore method listing the books attached to a site
    """
    router = APIRouter(dependencies=[Depends(require_role(Role.ADMIN))])
    name_taken = f"{label} with this name already exists"
    not_found = f"{label} not found"

    def _store(request: Request):
        stores: Stores = request.app.state.stores
        return stores, getattr(stores, store_attr)

    def _with_books(stores: Stores, site) -> dict:
        list_books: Callable = getattr(stores.books, books_by)
        return {**_site_fields(site), "books": list_books(site.id)}

    @router.get("/getAll")
    def get_all(request: Request) -> JSONResponse:
        stores, store = _store(request)
        with persistence_guard(f"Failed to fetch {plural.lower()}"):
            payload = [_with_books(stores, s) for s in store.list()]
        return ok(f"{plural} fetched successfully", payload)

    @router.get("/get/{site_id}")
    def get_one(request: Request, site_id: str) -> JSONResponse:
        stores, store = _store(request)
        sid = parse_id(site_id)
        with persistence_guard(f"Failed to fetch {label.lower()}"):
            site = store.get(sid)
            if site is None:
                raise NotFound(not_found)
            payload = _with_books(stores, site)
        return ok(f"{label} fetched successfully", payload)

    @router.post("/create", status_code=201)
    def create(request: Request, body: dict = Body(...)) -> JSONResponse:
        stores, store = _store(request)
        values = check(schema, body, stores)
        if store.get_by_name(values["name"]) is not None:
            raise Conflict(name_taken)
        with persistence_guard(f"Failed to create {label.lower()}", name_taken):
            sid = store.create(model(**values))
        return created(f"{label} created successfully", store.get(sid))

    @router.patch("/update/{site_id}")
    def update(request: Request, site_id: str, body: dict = Body(...)) -> JSONResponse:
        stores, store = _store(request)
        sid = parse_id(site_id)
        values = check(patch_schema, body, stores)
        if not values:
            raise BadRequest("No fields to update")

        existing = store.get(sid)
        if existing is None:
            raise NotFound(not_found)

        if "name" in values:
            clash = store.get_by_name(values["name"])
            if clash is not None and clash.id != sid:
                raise Conflict(name_taken)

        with persistence_guard(f"Failed to update {label.lower()}", name_taken):
            store.update(sid, **values)
        return ok(f"{label} updated successfully", store.get(sid))

    @router.delete("/delete/{site_id}")
    def remove(request: Request, site_id: str) -> JSONResponse:
        _, store = _store(request)
        sid = parse_id(site_id)
        if store.get(sid) is None:
            raise NotFound(not_found)
        with persistence_guard(f"Failed to delete {label.lower()}"):
            store.delete(sid)
        return ok(f"{label} deleted successfully")

    return router


def _site_fields(site) -> dict:
    return {"id": site.id, "name": site.name, "address": site.address}


branch_router = _site_router(
    "Branch", "Branches", "branches", "list_by_branch", Branch, schemas.SiteCreate, schemas.SitePatch
)
library_router = _site_router(
    "Library", "Libraries", "libraries", "list_by_library", Library, schemas.SiteCreate, schemas.SitePatch
)
