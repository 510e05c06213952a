"""
api/routes/categories.py -- Category CRUD. LIBRARIAN only.

Routes (mounted under /categories):
  GET    /getAll
  GET    /get/{category_id}
  POST   /create
  PATCH  /update/{category_id}
  DELETE /delete/{category_id}

Category names are unique. A category still referenced by books cannot be
deleted (books.category_id is ON DELETE RESTRICT); that surfaces as a 400.
"""

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, Conflict, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from catalog.models import Category
from core.models import Role

router = APIRouter(dependencies=[Depends(require_role(Role.LIBRARIAN))])

_NAME_TAKEN = "Category name already exists"


@router.get("/getAll")
def get_all_categories(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Get categories error"):
        found = stores.categories.list()
    return ok("Categories fetched successfully", found)


@router.get("/get/{category_id}")
def get_category(request: Request, category_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    cid = parse_id(category_id)
    with persistence_guard("Get category by ID error"):
        category = stores.categories.get(cid)
    if category is None:
        raise NotFound("Category not found")
    return ok("Category fetched successfully", category)


@router.post("/create", status_code=201)
def create_category(request: Request, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.CategoryCreate, body, stores)
    if stores.categories.get_by_name(values["name"]) is not None:
        raise Conflict(_NAME_TAKEN)
    with persistence_guard("Create category error", _NAME_TAKEN):
        cid = stores.categories.create(Category(**values))
    return created("Category created successfully", stores.categories.get(cid))


@router.patch("/update/{category_id}")
def update_category(request: Request, category_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    cid = parse_id(category_id)
    values = check(schemas.CategoryPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")

    existing = stores.categories.get(cid)
    if existing is None:
        raise NotFound("Category not found")

    clash = stores.categories.get_by_name(values["name"])
    if clash is not None and clash.id != cid:
        raise Conflict(_NAME_TAKEN)

    with persistence_guard("Update category error", _NAME_TAKEN):
        stores.categories.update(cid, **values)
    return ok("Category updated successfully", stores.categories.get(cid))


@router.delete("/delete/{category_id}")
def delete_category(request: Request, category_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    cid = parse_id(category_id)
    if stores.categories.get(cid) is None:
        raise NotFound("Category not found")
    with persistence_guard("Delete category error", "Category is still referenced by books"):
        stores.categories.delete(cid)
    return ok("Category deleted successfully")
