"""
api/routes/authors.py -- Author CRUD. LIBRARIAN only.

Routes (mounted under /author):
  GET    /getAll
  GET    /get/{author_id}       -- includes the author's books
  POST   /create
  PATCH  /update/{author_id}
  DELETE /delete/{author_id}    -- book links are removed with the author
"""

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from catalog.models import Author
from core.models import Role

router = APIRouter(dependencies=[Depends(require_role(Role.LIBRARIAN))])


@router.get("/getAll")
def get_all_authors(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch authors"):
        found = stores.authors.list()
    return ok("Authors fetched successfully", found)


@router.get("/get/{author_id}")
def get_author(request: Request, author_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    aid = parse_id(author_id)
    with persistence_guard("Failed to fetch author"):
        author = stores.authors.get(aid)
        if author is None:
            raise NotFound("Author not found")
        books = stores.books.list_by_author(aid)
    return ok("Author fetched successfully", {**_fields(author), "books": books})


@router.post("/create", status_code=201)
def create_author(request: Request, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.AuthorCreate, body, stores)
    with persistence_guard("Failed to create author"):
        aid = stores.authors.create(Author(**values))
    return created("Author created successfully", stores.authors.get(aid))


@router.patch("/update/{author_id}")
def update_author(request: Request, author_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    aid = parse_id(author_id)
    values = check(schemas.AuthorPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")
    if not stores.authors.exists(aid):
        raise NotFound("Author not found")
    with persistence_guard("Failed to update author"):
        stores.authors.update(aid, **values)
    return ok("Author updated successfully", stores.authors.get(aid))


@router.delete("/delete/{author_id}")
def delete_author(request: Request, author_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    aid = parse_id(author_id)
    if not stores.authors.exists(aid):
        raise NotFound("Author not found")
    with persistence_guard("Failed to delete author"):
        stores.authors.delete(aid)
    return ok("Author deleted successfully")


def _fields(author: Author) -> dict:
    return {"id": author.id, "name": author.name, "biography": author.biography, "birthDate": author.birth_date}
