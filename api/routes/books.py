"""
api/routes/books.py -- Book CRUD. LIBRARIAN only.

Routes (mounted under /book):
  GET    /getAll            -- each book with authors, category, library, branch
  GET    /get/{book_id}     -- the same plus reviews
  POST   /create
  PATCH  /update/{book_id}  -- partial; authorIds, when given, replaces the set
  DELETE /delete/{book_id}  -- reviews, borrowings and author links go with it

categoryId is required and must exist; libraryId and branchId are optional
but must exist when given. All reference checks happen in the BOOK schema.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from catalog.models import Book
from core.models import Role

router = APIRouter(dependencies=[Depends(require_role(Role.LIBRARIAN))])


def _expand(stores: Stores, found: list[Book], with_reviews: bool = False) -> list[dict]:
    """Embed related records, batching one lookup per relation."""
    author_ids = [a for b in found for a in b.author_ids]
    authors = stores.authors.get_many(author_ids)
    categories = stores.categories.get_many([b.category_id for b in found])
    libraries = stores.libraries.get_many([b.library_id for b in found if b.library_id is not None])
    branches = stores.branches.get_many([b.branch_id for b in found if b.branch_id is not None])

    result = []
    for book in found:
        item = {
            "id": book.id,
            "title": book.title,
            "description": book.description,
            "publicationDate": book.publication_date,
            "status": book.status,
            "categoryId": book.category_id,
            "libraryId": book.library_id,
            "branchId": book.branch_id,
            "authors": [authors[a] for a in book.author_ids if a in authors],
            "category": categories.get(book.category_id),
            "library": libraries.get(book.library_id),
            "branch": branches.get(book.branch_id),
        }
        if with_reviews:
            item["reviews"] = stores.reviews.list_by_book(book.id)
        result.append(item)
    return result


@router.get("/getAll")
def get_all_books(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch books"):
        payload = _expand(stores, stores.books.list())
    return ok("Books fetched successfully", payload)


@router.get("/get/{book_id}")
def get_book(request: Request, book_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    bid = parse_id(book_id)
    with persistence_guard("Failed to fetch book"):
        book = stores.books.get(bid)
        if book is None:
            raise NotFound("Book not found")
        payload = _expand(stores, [book], with_reviews=True)[0]
    return ok("Book fetched successfully", payload)


@router.post("/create", status_code=201)
def create_book(request: Request, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.BookCreate, body, stores)
    with persistence_guard("Failed to create book"):
        bid = stores.books.create(Book(**values))
    return created("Book created successfully", stores.books.get(bid))


@router.patch("/update/{book_id}")
def update_book(request: Request, book_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    bid = parse_id(book_id)
    values = check(schemas.BookPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")
    if not stores.books.exists(bid):
        raise NotFound("Book not found")

    author_ids = values.pop("author_ids", None)
    with persistence_guard("Failed to update book"):
        stores.books.update(bid, **values)
        if author_ids is not None:
            stores.books.set_authors(bid, author_ids)
    return ok("Book updated successfully", stores.books.get(bid))


@router.delete("/delete/{book_id}")
def delete_book(request: Request, book_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    bid = parse_id(book_id)
    if not stores.books.exists(bid):
        raise NotFound("Book not found")
    with persistence_guard("Failed to delete book"):
        stores.books.delete(bid)
    return ok("Book deleted successfully")
