"""
api/routes/borrowings.py -- Borrowing records. LIBRARIAN only.

Routes (mounted under /borrowing):
  GET    /getAll
  GET    /get/{borrowing_id}
  POST   /create                 -- bookId, userId, borrowDate required
  PATCH  /update/{borrowing_id}
  DELETE /delete/{borrowing_id}

Dates are strictly YYYY-MM-DD. bookId and userId must reference existing
records; both checks live in the BORROWING schema.
"""

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from catalog.models import Borrowing
from core.models import Role

router = APIRouter(dependencies=[Depends(require_role(Role.LIBRARIAN))])


@router.get("/getAll")
def get_all_borrowings(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch borrowing records"):
        found = stores.borrowings.list()
    return ok("Borrowing records fetched successfully", found)


@router.get("/get/{borrowing_id}")
def get_borrowing(request: Request, borrowing_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(borrowing_id)
    with persistence_guard("Failed to fetch borrowing record"):
        borrowing = stores.borrowings.get(rid)
    if borrowing is None:
        raise NotFound("Borrowing record not found")
    return ok("Borrowing record fetched successfully", borrowing)


@router.post("/create", status_code=201)
def create_borrowing(request: Request, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.BorrowingCreate, body, stores)
    with persistence_guard("Failed to create borrowing"):
        rid = stores.borrowings.create(Borrowing(**values))
    return created("Borrowing created successfully", stores.borrowings.get(rid))


@router.patch("/update/{borrowing_id}")
def update_borrowing(request: Request, borrowing_id: str, body: dict = Body(...)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(borrowing_id)
    values = check(schemas.BorrowingPatch, body, stores)
    if not values:
        raise BadRequest("No fields to update")
    if not stores.borrowings.exists(rid):
        raise NotFound("Borrowing record not found")
    with persistence_guard("Failed to update borrowing record"):
        stores.borrowings.update(rid, **values)
    return ok("Borrowing record updated successfully", stores.borrowings.get(rid))


@router.delete("/delete/{borrowing_id}")
def delete_borrowing(request: Request, borrowing_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(borrowing_id)
    if not stores.borrowings.exists(rid):
        raise NotFound("Borrowing record not found")
    with persistence_guard("Failed to delete borrowing record"):
        stores.borrowings.delete(rid)
    return ok("Borrowing record deleted successfully")
