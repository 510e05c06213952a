"""
api/routes/reviews.py -- Book reviews.

Routes (mounted under /review):
  GET    /getAll               -- LIBRARIAN
  GET    /get/{review_id}      -- LIBRARIAN
  POST   /create               -- READER
  PATCH  /update/{review_id}   -- READER, owner only
  DELETE /delete/{review_id}   -- READER, owner only

Ownership: update and delete compare the requester's userId with the one
stored on the review. The requester is the body's userId when supplied,
otherwise the authenticated user; a supplied userId must also be the
caller's own. Create requires userId to be the caller's own too. A missing
review and somebody else's review produce the same 403 so the endpoint does
not reveal which review ids exist.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api import schemas
from api.errors import BadRequest, Forbidden, NotFound, parse_id, persistence_guard
from api.responses import created, ok
from api.stores import Stores
from api.validation import check
from auth.dependencies import require_role
from auth.models import User
from catalog.models import Review
from core.models import Role

logger = logging.getLogger("libraryapi.api")

router = APIRouter()

_librarian = require_role(Role.LIBRARIAN)
_reader = require_role(Role.READER)


def _owned_review(stores: Stores, review_id: int, requester_id, user: User, action: str) -> Review:
    review = stores.reviews.get(review_id)
    if review is None or review.user_id != requester_id or requester_id != user.id:
        logger.info("Review ownership check failed: review=%s requester=%s", review_id, requester_id)
        raise Forbidden(f"You can only {action} your own reviews")
    return review


@router.get("/getAll", dependencies=[Depends(_librarian)])
def get_all_reviews(request: Request) -> JSONResponse:
    stores: Stores = request.app.state.stores
    with persistence_guard("Failed to fetch reviews"):
        found = stores.reviews.list()
    return ok("Reviews fetched successfully", found)


@router.get("/get/{review_id}", dependencies=[Depends(_librarian)])
def get_review(request: Request, review_id: str) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(review_id)
    with persistence_guard("Failed to fetch review"):
        review = stores.reviews.get(rid)
    if review is None:
        raise NotFound("Review not found")
    return ok("Review fetched successfully", review)


@router.post("/create", status_code=201)
def create_review(request: Request, body: dict = Body(...), user: User = Depends(_reader)) -> JSONResponse:
    stores: Stores = request.app.state.stores
    values = check(schemas.ReviewCreate, body, stores)
    if values["user_id"] != user.id:
        logger.info("Review create for user=%s rejected for caller=%s", values["user_id"], user.id)
        raise Forbidden("You can only create reviews as yourself")
    with persistence_guard("Failed to create review"):
        rid = stores.reviews.create(Review(**values))
    return created("Review created successfully", stores.reviews.get(rid))


@router.patch("/update/{review_id}")
def update_review(
    request: Request,
    review_id: str,
    body: dict = Body(...),
    user: User = Depends(_reader),
) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(review_id)
    fields = dict(body)
    requester_id = fields.pop("userId", user.id)
    _owned_review(stores, rid, requester_id, user, "update")

    values = check(schemas.ReviewPatch, fields, stores)
    if not values:
        raise BadRequest("No fields to update")
    with persistence_guard("Failed to update review"):
        stores.reviews.update(rid, **values)
    return ok("Review updated successfully", stores.reviews.get(rid))


@router.delete("/delete/{review_id}")
def delete_review(
    request: Request,
    review_id: str,
    body: Optional[dict] = Body(default=None),
    user: User = Depends(_reader),
) -> JSONResponse:
    stores: Stores = request.app.state.stores
    rid = parse_id(review_id)
    requester_id = (body or {}).get("userId", user.id)
    _owned_review(stores, rid, requester_id, user, "delete")
    with persistence_guard("Failed to delete review"):
        stores.reviews.delete(rid)
    return ok("Review deleted successfully")
