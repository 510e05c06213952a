"""
catalog/models.py -- Domain dataclasses for the library catalog.

These are pure data containers with zero logic. Persistence lives in
catalog/store.py; validation and response shaping live in api/.

Attribute names match the column names in core/db.py so the stores can map
rows generically. The API exposes them in camelCase (api/responses.py).

id is None before a record is written to the database.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class Author:
    name: str
    biography: Optional[str] = None
    birth_date: Optional[date] = None
    id: Optional[int] = None


@dataclass
class Category:
    name: str
    id: Optional[int] = None


@dataclass
class Branch:
    name: str
    address: str
    id: Optional[int] = None


@dataclass
class Library:
    name: str
    address: str
    id: Optional[int] = None


@dataclass
class Book:
    """A catalog entry.

    category_id is required; library_id and branch_id are optional and are
    cleared (SET NULL) when the referenced library or branch is deleted.
    author_ids mirrors the book_authors association table and is loaded by
    BookStore, not by the generic row mapper.
    """

    title: str
    description: str
    publication_date: date
    status: str  # "AVAILABLE" | "BORROWED" | "RESERVED" | "DAMAGED"
    category_id: int
    library_id: Optional[int] = None
    branch_id: Optional[int] = None
    id: Optional[int] = None
    author_ids: list[int] = field(default_factory=list)


@dataclass
class Borrowing:
    book_id: int
    user_id: int
    borrow_date: date
    return_date: Optional[date] = None
    id: Optional[int] = None


@dataclass
class Review:
    """A reader's review. Only the user in user_id may edit or delete it."""

    content: str
    rating: float
    book_id: int
    user_id: int
    id: Optional[int] = None
