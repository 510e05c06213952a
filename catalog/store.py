"""
catalog/store.py -- SQLAlchemy Core persistence layer for the library catalog.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. One repository per entity, all sharing a
single Engine that the API lifespan creates once and injects. _TableStore
holds the CRUD that every entity has in common; subclasses add natural-key
lookups and relation queries. Route handlers never touch SQL directly.

Every mutation is a single statement (or a single transaction for Book and
its author association) committed before the method returns.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    engine = make_engine("sqlite:///library.db")
    categories = CategoryStore(engine)
    category_id = categories.create(Category(name="Fiction"))
    categories.get_by_name("Fiction")
"""

from __future__ import annotations

from dataclasses import asdict, fields
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.engine import Engine

from catalog.models import Author, Book, Borrowing, Branch, Category, Library, Review
from core.db import authors as _authors
from core.db import book_authors as _book_authors
from core.db import books as _books
from core.db import borrowings as _borrowings
from core.db import branches as _branches
from core.db import categories as _categories
from core.db import libraries as _libraries
from core.db import reviews as _reviews

T = TypeVar("T")


class _TableStore(Generic[T]):
    """Generic repository over one table whose columns match a dataclass."""

    table: Table
    model: type

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._columns = {c.name for c in self.table.columns}

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _to_model(self, row) -> T:
        names = {f.name for f in fields(self.model)}
        return self.model(**{k: v for k, v in row._mapping.items() if k in names})

    def _values(self, record: T) -> dict[str, Any]:
        return {k: v for k, v in asdict(record).items() if k in self._columns and k != "id"}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> Optional[T]:
        """Return the record with this primary key, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(self.table.select().where(self.table.c.id == record_id)).fetchone()
        return self._to_model(row) if row is not None else None

    def exists(self, record_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(self.table.c.id).where(self.table.c.id == record_id)).fetchone()
        return row is not None

    def list(self) -> list[T]:
        """Return every record ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().order_by(self.table.c.id)).fetchall()
        return [self._to_model(r) for r in rows]

    def get_many(self, ids: list[int]) -> dict[int, T]:
        """Return {id: record} for the ids that exist."""
        if not ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().where(self.table.c.id.in_(set(ids)))).fetchall()
        return {r.id: self._to_model(r) for r in rows}

    def _find_by(self, column: str, value: Any) -> list[T]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                self.table.select().where(self.table.c[column] == value).order_by(self.table.c.id)
            ).fetchall()
        return [self._to_model(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, record: T) -> int:
        """Insert a record and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError on UNIQUE or FOREIGN KEY violations.
        """
        with self.engine.connect() as conn:
            result = conn.execute(insert(self.table).values(**self._values(record)))
            conn.commit()
            return result.inserted_primary_key[0]

    def update(self, record_id: int, **values: Any) -> bool:
        """Update the given columns. Returns False if record_id was not found.

        Unknown keys raise ValueError rather than being silently dropped.
        """
        unknown = set(values) - self._columns
        if unknown:
            raise ValueError(f"Unknown {self.table.name} columns: {sorted(unknown)!r}")
        if not values:
            return self.exists(record_id)
        with self.engine.connect() as conn:
            result = conn.execute(self.table.update().where(self.table.c.id == record_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete(self, record_id: int) -> bool:
        """Hard delete. Returns True if a row was removed, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(delete(self.table).where(self.table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Natural-key repositories
# ---------------------------------------------------------------------------


class _NamedStore(_TableStore[T]):
    """Repository for tables whose `name` column is a UNIQUE natural key."""

    def get_by_name(self, name: str) -> Optional[T]:
        found = self._find_by("name", name)
        return found[0] if found else None


class CategoryStore(_NamedStore[Category]):
    table = _categories
    model = Category


class BranchStore(_NamedStore[Branch]):
    table = _branches
    model = Branch


class LibraryStore(_NamedStore[Library]):
    table = _libraries
    model = Library


class AuthorStore(_TableStore[Author]):
    table = _authors
    model = Author


# ---------------------------------------------------------------------------
# Books (with the book_authors association)
# ---------------------------------------------------------------------------


class BookStore(_TableStore[Book]):
    """Repository for Book plus its many-to-many link to Author.

    author_ids is not a column: create() and set_authors() write the
    association rows, get()/list() fill the attribute back in.
    """

    table = _books
    model = Book

    def _author_map(self, book_ids: list[int]) -> dict[int, list[int]]:
        result: dict[int, list[int]] = {bid: [] for bid in book_ids}
        if not book_ids:
            return result
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_book_authors.c.book_id, _book_authors.c.author_id)
                .where(_book_authors.c.book_id.in_(book_ids))
                .order_by(_book_authors.c.author_id)
            ).fetchall()
        for row in rows:
            result[row.book_id].append(row.author_id)
        return result

    def _with_authors(self, found: list[Book]) -> list[Book]:
        author_map = self._author_map([b.id for b in found])
        for book in found:
            book.author_ids = author_map.get(book.id, [])
        return found

    def get(self, record_id: int) -> Optional[Book]:
        book = super().get(record_id)
        if book is None:
            return None
        return self._with_authors([book])[0]

    def list(self) -> list[Book]:
        return self._with_authors(super().list())

    def list_by_author(self, author_id: int) -> list[Book]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                self.table.select()
                .join(_book_authors, _book_authors.c.book_id == self.table.c.id)
                .where(_book_authors.c.author_id == author_id)
                .order_by(self.table.c.id)
            ).fetchall()
        return self._with_authors([self._to_model(r) for r in rows])

    def list_by_branch(self, branch_id: int) -> list[Book]:
        return self._with_authors(self._find_by("branch_id", branch_id))

    def list_by_library(self, library_id: int) -> list[Book]:
        return self._with_authors(self._find_by("library_id", library_id))

    def create(self, record: Book) -> int:
        """Insert the book and its author links in one transaction."""
        with self.engine.begin() as conn:
            result = conn.execute(insert(self.table).values(**self._values(record)))
            book_id = result.inserted_primary_key[0]
            if record.author_ids:
                conn.execute(
                    insert(_book_authors),
                    [{"book_id": book_id, "author_id": a} for a in dict.fromkeys(record.author_ids)],
                )
        return book_id

    def set_authors(self, book_id: int, author_ids: list[int]) -> None:
        """Replace the book's author links."""
        with self.engine.begin() as conn:
            conn.execute(delete(_book_authors).where(_book_authors.c.book_id == book_id))
            if author_ids:
                conn.execute(
                    insert(_book_authors),
                    [{"book_id": book_id, "author_id": a} for a in dict.fromkeys(author_ids)],
                )


# ---------------------------------------------------------------------------
# Borrowings and reviews
# ---------------------------------------------------------------------------


class BorrowingStore(_TableStore[Borrowing]):
    table = _borrowings
    model = Borrowing

    def list_by_user(self, user_id: int) -> list[Borrowing]:
        return self._find_by("user_id", user_id)


class ReviewStore(_TableStore[Review]):
    table = _reviews
    model = Review

    def list_by_book(self, book_id: int) -> list[Review]:
        return self._find_by("book_id", book_id)
