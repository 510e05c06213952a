"""
api/stores.py -- The per-entity repositories, assembled once per process.

The lifespan in api/main.py calls build_stores() at startup and keeps the
result on app.state.stores; handlers read it from there. Nothing
re-instantiates a repository per request.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from auth.store import UserStore
from catalog.store import (
    AuthorStore,
    BookStore,
    BorrowingStore,
    BranchStore,
    CategoryStore,
    LibraryStore,
    ReviewStore,
)


@dataclass
class Stores:
    engine: Engine
    users: UserStore
    authors: AuthorStore
    books: BookStore
    categories: CategoryStore
    branches: BranchStore
    libraries: LibraryStore
    borrowings: BorrowingStore
    reviews: ReviewStore

    def close(self) -> None:
        self.engine.dispose()


def build_stores(engine: Engine) -> Stores:
    return Stores(
        engine=engine,
        users=UserStore(engine),
        authors=AuthorStore(engine),
        books=BookStore(engine),
        categories=CategoryStore(engine),
        branches=BranchStore(engine),
        libraries=LibraryStore(engine),
        borrowings=BorrowingStore(engine),
        reviews=ReviewStore(engine),
    )
