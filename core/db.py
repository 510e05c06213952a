"""
core/db.py -- SQLAlchemy Core schema and engine factory.

Every table lives on one shared MetaData so foreign keys can cross the auth/
and catalog/ stores. The stores themselves (auth/store.py, catalog/store.py)
receive an Engine and never create one -- the engine is built once in the API
lifespan and injected.

SQLite specifics:
  - check_same_thread=False: FastAPI runs sync handlers in a threadpool.
  - PRAGMA journal_mode=WAL and PRAGMA foreign_keys=ON are set per connection
    because SQLite PRAGMAs are not inherited from the pool.

Layer rule: no imports from api/, auth/ or catalog/.
"""

from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("role", String(20), nullable=False),
)

# At most one ADMIN row. The registration and promotion checks read the
# count first; this index settles concurrent writers.
SINGLE_ADMIN_INDEX = "uq_users_single_admin"
Index(
    SINGLE_ADMIN_INDEX,
    users.c.role,
    unique=True,
    sqlite_where=users.c.role == "ADMIN",
    postgresql_where=users.c.role == "ADMIN",
)

authors = Table(
    "authors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("biography", Text),
    Column("birth_date", Date),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)

branches = Table(
    "branches",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("address", Text, nullable=False),
)

libraries = Table(
    "libraries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("address", Text, nullable=False),
)

books = Table(
    "books",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("publication_date", Date, nullable=False),
    Column("status", String(20), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False),
    Column("library_id", Integer, ForeignKey("libraries.id", ondelete="SET NULL")),
    Column("branch_id", Integer, ForeignKey("branches.id", ondelete="SET NULL")),
)

book_authors = Table(
    "book_authors",
    metadata,
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("author_id", Integer, ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
)

borrowings = Table(
    "borrowings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("borrow_date", Date, nullable=False),
    Column("return_date", Date),
)

reviews = Table(
    "reviews",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("content", Text, nullable=False),
    Column("rating", Float, nullable=False),
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL mode and foreign key enforcement on every new connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    """Create the engine and make sure the schema exists.

    create_all() is idempotent -- safe to call on every startup.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine
