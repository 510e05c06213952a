"""
core/models.py -- Domain enums shared by every layer.

Roles and book statuses are closed sets. Both are str-valued so they compare
equal to the raw strings stored in the database and carried in JWT claims.
"""

from enum import Enum


class Role(str, Enum):
    """User role. Flat: no role implies another."""

    ADMIN = "ADMIN"
    LIBRARIAN = "LIBRARIAN"
    READER = "READER"
    AUTHOR = "AUTHOR"

    @classmethod
    def values(cls) -> list[str]:
        return [r.value for r in cls]


class BookStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BORROWED = "BORROWED"
    RESERVED = "RESERVED"
    DAMAGED = "DAMAGED"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]
