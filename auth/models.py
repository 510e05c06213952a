"""
auth/models.py -- Domain dataclass for authenticated identities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A library user: admin, librarian, reader or author.

    password holds the bcrypt hash, never the plaintext. to_public() is what
    routes put in responses -- the hash never leaves the process.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    password: str
    role: str  # "ADMIN" | "LIBRARIAN" | "READER" | "AUTHOR"
    id: int | None = None

    def to_public(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}
