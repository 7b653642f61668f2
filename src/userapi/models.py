"""
=============================================================================
USER ENTITY
=============================================================================

The one record this service stores and exchanges.

    Client JSON                    User                     users table
    ───────────                    ────                     ───────────
    {"name": "Ann",     from_dict  User(id=None,   INSERT    id    SERIAL PK
     "email": "a@x"}  ──────────►       name=...,  ───────►  name  VARCHAR
                                        email=...)           email VARCHAR
                                                                │
    {"id": 1,           to_dict    User(id=1,      from_row     │
     "name": "Ann", ◄──────────────     ...)   ◄────────────────┘
     "email": "a@x"}

The id is generated by the database. A User built from client input never
carries one: from_dict() ignores any "id" key, so an unsaved User always has
id=None until a row read back from storage confirms it.
=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .errors import DecodeError


@dataclass
class User:
    """
    A user record.

    Attributes:
        name:  Display name (non-empty).
        email: Email address (non-empty, not validated further).
        id:    Database-generated primary key, None until persisted.
    """

    name: str
    email: str
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        """
        Build an unsaved user from a decoded JSON document.

        Only "name" and "email" are read. Unknown keys, "id" included,
        are ignored.

        Raises:
            DecodeError: If data is not an object or a field is missing,
                         not a string, or empty.
        """
        if not isinstance(data, dict):
            raise DecodeError("User body must be a JSON object")

        fields = {}
        for key in ("name", "email"):
            value = data.get(key)
            if not isinstance(value, str):
                raise DecodeError(f"Field '{key}' must be a string")
            if not value:
                raise DecodeError(f"Field '{key}' must not be empty")
            fields[key] = value

        return cls(name=fields["name"], email=fields["email"])

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "User":
        """Build a persisted user from an (id, name, email) row."""
        return cls(id=row[0], name=row[1], email=row[2])

    def to_dict(self) -> dict:
        """Serialize in wire order: id, name, email."""
        return {"id": self.id, "name": self.name, "email": self.email}
