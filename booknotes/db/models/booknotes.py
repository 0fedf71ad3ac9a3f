"""ORM models for the booknotes DB (users + books)."""
from __future__ import annotations

import datetime
import json
from typing import Any, Dict, List

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _load_json_list(raw: Any) -> List[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


class User(Base):
    """Registered account. ``password_hash`` never leaves the server."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    password_hash = Column(String(512), nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
        nullable=False,
    )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email}>"


class Book(Base):
    """A user's book with its section outline.

    ``collaborators`` and ``sections`` are stored as JSON text: the section
    tree is always read and written as one document.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(500), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    collaborators_json = Column("collaborators", Text, nullable=False, default="[]")
    sections_json = Column("sections", Text, nullable=False, default="[]")
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
        nullable=False,
    )

    @property
    def collaborators(self) -> List[str]:
        return [c for c in _load_json_list(self.collaborators_json) if isinstance(c, str)]

    @collaborators.setter
    def collaborators(self, emails: List[str]) -> None:
        self.collaborators_json = json.dumps(list(emails))

    @property
    def sections(self) -> List[Dict[str, Any]]:
        return [s for s in _load_json_list(self.sections_json) if isinstance(s, dict)]

    @sections.setter
    def sections(self, payload: List[Dict[str, Any]]) -> None:
        self.sections_json = json.dumps(list(payload), separators=(",", ":"))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "userId": self.user_id,
            "collaborators": self.collaborators,
            "sections": self.sections,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book id={self.id} name={self.name!r} owner={self.user_id}>"


__all__ = ["Base", "User", "Book"]
