"""Repository helpers for books and their section documents."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from booknotes.db import app_session
from booknotes.db.models import Book


def list_books() -> List[Book]:
    with app_session() as session:
        return session.query(Book).order_by(Book.id.asc()).all()


def count_books() -> int:
    with app_session() as session:
        return session.query(Book).count()


def list_books_visible_to(user_id: int, email: Optional[str]) -> List[Book]:
    """Books owned by ``user_id`` or listing ``email`` as a collaborator.

    Collaborators live inside a JSON column, so the membership test runs
    in Python after fetching.
    """
    visible: List[Book] = []
    for book in list_books():
        if book.user_id == user_id:
            visible.append(book)
        elif email and email in (c.lower() for c in book.collaborators):
            visible.append(book)
    return visible


def get_book(book_id: int) -> Optional[Book]:
    with app_session() as session:
        return session.query(Book).filter(Book.id == book_id).one_or_none()


def _new_book(
    name: str,
    user_id: int,
    collaborators: List[str],
    sections: List[Dict[str, Any]],
    book_id: Optional[int],
) -> Book:
    book = Book(name=name, user_id=user_id)
    if book_id is not None:
        book.id = book_id
    book.collaborators = collaborators
    book.sections = sections
    return book


def create_book(
    name: str,
    user_id: int,
    collaborators: List[str],
    sections: List[Dict[str, Any]],
    *,
    book_id: Optional[int] = None,
) -> Book:
    book = _new_book(name, user_id, collaborators, sections, book_id)
    with app_session() as session:
        session.add(book)
    return book


def find_book(session: Session, book_id: int) -> Optional[Book]:
    return session.get(Book, book_id)


def stage_book(
    session: Session,
    name: str,
    user_id: int,
    collaborators: List[str],
    sections: List[Dict[str, Any]],
    *,
    book_id: Optional[int] = None,
) -> Book:
    """Add and flush inside ``session``; committing is up to the caller."""
    book = _new_book(name, user_id, collaborators, sections, book_id)
    session.add(book)
    session.flush()
    return book


def replace_book(
    book_id: int,
    *,
    name: str,
    collaborators: List[str],
    sections: List[Dict[str, Any]],
) -> Optional[Book]:
    """Overwrite the whole document; the owner column is never touched."""
    with app_session() as session:
        book = session.query(Book).filter(Book.id == book_id).one_or_none()
        if not book:
            return None
        book.name = name
        book.collaborators = collaborators
        book.sections = sections
        return book


__all__ = [
    "list_books",
    "count_books",
    "list_books_visible_to",
    "get_book",
    "create_book",
    "find_book",
    "stage_book",
    "replace_book",
]
