"""Book visibility, creation and whole-document saves."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from booknotes.db.models import Book, User
from booknotes.db.repositories import books_repo, users_repo
from booknotes.services.section_tree import (
    SectionTreeError,
    prune_empty_sections,
    sections_from_payload,
    sections_to_payload,
)
from booknotes.utils.identity import normalize_email
from booknotes.utils.logging import get_logger

LOG = get_logger("books_service")

_SORT_KEYS = {
    "id": lambda book: book.id,
    "name": lambda book: (book.name or "").lower(),
}


class BookError(RuntimeError):
    """Base error for book workflows; ``str(exc)`` is user-facing."""


class BookValidationError(BookError, ValueError):
    """Raised when a book payload fails validation."""


class BookNotFoundError(BookError):
    """Raised when a book id cannot be located."""


class BookPermissionError(BookError):
    """Raised when the caller may not read or change a book."""


def is_owner(user: User, book: Book) -> bool:
    return book.user_id == user.id


def can_access(user: User, book: Book) -> bool:
    if is_owner(user, book):
        return True
    email = normalize_email(user.email)
    return bool(email) and email in {normalize_email(c) for c in book.collaborators}


def _clean_name(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise BookValidationError("Book name is required")
    return raw.strip()


def _clean_collaborators(raw: Any, owner: User, current: Iterable[str] = ()) -> List[str]:
    """Normalized, de-duplicated emails; only ones missing from ``current`` must be registered."""
    existing = set(current)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise BookValidationError("Collaborators must be a list of emails")
    owner_email = normalize_email(owner.email)
    cleaned: List[str] = []
    for value in raw:
        email = normalize_email(value)
        if not email:
            raise BookValidationError("Collaborators must be a list of emails")
        if email == owner_email:
            raise BookValidationError("The owner cannot be a collaborator")
        if email not in cleaned:
            cleaned.append(email)
    added = [email for email in cleaned if email not in existing]
    unknown = set(added) - users_repo.existing_emails(added)
    if unknown:
        raise BookValidationError("Unknown collaborator: " + ", ".join(sorted(unknown)))
    return cleaned


def _clean_sections(raw: Any) -> List[Dict[str, Any]]:
    try:
        tree = sections_from_payload(raw)
    except SectionTreeError as exc:
        raise BookValidationError(str(exc)) from exc
    return sections_to_payload(prune_empty_sections(tree))


def list_books_for_user(
    user: User,
    *,
    q: Optional[str] = None,
    owner_id: Optional[int] = None,
    sort: Optional[str] = None,
    order: str = "asc",
) -> List[Book]:
    """Books the user owns or collaborates on, optionally filtered and sorted."""
    books = books_repo.list_books_visible_to(user.id, normalize_email(user.email))
    if q:
        needle = q.strip().lower()
        books = [b for b in books if needle in (b.name or "").lower()]
    if owner_id is not None:
        books = [b for b in books if b.user_id == owner_id]
    if sort:
        key = _SORT_KEYS.get(sort)
        if key is None:
            raise BookValidationError(f"Cannot sort by {sort}")
        books = sorted(books, key=key, reverse=(order or "").lower() == "desc")
    return books


def get_book(user: User, book_id: int) -> Book:
    book = books_repo.get_book(book_id)
    if book is None:
        raise BookNotFoundError("Book not found")
    if not can_access(user, book):
        LOG.info("book access denied book_id=%s user_id=%s", book_id, user.id)
        raise BookPermissionError("You do not have access to this book")
    return book


def create_book(user: User, payload: Mapping[str, Any]) -> Book:
    """Create a book owned by ``user``; any submitted userId is ignored."""
    name = _clean_name(payload.get("name"))
    collaborators = _clean_collaborators(payload.get("collaborators"), user)
    sections = _clean_sections(payload.get("sections"))
    book = books_repo.create_book(name, user.id, collaborators, sections)
    LOG.info("book created book_id=%s owner=%s collaborators=%d", book.id, user.id, len(collaborators))
    return book


def update_book(user: User, book_id: int, payload: Mapping[str, Any]) -> Book:
    """Replace the whole book document.

    Empty sections are pruned at every depth before storing. Collaborators
    may only change when the caller owns the book, and ownership itself
    never moves.
    """
    book = get_book(user, book_id)
    owner = user if is_owner(user, book) else users_repo.get_user(book.user_id)
    if owner is None:  # pragma: no cover - orphaned rows only come from bad imports
        raise BookNotFoundError("Book owner not found")
    name = _clean_name(payload.get("name", book.name))
    current = [email for email in (normalize_email(c) for c in book.collaborators) if email]
    if "collaborators" in payload:
        collaborators = _clean_collaborators(payload.get("collaborators"), owner, current)
    else:
        collaborators = current
    if not is_owner(user, book):
        if set(collaborators) != set(current):
            raise BookPermissionError("Only the author can change collaborators")
        collaborators = current
    sections = _clean_sections(payload.get("sections", book.sections))
    updated = books_repo.replace_book(book_id, name=name, collaborators=collaborators, sections=sections)
    if updated is None:  # pragma: no cover - deleted between read and write
        raise BookNotFoundError("Book not found")
    LOG.info("book saved book_id=%s by user_id=%s", book_id, user.id)
    return updated


__all__ = [
    "BookError",
    "BookValidationError",
    "BookNotFoundError",
    "BookPermissionError",
    "is_owner",
    "can_access",
    "list_books_for_user",
    "get_book",
    "create_book",
    "update_book",
]
