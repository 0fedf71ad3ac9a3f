"""Import & export of json-server style ``db.json`` documents.

Document shape::

    {"users": [{"id", "email", "password", "firstName", "lastName"}],
     "books": [{"id", "name", "userId", "collaborators", "sections"}]}

Ids are preserved on import and the whole document is one transaction.
Collaborators follow the same rules as a new book: unknown emails and the
owner are dropped with a warning. Passwords may be plaintext (hashed here),
werkzeug hashes (kept), or hashes from other tools such as the bcrypt
strings json-server-auth writes. Werkzeug cannot verify the latter, so
those accounts get an unusable password and must be re-registered.
"""
from __future__ import annotations

import json
import secrets
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from booknotes.db import app_session
from booknotes.db.models import User
from booknotes.db.repositories import books_repo, users_repo
from booknotes.services.section_tree import (
    SectionTreeError,
    prune_empty_sections,
    sections_from_payload,
    sections_to_payload,
)
from booknotes.utils.identity import is_valid_email, normalize_email
from booknotes.utils.logging import get_logger

LOG = get_logger("db_json")

_WERKZEUG_METHODS = ("scrypt:", "pbkdf2:")
_FOREIGN_HASH_PREFIXES = ("$2a$", "$2b$", "$2y$", "$argon2")


class DbJsonError(ValueError):
    """Raised when a document cannot be imported."""


def _password_hash(raw: Any, email: str) -> str:
    if not isinstance(raw, str) or not raw:
        raise DbJsonError(f"user {email}: password is required")
    if raw.startswith(_WERKZEUG_METHODS):
        return raw
    if raw.startswith(_FOREIGN_HASH_PREFIXES):
        LOG.warning("user %s has a foreign password hash; password reset required", email)
        return generate_password_hash(secrets.token_urlsafe(32))
    return generate_password_hash(raw)


def _optional_int(raw: Any, what: str) -> Union[int, None]:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise DbJsonError(f"{what}: id must be an integer") from exc


def _import_collaborators(session: Session, raw: Any, owner: User, book_label: str) -> List[str]:
    """Normalize, de-duplicate, drop the owner and any email with no account."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise DbJsonError(f"book {book_label}: collaborators must be a list")
    owner_email = normalize_email(owner.email)
    kept: List[str] = []
    for value in raw:
        email = normalize_email(value)
        if not email or email in kept:
            continue
        if email == owner_email:
            LOG.warning("db.json import dropped owner from collaborators book=%s", book_label)
            continue
        if users_repo.find_user_by_email(session, email) is None:
            LOG.warning("db.json import dropped unknown collaborator book=%s email=%s", book_label, email)
            continue
        kept.append(email)
    return kept


def _import_users(session: Session, users: List[Any], summary: Dict[str, int]) -> None:
    for raw in users:
        if not isinstance(raw, Mapping):
            raise DbJsonError("user entries must be objects")
        email = normalize_email(raw.get("email"))
        if not email or not is_valid_email(email):
            raise DbJsonError(f"user {raw.get('id')}: email is invalid")
        if users_repo.find_user_by_email(session, email) is not None:
            LOG.info("db.json import skipped existing user email=%s", email)
            summary["skipped_users"] += 1
            continue
        user_id = _optional_int(raw.get("id"), f"user {email}")
        if user_id is not None:
            taken = users_repo.find_user(session, user_id)
            if taken is not None:
                raise DbJsonError(f"user {email}: id {user_id} already belongs to {taken.email}")
        users_repo.stage_user(
            session,
            email,
            _password_hash(raw.get("password"), email),
            first_name=str(raw.get("firstName") or ""),
            last_name=str(raw.get("lastName") or ""),
            user_id=user_id,
        )
        summary["users"] += 1


def _import_books(session: Session, books: List[Any], summary: Dict[str, int]) -> None:
    for raw in books:
        if not isinstance(raw, Mapping):
            raise DbJsonError("book entries must be objects")
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise DbJsonError(f"book {raw.get('id')}: name is required")
        owner_id = _optional_int(raw.get("userId"), f"book {name}")
        owner = users_repo.find_user(session, owner_id) if owner_id is not None else None
        if owner is None:
            raise DbJsonError(f"book {name}: owner {raw.get('userId')} does not exist")
        book_id = _optional_int(raw.get("id"), f"book {name}")
        if book_id is not None and books_repo.find_book(session, book_id) is not None:
            raise DbJsonError(f"book {name}: id {book_id} is already taken")
        try:
            tree = prune_empty_sections(sections_from_payload(raw.get("sections")))
        except SectionTreeError as exc:
            raise DbJsonError(f"book {name}: {exc}") from exc
        books_repo.stage_book(
            session,
            name.strip(),
            owner.id,
            _import_collaborators(session, raw.get("collaborators"), owner, name),
            sections_to_payload(tree),
            book_id=book_id,
        )
        summary["books"] += 1


def import_document(doc: Mapping[str, Any]) -> Dict[str, int]:
    """Load users then books in one transaction.

    Any rejected entry rolls the whole document back. Returns counts of
    imported and skipped rows.
    """
    if not isinstance(doc, Mapping):
        raise DbJsonError("document must be an object")
    users = doc.get("users") or []
    books = doc.get("books") or []
    if not isinstance(users, list) or not isinstance(books, list):
        raise DbJsonError("users and books must be lists")

    summary = {"users": 0, "books": 0, "skipped_users": 0}
    try:
        with app_session() as session:
            _import_users(session, users, summary)
            _import_books(session, books, summary)
    except IntegrityError as exc:
        raise DbJsonError(f"import conflicts with existing rows ({exc.orig})") from exc

    LOG.info(
        "db.json import done users=%s books=%s skipped_users=%s",
        summary["users"],
        summary["books"],
        summary["skipped_users"],
    )
    return summary


def export_document() -> Dict[str, List[Dict[str, Any]]]:
    """Current state in db.json shape; passwords are exported as hashes."""
    users = []
    for user in users_repo.list_users():
        entry = user.as_dict()
        entry["password"] = user.password_hash
        users.append(entry)
    return {
        "users": users,
        "books": [book.as_dict() for book in books_repo.list_books()],
    }


def load_file(path: Union[str, Path]) -> Dict[str, int]:
    try:
        doc = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DbJsonError(f"{path}: invalid JSON ({exc.msg})") from exc
    return import_document(doc)


def dump_file(path: Union[str, Path]) -> Dict[str, int]:
    doc = export_document()
    Path(path).write_text(json.dumps(doc, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return {"users": len(doc["users"]), "books": len(doc["books"])}


def seed_if_empty(path: Union[str, Path]) -> bool:
    """Import ``path`` only when no account exists yet."""
    if users_repo.count_users():
        LOG.debug("seed skipped; database already has users")
        return False
    if not Path(path).is_file():
        LOG.warning("seed file missing path=%s", path)
        return False
    load_file(path)
    return True


__all__ = [
    "DbJsonError",
    "import_document",
    "export_document",
    "load_file",
    "dump_file",
    "seed_if_empty",
]
