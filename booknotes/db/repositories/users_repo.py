"""Repository helpers for user accounts."""
from __future__ import annotations

from typing import Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booknotes.db import app_session
from booknotes.db.models import User


class UserExistsError(Exception):
    """Raised when attempting to insert a duplicate email."""


def list_users() -> List[User]:
    with app_session() as session:
        return session.query(User).order_by(User.id.asc()).all()


def count_users() -> int:
    with app_session() as session:
        return session.query(User).count()


def get_user(user_id: int) -> Optional[User]:
    with app_session() as session:
        return session.query(User).filter(User.id == user_id).one_or_none()


def get_user_by_email(email: str) -> Optional[User]:
    """Fetch user by already-normalized email."""
    with app_session() as session:
        return session.query(User).filter(func.lower(User.email) == email).one_or_none()


def existing_emails(emails: Iterable[str]) -> Set[str]:
    wanted = {e for e in emails if e}
    if not wanted:
        return set()
    with app_session() as session:
        rows = session.query(User.email).filter(func.lower(User.email).in_(sorted(wanted))).all()
    return {row[0].lower() for row in rows}


def _new_user(
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    user_id: Optional[int],
) -> User:
    payload = {
        "email": email,
        "password_hash": password_hash,
        "first_name": first_name,
        "last_name": last_name,
    }
    if user_id is not None:
        payload["id"] = user_id
    return User(**payload)


def create_user(
    email: str,
    password_hash: str,
    first_name: str = "",
    last_name: str = "",
    *,
    user_id: Optional[int] = None,
) -> User:
    user = _new_user(email, password_hash, first_name, last_name, user_id)
    try:
        with app_session() as session:
            session.add(user)
    except IntegrityError as exc:
        raise UserExistsError("Email already exists") from exc
    return user


def find_user(session: Session, user_id: int) -> Optional[User]:
    """Lookup inside a caller-owned session (sees rows staged but not committed)."""
    return session.get(User, user_id)


def find_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(func.lower(User.email) == email).one_or_none()


def stage_user(
    session: Session,
    email: str,
    password_hash: str,
    first_name: str = "",
    last_name: str = "",
    *,
    user_id: Optional[int] = None,
) -> User:
    """Add and flush inside ``session``; committing is up to the caller."""
    user = _new_user(email, password_hash, first_name, last_name, user_id)
    session.add(user)
    session.flush()
    return user


__all__ = [
    "UserExistsError",
    "list_users",
    "count_users",
    "get_user",
    "get_user_by_email",
    "existing_emails",
    "create_user",
    "find_user",
    "find_user_by_email",
    "stage_user",
]
