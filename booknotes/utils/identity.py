"""Identity & session helpers.

The signed session cookie holds what the browser needs to stay signed in:
the opaque ``auth_token`` and a snapshot of the user's public fields.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

from flask import session

SESSION_TOKEN_KEY = "auth_token"
SESSION_USER_KEY = "user"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def is_valid_email(raw: Any) -> bool:
    normalized = normalize_email(raw)
    return bool(normalized and _EMAIL_RE.match(normalized))


def get_session_token() -> Optional[str]:
    token = session.get(SESSION_TOKEN_KEY)
    if not isinstance(token, str) or not token:
        return None
    return token


def get_session_user() -> Optional[Dict[str, Any]]:
    user = session.get(SESSION_USER_KEY)
    return user if isinstance(user, dict) else None


def store_session(token: str, user: Dict[str, Any]) -> None:
    session[SESSION_TOKEN_KEY] = token
    session[SESSION_USER_KEY] = dict(user)


def update_session_user(user: Dict[str, Any]) -> None:
    session[SESSION_USER_KEY] = dict(user)


def clear_identity_session() -> None:
    session.pop(SESSION_TOKEN_KEY, None)
    session.pop(SESSION_USER_KEY, None)


__all__ = [
    "SESSION_TOKEN_KEY",
    "SESSION_USER_KEY",
    "normalize_email",
    "is_valid_email",
    "get_session_token",
    "get_session_user",
    "store_session",
    "update_session_user",
    "clear_identity_session",
]
