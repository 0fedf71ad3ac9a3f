"""Utility helpers."""
from .identity import (
    normalize_email,
    is_valid_email,
    get_session_token,
    get_session_user,
    store_session,
    update_session_user,
    clear_identity_session,
)

__all__ = [
    "normalize_email",
    "is_valid_email",
    "get_session_token",
    "get_session_user",
    "store_session",
    "update_session_user",
    "clear_identity_session",
]
