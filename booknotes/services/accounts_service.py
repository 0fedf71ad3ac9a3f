"""Account registration, login and token resolution.

Validation messages match json-server-auth so existing clients that show
the raw response body keep working.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from booknotes import config as app_config
from booknotes.db.models import User
from booknotes.db.repositories import users_repo
from booknotes.services import auth_token_service
from booknotes.services.auth_token_service import TokenDecodeError
from booknotes.utils.identity import is_valid_email, normalize_email
from booknotes.utils.logging import get_logger

LOG = get_logger("accounts_service")

MSG_REQUIRED = "Email and password are required"
MSG_EMAIL_FORMAT = "Email format is invalid"
MSG_PASSWORD_SHORT = "Password is too short"
MSG_EMAIL_EXISTS = "Email already exists"
MSG_UNKNOWN_USER = "Cannot find user"
MSG_WRONG_PASSWORD = "Incorrect password"


class AccountError(ValueError):
    """Base error for account workflows; ``str(exc)`` is user-facing."""


class RegistrationError(AccountError):
    """Raised when a signup payload is rejected."""


class LoginError(AccountError):
    """Raised when credentials do not match a stored account."""


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _session_payload(user: User) -> Dict[str, Any]:
    token = auth_token_service.issue_token(user_id=user.id, email=user.email)
    return {"accessToken": token, "user": user.as_dict()}


def register(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Create an account and return ``{"accessToken", "user"}``."""
    raw_email = payload.get("email")
    password = payload.get("password")
    if not isinstance(password, str):
        password = ""
    email = normalize_email(raw_email)
    if not email or not password:
        raise RegistrationError(MSG_REQUIRED)
    if not is_valid_email(email):
        raise RegistrationError(MSG_EMAIL_FORMAT)
    if len(password) < app_config.min_password_length():
        raise RegistrationError(MSG_PASSWORD_SHORT)
    if users_repo.get_user_by_email(email) is not None:
        raise RegistrationError(MSG_EMAIL_EXISTS)
    try:
        user = users_repo.create_user(
            email,
            generate_password_hash(password),
            first_name=_text(payload, "firstName"),
            last_name=_text(payload, "lastName"),
        )
    except users_repo.UserExistsError as exc:
        raise RegistrationError(MSG_EMAIL_EXISTS) from exc
    LOG.info("account registered user_id=%s email=%s", user.id, email)
    return _session_payload(user)


def login(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Verify credentials and return ``{"accessToken", "user"}``."""
    email = normalize_email(payload.get("email"))
    password = payload.get("password")
    if not email or not isinstance(password, str) or not password:
        raise LoginError(MSG_REQUIRED)
    user = users_repo.get_user_by_email(email)
    if user is None:
        LOG.info("login rejected email=%s reason=unknown_user", email)
        raise LoginError(MSG_UNKNOWN_USER)
    if not _password_matches(user.password_hash, password):
        LOG.info("login rejected email=%s reason=wrong_password", email)
        raise LoginError(MSG_WRONG_PASSWORD)
    LOG.info("login ok user_id=%s", user.id)
    return _session_payload(user)


def _password_matches(stored: Optional[str], password: str) -> bool:
    if not stored:
        return False
    try:
        return check_password_hash(stored, password)
    except ValueError:
        # Imported hashes from other tools use methods werkzeug cannot verify.
        return False


def list_users() -> List[Dict[str, Any]]:
    return [user.as_dict() for user in users_repo.list_users()]


def get_user(user_id: int) -> Optional[User]:
    return users_repo.get_user(user_id)


def resolve_token(token: str) -> User:
    """Return the account a bearer token was issued for."""
    payload = auth_token_service.decode_token(token)
    user = users_repo.get_user(payload["sub"])
    if user is None or normalize_email(user.email) != payload["email"]:
        raise TokenDecodeError("user_missing")
    return user


def update_profile_snapshot(
    snapshot: Mapping[str, Any],
    *,
    first_name: Optional[str],
    last_name: Optional[str],
) -> Dict[str, Any]:
    """Return an edited copy of the session snapshot.

    The stored account is left untouched; only the copy kept next to the
    token changes.
    """
    updated = dict(snapshot)
    updated["firstName"] = (first_name or "").strip()
    updated["lastName"] = (last_name or "").strip()
    return updated


__all__ = [
    "AccountError",
    "RegistrationError",
    "LoginError",
    "register",
    "login",
    "list_users",
    "get_user",
    "resolve_token",
    "update_profile_snapshot",
]
