"""Opaque bearer tokens for the REST API and the web session.

Tokens are Fernet-encrypted JSON documents keyed from the Flask
SECRET_KEY. Clients never look inside; they only echo the string back in
an ``Authorization: Bearer`` header or keep it in the session cookie.
"""
from __future__ import annotations

import base64
import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app

from booknotes import config as app_config
from booknotes.utils.identity import normalize_email
from booknotes.utils.logging import get_logger

LOG = get_logger("auth_token_service")


class AuthTokenError(RuntimeError):
    """Base error for bearer token failures."""


class SecretKeyUnavailableError(AuthTokenError):
    """Raised when the Flask SECRET_KEY is missing."""


class TokenDecodeError(AuthTokenError):
    """Raised when a provided token cannot be decoded."""


class TokenExpiredError(AuthTokenError):
    """Raised when a token exceeded the configured lifetime."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def _parse_timestamp(raw: str) -> datetime:
    candidate = raw
    if raw.endswith("Z"):
        candidate = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise TokenDecodeError("invalid_timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _derive_fernet_key(secret_value: Any) -> bytes:
    if not secret_value:
        raise SecretKeyUnavailableError("secret_key_missing")
    if isinstance(secret_value, bytes):
        secret_bytes = secret_value
    else:
        secret_bytes = str(secret_value).encode("utf-8")
    digest = hashlib.sha256(secret_bytes).digest()
    return base64.urlsafe_b64encode(digest)


def _fernet() -> Fernet:
    secret = current_app.config.get("SECRET_KEY")  # type: ignore[union-attr]
    return Fernet(_derive_fernet_key(secret))


def issue_token(*, user_id: int, email: str) -> str:
    """Encrypt a token naming the user; stamped with the current time."""
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise TokenDecodeError("email_required")
    document = {
        "sub": int(user_id),
        "email": normalized_email,
        "issued_at": _format_timestamp(_utcnow()),
    }
    encoded = _fernet().encrypt(
        json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")
    )
    return encoded.decode("utf-8")


def decode_token(token: str) -> Dict[str, Any]:
    """Return the decrypted payload, enforcing the configured max age."""

    if not token or not isinstance(token, str):
        raise TokenDecodeError("token_required")

    try:
        decrypted = _fernet().decrypt(token.encode("utf-8"))
    except InvalidToken as exc:
        LOG.warning("Rejected invalid bearer token")
        raise TokenDecodeError("invalid_token") from exc

    try:
        payload = json.loads(decrypted.decode("utf-8"))
    except json.JSONDecodeError as exc:  # pragma: no cover - input integrity guard
        raise TokenDecodeError("invalid_payload") from exc

    normalized_email = normalize_email(payload.get("email"))
    if not normalized_email:
        raise TokenDecodeError("email_missing")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise TokenDecodeError("subject_missing") from exc

    issued_at_raw = payload.get("issued_at")
    if not isinstance(issued_at_raw, str):
        raise TokenDecodeError("issued_at_missing")
    issued_at_value = _parse_timestamp(issued_at_raw)

    ttl = app_config.token_ttl_seconds()
    if ttl and _utcnow() - issued_at_value > timedelta(seconds=ttl):
        LOG.warning("Rejected expired bearer token user_id=%s", user_id)
        raise TokenExpiredError("token_expired")

    return {
        "sub": user_id,
        "email": normalized_email,
        "issued_at": issued_at_raw,
    }


__all__ = [
    "issue_token",
    "decode_token",
    "AuthTokenError",
    "SecretKeyUnavailableError",
    "TokenDecodeError",
    "TokenExpiredError",
]
