"""Application configuration accessors.

Centralizes environment variable parsing & defaults so the rest of the
package never reads ``os.environ`` directly.
"""
from __future__ import annotations

import os
import secrets
from functools import lru_cache

APP_NAME = "booknotes"
APP_VERSION = "0.4.0"
APP_DESCRIPTION = "Books with nested section outlines, shared by email"

DEFAULT_DB_PATH = "booknotes.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TOKEN_TTL_SECONDS = 3600
DEFAULT_MIN_PASSWORD_LENGTH = 4
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_API_PREFIX = "/api"
_TRUE = {"1", "true", "yes", "on"}


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _clean_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def env_bool(name: str, default: bool = False) -> bool:
    raw = _raw_env(name, str(default).lower())
    if raw is None:
        return default
    return raw.lower() in _TRUE


def env_int(name: str, default: int) -> int:
    raw = _clean_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_db_path() -> str:
    return _raw_env("BOOKNOTES_DB_PATH", DEFAULT_DB_PATH)  # type: ignore[return-value]


def log_level_name() -> str:
    return _raw_env("BOOKNOTES_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


@lru_cache(maxsize=1)
def _generated_secret() -> str:
    return secrets.token_hex(32)


def secret_key() -> str:
    """Flask SECRET_KEY; also keys bearer tokens.

    Falls back to a per-process random value, which invalidates every
    session and token on restart.
    """
    return _clean_env("BOOKNOTES_SECRET_KEY") or _generated_secret()


def token_ttl_seconds() -> int:
    """Maximum bearer token age in seconds (0 disables the check)."""
    return max(0, env_int("BOOKNOTES_TOKEN_TTL_SECONDS", DEFAULT_TOKEN_TTL_SECONDS))


def min_password_length() -> int:
    return max(1, env_int("BOOKNOTES_MIN_PASSWORD_LENGTH", DEFAULT_MIN_PASSWORD_LENGTH))


def csrf_enabled() -> bool:
    return env_bool("BOOKNOTES_CSRF_ENABLED", default=True)


def seed_path() -> str | None:
    """Optional db.json document imported into an empty database at startup."""
    return _clean_env("BOOKNOTES_SEED_PATH")


def server_host() -> str:
    return _clean_env("BOOKNOTES_HOST") or DEFAULT_HOST


def server_port() -> int:
    return env_int("BOOKNOTES_PORT", DEFAULT_PORT)


def api_prefix() -> str:
    """URL prefix the REST blueprint is mounted under.

    The HTML pages own ``/books``, so the API cannot sit at the root.
    """
    raw = (_clean_env("BOOKNOTES_API_PREFIX") or DEFAULT_API_PREFIX).rstrip("/")
    if not raw.startswith("/"):
        raw = "/" + raw
    return raw


def api_url() -> str:
    """Base URL the command-line client talks to."""
    return _clean_env("BOOKNOTES_API_URL") or f"http://{DEFAULT_HOST}:{DEFAULT_PORT}{DEFAULT_API_PREFIX}"


def api_token() -> str | None:
    return _clean_env("BOOKNOTES_API_TOKEN")


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    return {
        "db_path": get_db_path(),
        "log_level": log_level_name(),
        "token_ttl_seconds": token_ttl_seconds(),
        "csrf_enabled": csrf_enabled(),
        "seed_path": seed_path(),
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "env_bool",
    "env_int",
    "get_db_path",
    "log_level_name",
    "secret_key",
    "token_ttl_seconds",
    "min_password_length",
    "csrf_enabled",
    "seed_path",
    "server_host",
    "server_port",
    "api_prefix",
    "api_url",
    "api_token",
    "metadata",
    "summarize_runtime_config",
]
