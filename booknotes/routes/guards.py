"""Session gates for the HTML pages.

Every gate asks one question: does the session carry a token that still
resolves to an account? A token that fails to resolve is dropped from the
session on the spot, so the guest and private gates can never bounce a
browser back and forth.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional

from flask import g, redirect, request, url_for

from booknotes.db.models import User
from booknotes.services import accounts_service
from booknotes.services.auth_token_service import AuthTokenError
from booknotes.utils.identity import clear_identity_session, get_session_token
from booknotes.utils.logging import get_logger

LOG = get_logger("guards")

_UNSET = object()


def current_account() -> Optional[User]:
    """Account behind the session token, resolved once per request."""
    cached = g.get("session_account", _UNSET)
    if cached is not _UNSET:
        return cached  # type: ignore[return-value]
    account: Optional[User] = None
    token = get_session_token()
    if token:
        try:
            account = accounts_service.resolve_token(token)
        except AuthTokenError as exc:
            LOG.warning("session token dropped reason=%s", exc)
            clear_identity_session()
    g.session_account = account
    return account


def sanitize_next(raw_target: Optional[str]) -> str:
    """Only same-site absolute paths are honored; anything else lands on /books."""
    target = (raw_target or "").strip()
    if target.startswith("/") and not target.startswith("//") and "\\" not in target:
        return target
    return url_for("web.books")


def _login_redirect():
    target = request.full_path or request.path or "/"
    if target.endswith("?"):
        target = target[:-1]
    return redirect(url_for("web.login", next=target))


def private_route(view: Callable[..., Any]) -> Callable[..., Any]:
    """Send visitors without a session to the login page."""

    @wraps(view)
    def _guarded(*args, **kwargs):
        account = current_account()
        if account is None:
            return _login_redirect()
        g.current_user = account
        return view(*args, **kwargs)

    return _guarded


def guest_only(view: Callable[..., Any]) -> Callable[..., Any]:
    """Send visitors who already hold a session to their books."""

    @wraps(view)
    def _guarded(*args, **kwargs):
        if current_account() is not None:
            return redirect(url_for("web.books"))
        return view(*args, **kwargs)

    return _guarded


def root_redirect():
    if current_account() is not None:
        return redirect(url_for("web.books"))
    return redirect(url_for("web.login"))


__all__ = [
    "current_account",
    "sanitize_next",
    "private_route",
    "guest_only",
    "root_redirect",
]
