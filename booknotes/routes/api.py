"""REST API blueprint (json-server-auth compatible surface).

Routes (relative to the API prefix, ``/api`` by default):
    POST /register      -> 201 {accessToken, user}
    POST /login         -> 200 {accessToken, user}
    GET  /users         -> public user list            (bearer)
    GET  /books         -> books visible to the caller (bearer)
    GET  /books/<id>    -> one book                     (bearer)
    POST /books         -> create, caller becomes owner (bearer)
    PUT  /books/<id>    -> whole-document replacement   (bearer)

Errors are returned as a bare JSON string, the way json-server-auth does,
so clients can show ``response.data`` directly.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional

from flask import Blueprint, g, jsonify, request

from booknotes import config as app_config
from booknotes.services import accounts_service, books_service
from booknotes.services.accounts_service import AccountError
from booknotes.services.auth_token_service import AuthTokenError, TokenExpiredError
from booknotes.services.books_service import (
    BookNotFoundError,
    BookPermissionError,
    BookValidationError,
)
from booknotes.utils.logging import get_logger

LOG = get_logger("booknotes.api")

bp = Blueprint("api", __name__)

_BEARER_PREFIX = "bearer "


def _error(message: str, status: int):
    return jsonify(message), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_bearer(func: Callable[..., Any]) -> Callable[..., Any]:
    """Resolve ``Authorization: Bearer <token>`` into ``g.current_user``."""

    @wraps(func)
    def _wrapped(*args, **kwargs):
        header = request.headers.get("Authorization")
        if not header:
            return _error("Missing authorization header", 401)
        if not header.lower().startswith(_BEARER_PREFIX):
            return _error("Incorrect authorization scheme", 401)
        token = header[len(_BEARER_PREFIX):].strip()
        try:
            g.current_user = accounts_service.resolve_token(token)
        except TokenExpiredError:
            LOG.warning("bearer token expired path=%s", request.path)
            return _error("Token expired", 401)
        except AuthTokenError as exc:
            LOG.warning("bearer token rejected path=%s reason=%s", request.path, exc)
            return _error("Invalid token", 401)
        return func(*args, **kwargs)

    return _wrapped


@bp.route("/register", methods=["POST"])
def register():
    try:
        payload = accounts_service.register(_json_body())
    except AccountError as exc:
        return _error(str(exc), 400)
    return jsonify(payload), 201


@bp.route("/login", methods=["POST"])
def login():
    try:
        payload = accounts_service.login(_json_body())
    except AccountError as exc:
        return _error(str(exc), 400)
    return jsonify(payload), 200


@bp.route("/users", methods=["GET"])
@require_bearer
def list_users():
    return jsonify(accounts_service.list_users())


def _optional_int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return int(raw)


@bp.route("/books", methods=["GET"])
@require_bearer
def list_books():
    try:
        owner_id = _optional_int_arg("userId")
    except ValueError:
        return _error("userId must be an integer", 400)
    try:
        books = books_service.list_books_for_user(
            g.current_user,
            q=request.args.get("q"),
            owner_id=owner_id,
            sort=request.args.get("_sort"),
            order=request.args.get("_order", "asc"),
        )
    except BookValidationError as exc:
        return _error(str(exc), 400)
    return jsonify([book.as_dict() for book in books])


@bp.route("/books/<int:book_id>", methods=["GET"])
@require_bearer
def get_book(book_id: int):
    try:
        book = books_service.get_book(g.current_user, book_id)
    except BookNotFoundError as exc:
        return _error(str(exc), 404)
    except BookPermissionError as exc:
        return _error(str(exc), 403)
    return jsonify(book.as_dict())


@bp.route("/books", methods=["POST"])
@require_bearer
def create_book():
    try:
        book = books_service.create_book(g.current_user, _json_body())
    except BookValidationError as exc:
        return _error(str(exc), 400)
    return jsonify(book.as_dict()), 201


@bp.route("/books/<int:book_id>", methods=["PUT"])
@require_bearer
def update_book(book_id: int):
    try:
        book = books_service.update_book(g.current_user, book_id, _json_body())
    except BookNotFoundError as exc:
        return _error(str(exc), 404)
    except BookPermissionError as exc:
        return _error(str(exc), 403)
    except BookValidationError as exc:
        return _error(str(exc), 400)
    return jsonify(book.as_dict())


def register_api(app: Any, csrf: Any = None) -> None:
    if getattr(app, "_booknotes_api_bp", None):  # idempotent
        return
    if csrf is not None:
        csrf.exempt(bp)
    app.register_blueprint(bp, url_prefix=app_config.api_prefix())
    setattr(app, "_booknotes_api_bp", bp)
    LOG.debug("API blueprint registered")


__all__ = ["bp", "require_bearer", "register_api"]
