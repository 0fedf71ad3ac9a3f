"""HTML pages: login, signup, books list, book editor and account page.

Routes:
    /                  -> redirect by session presence
    /login, /signup    -> guest pages (signed-in visitors go to /books)
    /logout            -> POST, clears the session
    /books             -> list + add-book form            (private)
    /books/<id>        -> outline viewer / editor         (private)
    /manage-account    -> session snapshot name editor    (private)

The book editor keeps its in-progress tree in the form itself: every
"Add Section" / "Add Subsection" click posts the whole tree back and
re-renders it with one more empty node. Nothing is stored until "Save".
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import (
    Blueprint,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from booknotes.db.models import Book, User
from booknotes.services import accounts_service, books_service
from booknotes.services.accounts_service import AccountError
from booknotes.services.books_service import (
    BookError,
    BookNotFoundError,
    BookPermissionError,
)
from booknotes.services.section_tree import (
    SectionTreeError,
    append_section,
    prune_empty_sections,
    sections_from_form,
    sections_to_payload,
)
from booknotes.utils.identity import (
    clear_identity_session,
    get_session_token,
    get_session_user,
    store_session,
    update_session_user,
)
from booknotes.utils.logging import get_logger

from .guards import guest_only, private_route, root_redirect, sanitize_next

LOG = get_logger("booknotes.web")

bp = Blueprint("web", __name__)

SAVED_MESSAGE = "Book details saved successfully!"


def _render_private(template_name: str, **context: Any):
    """Render a page with the signed-in header."""
    snapshot = get_session_user() or g.current_user.as_dict()
    return render_template(template_name, current_user=snapshot, **context)


def _collaborator_options(account: User) -> List[str]:
    own = (account.email or "").lower()
    return [u["email"] for u in accounts_service.list_users() if u["email"].lower() != own]


@bp.route("/", methods=["GET"])
def index():
    return root_redirect()


@bp.route("/login", methods=["GET", "POST"])
@guest_only
def login():
    next_url = sanitize_next(request.values.get("next"))
    email_value = request.form.get("email", "")
    error_message: Optional[str] = None
    if request.method == "POST":
        try:
            payload = accounts_service.login(
                {"email": email_value, "password": request.form.get("password", "")}
            )
        except AccountError as exc:
            error_message = str(exc)
        else:
            store_session(payload["accessToken"], payload["user"])
            return redirect(next_url)
    return render_template(
        "login.html",
        email_value=email_value,
        next_url=next_url,
        error_message=error_message,
    )


@bp.route("/signup", methods=["GET", "POST"])
@guest_only
def signup():
    form_values = {
        "firstName": request.form.get("firstName", ""),
        "lastName": request.form.get("lastName", ""),
        "email": request.form.get("email", ""),
    }
    error_message: Optional[str] = None
    if request.method == "POST":
        try:
            accounts_service.register({**form_values, "password": request.form.get("password", "")})
        except AccountError as exc:
            error_message = str(exc)
        else:
            flash("Account created. You can log in now.", "success")
            return redirect(url_for("web.login"))
    return render_template("signup.html", form_values=form_values, error_message=error_message)


@bp.route("/logout", methods=["POST"])
def logout():
    if get_session_token():
        LOG.info("session closed")
    clear_identity_session()
    return redirect(url_for("web.login"))


@bp.route("/books", methods=["GET", "POST"])
@private_route
def books():
    account: User = g.current_user
    error_message: Optional[str] = None
    book_name = ""
    selected: List[str] = []
    if request.method == "POST":
        book_name = request.form.get("name", "")
        selected = request.form.getlist("collaborators")
        try:
            books_service.create_book(
                account,
                {"name": book_name, "collaborators": selected, "sections": []},
            )
        except BookError as exc:
            error_message = str(exc)
        else:
            return redirect(url_for("web.books"))
    return _render_private(
        "books.html",
        books=[book.as_dict() for book in books_service.list_books_for_user(account)],
        collaborator_options=_collaborator_options(account),
        book_name=book_name,
        selected_collaborators=selected,
        error_message=error_message,
    )


def _render_book(
    book: Book,
    account: User,
    *,
    editing: bool,
    sections: List[Dict[str, Any]],
    collaborators: List[str],
    error_message: Optional[str] = None,
    status: int = 200,
):
    body = _render_private(
        "book_detail.html",
        book=book.as_dict(),
        is_author=books_service.is_owner(account, book),
        editing=editing,
        sections=sections,
        collaborators=collaborators,
        collaborator_options=_collaborator_options(account),
        error_message=error_message,
    )
    return body, status


@bp.route("/books/<int:book_id>", methods=["GET", "POST"])
@private_route
def book_detail(book_id: int):
    account: User = g.current_user
    try:
        book = books_service.get_book(account, book_id)
    except (BookNotFoundError, BookPermissionError) as exc:
        flash(str(exc), "error")
        return redirect(url_for("web.books"))

    is_author = books_service.is_owner(account, book)
    if request.method == "GET":
        return _render_book(
            book,
            account,
            editing=bool(request.args.get("edit")),
            sections=book.sections,
            collaborators=book.collaborators,
        )

    action, _, target_path = (request.form.get("action") or "save").partition(":")
    tree = sections_from_form(request.form)
    collaborators = request.form.getlist("collaborators") if is_author else book.collaborators

    if action in {"add_section", "add_subsection"}:
        if not is_author:
            return _render_book(
                book,
                account,
                editing=True,
                sections=sections_to_payload(tree),
                collaborators=collaborators,
                error_message="Only the author can add sections.",
                status=403,
            )
        try:
            append_section(tree, target_path if action == "add_subsection" else "")
        except SectionTreeError as exc:
            return _render_book(
                book,
                account,
                editing=True,
                sections=sections_to_payload(tree),
                collaborators=collaborators,
                error_message=str(exc),
                status=400,
            )
        return _render_book(
            book,
            account,
            editing=True,
            sections=sections_to_payload(tree),
            collaborators=collaborators,
        )

    payload = {
        "name": book.name,
        "collaborators": collaborators,
        "sections": sections_to_payload(prune_empty_sections(tree)),
    }
    try:
        books_service.update_book(account, book.id, payload)
    except BookError as exc:
        LOG.info("book save rejected book_id=%s error=%s", book.id, exc)
        return _render_book(
            book,
            account,
            editing=True,
            sections=sections_to_payload(tree),
            collaborators=collaborators,
            error_message=str(exc),
            status=403 if isinstance(exc, BookPermissionError) else 400,
        )
    flash(SAVED_MESSAGE, "success")
    return redirect(url_for("web.books"))


@bp.route("/manage-account", methods=["GET", "POST"])
@private_route
def manage_account():
    snapshot = get_session_user() or g.current_user.as_dict()
    success_message: Optional[str] = None
    if request.method == "POST":
        snapshot = accounts_service.update_profile_snapshot(
            snapshot,
            first_name=request.form.get("firstName"),
            last_name=request.form.get("lastName"),
        )
        update_session_user(snapshot)
        success_message = "Account details updated successfully!"
    return _render_private(
        "manage_account.html",
        form_values=snapshot,
        success_message=success_message,
    )


def register_web(app: Any) -> None:
    if getattr(app, "_booknotes_web_bp", None):  # idempotent
        return
    app.register_blueprint(bp)
    setattr(app, "_booknotes_web_bp", bp)
    LOG.debug("web blueprint registered")


__all__ = ["bp", "register_web", "SAVED_MESSAGE"]
