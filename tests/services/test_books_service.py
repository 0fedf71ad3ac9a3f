"""Tests for book visibility, creation and saves."""
from __future__ import annotations

import pytest

from booknotes.db.engine import init_engine_once, reset_for_tests
from booknotes.db.repositories import books_repo, users_repo
from booknotes.services import books_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKNOTES_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def people():
    ann = users_repo.create_user("ann@example.com", "h", "Ann")
    bob = users_repo.create_user("bob@example.com", "h", "Bob")
    eve = users_repo.create_user("eve@example.com", "h", "Eve")
    return ann, bob, eve


def _node(node_id, name="", page="", children=None):
    return {"id": node_id, "name": name, "pageNo": page, "sections": children or []}


def test_create_book_makes_caller_owner_and_ignores_submitted_user_id(people):
    ann, bob, _ = people

    book = books_service.create_book(ann, {"name": " Notes ", "userId": bob.id, "collaborators": ["BOB@example.com"]})

    assert book.user_id == ann.id
    assert book.name == "Notes"
    assert book.collaborators == ["bob@example.com"]
    assert book.sections == []


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"name": "  "}, "Book name is required"),
        ({"name": "x", "collaborators": "bob@example.com"}, "Collaborators must be a list of emails"),
        ({"name": "x", "collaborators": ["ann@example.com"]}, "The owner cannot be a collaborator"),
        ({"name": "x", "collaborators": ["ghost@example.com"]}, "Unknown collaborator: ghost@example.com"),
        ({"name": "x", "sections": [{"name": "no id"}]}, "section id is required"),
    ],
)
def test_create_book_validation(people, payload, message):
    ann, _, _ = people

    with pytest.raises(books_service.BookValidationError, match=message):
        books_service.create_book(ann, payload)


def test_outsider_never_sees_book(people):
    ann, bob, eve = people
    shared = books_service.create_book(ann, {"name": "Shared", "collaborators": ["bob@example.com"]})
    books_service.create_book(eve, {"name": "Eve's"})

    assert [b.id for b in books_service.list_books_for_user(bob)] == [shared.id]
    assert shared.id not in [b.id for b in books_service.list_books_for_user(eve)]
    with pytest.raises(books_service.BookPermissionError):
        books_service.get_book(eve, shared.id)


def test_get_missing_book_raises_not_found(people):
    ann, _, _ = people

    with pytest.raises(books_service.BookNotFoundError):
        books_service.get_book(ann, 404)


def test_list_filters_and_sorting(people):
    ann, bob, _ = people
    books_service.create_book(ann, {"name": "beta"})
    books_service.create_book(ann, {"name": "Alpha"})
    books_service.create_book(bob, {"name": "gamma", "collaborators": ["ann@example.com"]})

    by_name = books_service.list_books_for_user(ann, sort="name")
    assert [b.name for b in by_name] == ["Alpha", "beta", "gamma"]
    desc = books_service.list_books_for_user(ann, sort="id", order="desc")
    assert [b.name for b in desc] == ["gamma", "Alpha", "beta"]
    assert [b.name for b in books_service.list_books_for_user(ann, q="ALP")] == ["Alpha"]
    assert [b.name for b in books_service.list_books_for_user(ann, owner_id=bob.id)] == ["gamma"]
    with pytest.raises(books_service.BookValidationError, match="Cannot sort by userId"):
        books_service.list_books_for_user(ann, sort="userId")


def test_update_prunes_exactly_one_empty_leaf(people):
    ann, _, _ = people
    book = books_service.create_book(ann, {"name": "Outline"})
    sections = [
        _node("1", "Part", 1, [_node("2", "A", 2), _node("3"), _node("4", "B", "iv")]),
        _node("5", "Appendix", 99),
    ]

    saved = books_service.update_book(ann, book.id, {"name": "Outline", "collaborators": [], "sections": sections})

    assert saved.sections == [
        _node("1", "Part", 1, [_node("2", "A", 2), _node("4", "B", "iv")]),
        _node("5", "Appendix", 99),
    ]
    assert books_repo.get_book(book.id).sections == saved.sections


def test_collaborator_can_edit_sections_but_not_collaborators(people):
    ann, bob, _ = people
    book = books_service.create_book(ann, {"name": "Shared", "collaborators": ["bob@example.com"]})

    saved = books_service.update_book(
        bob,
        book.id,
        {"name": "Shared v2", "collaborators": ["BOB@example.com"], "sections": [_node("1", "By Bob", 3)]},
    )
    assert saved.name == "Shared v2"
    assert saved.user_id == ann.id
    assert saved.sections == [_node("1", "By Bob", 3)]

    with pytest.raises(books_service.BookPermissionError, match="Only the author can change collaborators"):
        books_service.update_book(bob, book.id, {"name": "Shared", "collaborators": [], "sections": []})


def test_update_without_collaborators_key_keeps_current(people):
    ann, _, _ = people
    book = books_service.create_book(ann, {"name": "Shared", "collaborators": ["bob@example.com"]})

    saved = books_service.update_book(ann, book.id, {"name": "Renamed", "sections": []})

    assert saved.collaborators == ["bob@example.com"]


def test_outsider_cannot_update(people):
    ann, _, eve = people
    book = books_service.create_book(ann, {"name": "Private"})

    with pytest.raises(books_service.BookPermissionError):
        books_service.update_book(eve, book.id, {"name": "Mine now"})
    assert books_repo.get_book(book.id).name == "Private"


@pytest.fixture
def stale_book(people):
    ann, _, _ = people
    # Rows written before collaborator checks existed can name unregistered emails.
    return books_repo.create_book("Legacy", ann.id, ["bob@example.com", "gone@example.com"], [])


def test_collaborator_saves_book_with_stale_collaborator(people, stale_book):
    _, bob, _ = people
    payload = {"name": "Legacy", "collaborators": ["bob@example.com", "gone@example.com"], "sections": [_node("1", "Intro", 1)]}

    saved = books_service.update_book(bob, stale_book.id, payload)

    assert saved.sections == [_node("1", "Intro", 1)]
    assert saved.collaborators == ["bob@example.com", "gone@example.com"]


def test_owner_echo_save_keeps_stale_collaborator(people, stale_book):
    ann, _, _ = people

    saved = books_service.update_book(ann, stale_book.id, stale_book.as_dict())

    assert saved.collaborators == ["bob@example.com", "gone@example.com"]


def test_owner_may_drop_stale_collaborator(people, stale_book):
    ann, _, _ = people

    saved = books_service.update_book(ann, stale_book.id, {"collaborators": ["bob@example.com"]})

    assert saved.collaborators == ["bob@example.com"]


def test_newly_added_collaborator_must_still_be_registered(people, stale_book):
    ann, _, _ = people
    payload = {"collaborators": ["bob@example.com", "gone@example.com", "ghost@example.com"]}

    with pytest.raises(books_service.BookValidationError, match="Unknown collaborator: ghost@example.com"):
        books_service.update_book(ann, stale_book.id, payload)
