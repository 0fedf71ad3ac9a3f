"""Tests for books_repo helpers using in-memory SQLite."""
from __future__ import annotations

import pytest

from booknotes.db.engine import init_engine_once, reset_for_tests
from booknotes.db.repositories import books_repo, users_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKNOTES_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def owners():
    ann = users_repo.create_user("ann@example.com", "h")
    bob = users_repo.create_user("bob@example.com", "h")
    return ann, bob


def test_create_book_persists_json_columns(owners):
    ann, _ = owners
    sections = [{"id": "1", "name": "Intro", "pageNo": 1, "sections": []}]

    book = books_repo.create_book("Notes", ann.id, ["bob@example.com"], sections)

    fetched = books_repo.get_book(book.id)
    assert fetched.as_dict() == {
        "id": book.id,
        "name": "Notes",
        "userId": ann.id,
        "collaborators": ["bob@example.com"],
        "sections": sections,
    }


def test_list_books_visible_to_owner_and_collaborator_only(owners):
    ann, bob = owners
    carol = users_repo.create_user("carol@example.com", "h")
    shared = books_repo.create_book("Shared", ann.id, ["bob@example.com"], [])
    private = books_repo.create_book("Private", ann.id, [], [])

    assert [b.id for b in books_repo.list_books_visible_to(ann.id, "ann@example.com")] == [shared.id, private.id]
    assert [b.id for b in books_repo.list_books_visible_to(bob.id, "bob@example.com")] == [shared.id]
    assert books_repo.list_books_visible_to(carol.id, "carol@example.com") == []


def test_replace_book_overwrites_document_but_not_owner(owners):
    ann, _ = owners
    book = books_repo.create_book("Draft", ann.id, [], [{"id": "1", "name": "a", "pageNo": "", "sections": []}])

    updated = books_repo.replace_book(book.id, name="Final", collaborators=["bob@example.com"], sections=[])

    assert updated is not None
    assert updated.name == "Final"
    assert updated.user_id == ann.id
    assert books_repo.get_book(book.id).sections == []
    assert books_repo.get_book(book.id).collaborators == ["bob@example.com"]


def test_replace_missing_book_returns_none():
    assert books_repo.replace_book(999, name="x", collaborators=[], sections=[]) is None
    assert books_repo.count_books() == 0
