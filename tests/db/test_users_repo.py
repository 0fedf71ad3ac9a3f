"""Tests for users_repo helpers using in-memory SQLite."""
from __future__ import annotations

import pytest

from booknotes.db.engine import init_engine_once, reset_for_tests
from booknotes.db.repositories import users_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKNOTES_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def test_create_user_assigns_id_and_round_trips_by_email():
    user = users_repo.create_user("reader@example.com", "hash-1", "Ann", "Reader")

    assert user.id is not None
    fetched = users_repo.get_user_by_email("reader@example.com")
    assert fetched is not None
    assert fetched.id == user.id
    assert fetched.as_dict() == {
        "id": user.id,
        "email": "reader@example.com",
        "firstName": "Ann",
        "lastName": "Reader",
    }


def test_create_user_duplicate_email_raises():
    users_repo.create_user("reader@example.com", "hash-1")

    with pytest.raises(users_repo.UserExistsError):
        users_repo.create_user("reader@example.com", "hash-2")
    assert users_repo.count_users() == 1


def test_create_user_keeps_explicit_id():
    user = users_repo.create_user("imported@example.com", "hash", user_id=42)

    assert user.id == 42
    assert users_repo.get_user(42).email == "imported@example.com"


def test_existing_emails_returns_only_registered_subset():
    users_repo.create_user("a@example.com", "h")
    users_repo.create_user("b@example.com", "h")

    found = users_repo.existing_emails(["a@example.com", "nobody@example.com", ""])

    assert found == {"a@example.com"}
    assert users_repo.existing_emails([]) == set()


def test_list_users_ordered_by_id():
    users_repo.create_user("z@example.com", "h")
    users_repo.create_user("a@example.com", "h")

    assert [u.email for u in users_repo.list_users()] == ["z@example.com", "a@example.com"]
