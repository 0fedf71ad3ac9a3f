"""Tests for registration, login and token resolution."""
from __future__ import annotations

import pytest
from flask import Flask

from booknotes.db.engine import init_engine_once, reset_for_tests
from booknotes.db.repositories import users_repo
from booknotes.services import accounts_service, auth_token_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKNOTES_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture(autouse=True)
def app_context():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "accounts-secret"
    with app.app_context():
        yield


def _register(email="reader@example.com", password="secret", **extra):
    payload = {"email": email, "password": password, "firstName": "Ann", "lastName": "Reader"}
    payload.update(extra)
    return accounts_service.register(payload)


def test_register_returns_token_and_public_user():
    result = _register(email=" Reader@Example.com ")

    assert set(result) == {"accessToken", "user"}
    assert result["user"]["email"] == "reader@example.com"
    assert result["user"]["firstName"] == "Ann"
    assert "password" not in result["user"]
    assert accounts_service.resolve_token(result["accessToken"]).id == result["user"]["id"]


def test_register_stores_hash_not_plaintext():
    result = _register()

    stored = users_repo.get_user(result["user"]["id"])
    assert stored.password_hash != "secret"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"email": "", "password": "secret"}, accounts_service.MSG_REQUIRED),
        ({"email": "reader@example.com"}, accounts_service.MSG_REQUIRED),
        ({"email": "not-an-email", "password": "secret"}, accounts_service.MSG_EMAIL_FORMAT),
        ({"email": "reader@example.com", "password": "abc"}, accounts_service.MSG_PASSWORD_SHORT),
    ],
)
def test_register_validation_messages(payload, message):
    with pytest.raises(accounts_service.RegistrationError) as excinfo:
        accounts_service.register(payload)

    assert str(excinfo.value) == message


def test_register_duplicate_email_case_insensitive():
    _register()

    with pytest.raises(accounts_service.RegistrationError, match="Email already exists"):
        _register(email="READER@example.com")


def test_min_password_length_configurable(monkeypatch):
    monkeypatch.setenv("BOOKNOTES_MIN_PASSWORD_LENGTH", "8")

    with pytest.raises(accounts_service.RegistrationError):
        _register(password="secret")


def test_login_success_and_failures():
    _register()

    ok = accounts_service.login({"email": "Reader@example.com", "password": "secret"})
    assert ok["user"]["email"] == "reader@example.com"

    with pytest.raises(accounts_service.LoginError, match="Incorrect password"):
        accounts_service.login({"email": "reader@example.com", "password": "wrong"})
    with pytest.raises(accounts_service.LoginError, match="Cannot find user"):
        accounts_service.login({"email": "ghost@example.com", "password": "secret"})
    with pytest.raises(accounts_service.LoginError, match="Email and password are required"):
        accounts_service.login({"email": "reader@example.com"})


def test_login_with_foreign_hash_is_rejected_not_crashing():
    users_repo.create_user("legacy@example.com", "$2a$10$abcdefghijklmnopqrstuv")

    with pytest.raises(accounts_service.LoginError):
        accounts_service.login({"email": "legacy@example.com", "password": "secret"})


def test_resolve_token_for_deleted_user_fails():
    token = auth_token_service.issue_token(user_id=999, email="ghost@example.com")

    with pytest.raises(auth_token_service.TokenDecodeError):
        accounts_service.resolve_token(token)


def test_update_profile_snapshot_leaves_stored_account_untouched():
    result = _register()
    snapshot = result["user"]

    updated = accounts_service.update_profile_snapshot(snapshot, first_name=" Annie ", last_name=None)

    assert updated["firstName"] == "Annie"
    assert updated["lastName"] == ""
    assert snapshot["firstName"] == "Ann"
    assert users_repo.get_user(snapshot["id"]).first_name == "Ann"


def test_list_users_has_no_password_field():
    _register()
    _register(email="other@example.com")

    users = accounts_service.list_users()

    assert [u["email"] for u in users] == ["reader@example.com", "other@example.com"]
    assert all(set(u) == {"id", "email", "firstName", "lastName"} for u in users)
