"""Tests for bearer token issue/decode."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from flask import Flask

from booknotes.services import auth_token_service


@pytest.fixture
def flask_app():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "test-secret"
    return app


@pytest.fixture(autouse=True)
def app_context(flask_app):
    with flask_app.app_context():
        yield


def test_issue_and_decode_round_trip_normalizes_email():
    token = auth_token_service.issue_token(user_id=5, email=" Reader@Example.com ")

    decoded = auth_token_service.decode_token(token)

    assert decoded["sub"] == 5
    assert decoded["email"] == "reader@example.com"
    assert "issued_at" in decoded


def test_decode_rejects_tampered_token():
    token = auth_token_service.issue_token(user_id=1, email="reader@example.com")
    tampered = token[:-1] + ("A" if token[-1] != "A" else "B")

    with pytest.raises(auth_token_service.TokenDecodeError):
        auth_token_service.decode_token(tampered)


def test_decode_rejects_token_signed_with_other_secret():
    other = Flask("other")
    other.config["SECRET_KEY"] = "another-secret"
    with other.app_context():
        foreign = auth_token_service.issue_token(user_id=1, email="reader@example.com")

    with pytest.raises(auth_token_service.TokenDecodeError):
        auth_token_service.decode_token(foreign)


def test_expired_token_rejected(monkeypatch):
    token = auth_token_service.issue_token(user_id=1, email="reader@example.com")
    later = datetime.now(timezone.utc) + timedelta(hours=2)
    monkeypatch.setattr(auth_token_service, "_utcnow", lambda: later)

    with pytest.raises(auth_token_service.TokenExpiredError):
        auth_token_service.decode_token(token)


def test_zero_ttl_disables_expiry(monkeypatch):
    monkeypatch.setenv("BOOKNOTES_TOKEN_TTL_SECONDS", "0")
    token = auth_token_service.issue_token(user_id=1, email="reader@example.com")
    much_later = datetime.now(timezone.utc) + timedelta(days=365)
    monkeypatch.setattr(auth_token_service, "_utcnow", lambda: much_later)

    assert auth_token_service.decode_token(token)["sub"] == 1


@pytest.mark.parametrize("token", ["", None])
def test_empty_token_rejected(token):
    with pytest.raises(auth_token_service.TokenDecodeError):
        auth_token_service.decode_token(token)


def test_missing_secret_key_raises(flask_app):
    flask_app.config["SECRET_KEY"] = None

    with pytest.raises(auth_token_service.SecretKeyUnavailableError):
        auth_token_service.issue_token(user_id=1, email="reader@example.com")
