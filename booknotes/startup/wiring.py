"""Application initialization / wiring.

Orchestrates: Flask app creation, CSRF protection, DB init, route
registration and the optional db.json seed.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask
from flask_wtf.csrf import CSRFProtect

from booknotes import config as app_config
from booknotes.db import init_engine_once
from booknotes.routes.inject import register_all as register_routes
from booknotes.services import db_json
from booknotes.utils.logging import get_logger

LOG = get_logger("booknotes.startup")

csrf = CSRFProtect()


def _maybe_seed() -> None:
    path = app_config.seed_path()
    if not path:
        return
    if db_json.seed_if_empty(path):
        LOG.info("Database seeded from %s", path)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    csrf.init_app(app)
    register_routes(app, csrf=csrf)
    LOG.debug("Routes registered (api + web + health)")
    _maybe_seed()
    LOG.info("App startup wiring complete %s", app_config.summarize_runtime_config())


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask("booknotes")
    app.config.update(
        SECRET_KEY=app_config.secret_key(),
        WTF_CSRF_ENABLED=app_config.csrf_enabled(),
    )
    if config_overrides:
        app.config.update(config_overrides)
    app.json.sort_keys = False
    init_app(app)
    return app


__all__ = ["init_app", "create_app", "csrf"]
