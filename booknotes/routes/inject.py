"""Route registration.

Called from startup wiring; every helper is idempotent so calling
``register_all`` twice on one app is harmless.
"""
from __future__ import annotations

from typing import Any

from .api import register_api
from .health import register_health
from .web import register_web


def register_all(app: Any, csrf: Any = None) -> None:
    register_api(app, csrf=csrf)
    register_web(app)
    register_health(app)


__all__ = ["register_all"]
