#!/usr/bin/env python3
"""Booknotes server wrapper.

Responsibilities:
    1. Build the Flask app through ``booknotes.startup.create_app``.
    2. Expose it as ``application`` for production WSGI servers
       (``gunicorn entrypoint.serve:application``).
    3. Run the Flask development server when executed directly.
"""

from __future__ import annotations

import argparse
import os
import sys

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from booknotes import config as app_config  # noqa: E402
from booknotes.startup import create_app  # noqa: E402

_APP_SINGLETON = None  # module-level cache


def main():
    """Create and return the Flask application (idempotent)."""
    global _APP_SINGLETON
    if _APP_SINGLETON is not None:
        return _APP_SINGLETON
    _APP_SINGLETON = create_app()
    print("[SERVE] App wiring complete.")
    return _APP_SINGLETON


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the booknotes development server")
    parser.add_argument("--host", default=app_config.server_host(), help="bind address")
    parser.add_argument("--port", type=int, default=app_config.server_port(), help="listen port")
    parser.add_argument("--debug", action="store_true", help="enable Flask debug mode")
    return parser.parse_args(argv)


application = main()


if __name__ == "__main__":  # Development server only (Flask built-in)
    args = _parse_args()
    debug = args.debug or app_config.env_bool("BOOKNOTES_DEBUG")
    application.run(host=args.host, port=args.port, debug=debug)
