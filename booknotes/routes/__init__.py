"""HTTP surfaces: REST API, HTML pages and health check."""

from .inject import register_all

__all__ = ["register_all"]
