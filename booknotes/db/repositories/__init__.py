"""Repository modules (one per table family)."""
from . import books_repo, users_repo

__all__ = ["books_repo", "users_repo"]
