"""ORM models aggregate exports."""
from .booknotes import (  # noqa: F401
    Base,
    Book,
    User,
)

__all__ = [
    "Base",
    "Book",
    "User",
]
