"""Service exports."""

from .accounts_service import (
    AccountError,
    RegistrationError,
    LoginError,
)
from .books_service import (
    BookError,
    BookValidationError,
    BookNotFoundError,
    BookPermissionError,
)
from .section_tree import Section, SectionTreeError
from . import (
    accounts_service,
    api_client,
    auth_token_service,
    books_service,
    db_json,
    section_tree,
)

__all__ = [
    "AccountError",
    "RegistrationError",
    "LoginError",
    "BookError",
    "BookValidationError",
    "BookNotFoundError",
    "BookPermissionError",
    "Section",
    "SectionTreeError",
    "accounts_service",
    "api_client",
    "auth_token_service",
    "books_service",
    "db_json",
    "section_tree",
]
