"""Application package root.

Flask application for books with nested section outlines, shared with
collaborators by email. ``booknotes.startup.create_app`` builds the app;
``booknotes.routes`` holds the REST API and HTML pages, and
``booknotes.services`` the workflows behind both.
"""

__all__ = [
]
