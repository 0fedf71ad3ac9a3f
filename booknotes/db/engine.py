"""Database engine & session management."""
from __future__ import annotations

import os, threading
try:  # POSIX file locking for multi-worker schema creation
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - non-POSIX platforms skip the lock
    fcntl = None  # type: ignore
from contextlib import contextmanager
from typing import Optional, Iterator, Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session as SASession

from booknotes.utils.logging import get_logger
from booknotes.db.models import Base
from booknotes import config as app_config

_engine: Optional[Engine] = None
_SessionFactory: Optional[Callable[[], SASession]] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()

_MEMORY_PATH = ":memory:"

LOG = get_logger("booknotes.db")


def init_engine_once() -> None:
    global _engine, _SessionFactory, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        db_path = app_config.get_db_path()
        LOG.info("Initializing booknotes database engine at %s", db_path)
        if db_path == _MEMORY_PATH:
            _engine = create_engine(f"sqlite:///{_MEMORY_PATH}", future=True)
        else:
            parent_dir = os.path.dirname(os.path.abspath(db_path)) or "."
            os.makedirs(parent_dir, exist_ok=True)
            if not os.access(parent_dir, os.W_OK):
                raise RuntimeError(f"booknotes DB directory not writable: {parent_dir}")
            _engine = create_engine(f"sqlite:///{db_path}", future=True)
        _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False, class_=SASession)
        _scoped = scoped_session(_SessionFactory)
        if db_path == _MEMORY_PATH or fcntl is None:
            _safe_create_schema()
        else:
            # Several workers may start at once; serialize the DDL.
            lock_path = os.path.join(os.path.dirname(os.path.abspath(db_path)), ".booknotes_schema.lock")
            with open(lock_path, "w") as lf:
                try:
                    fcntl.flock(lf, fcntl.LOCK_EX)
                    _safe_create_schema()
                finally:
                    fcntl.flock(lf, fcntl.LOCK_UN)
        LOG.debug("booknotes schema ready")


def _safe_create_schema():
    """Run metadata.create_all, tolerating a concurrent creator.

    SQLite may raise OperationalError 'table X already exists' when another
    process emits the same DDL between the existence check and CREATE.
    """
    from sqlalchemy.exc import OperationalError
    if _engine is None:
        return
    try:
        Base.metadata.create_all(_engine)  # type: ignore[arg-type]
    except OperationalError as e:  # pragma: no cover - concurrency edge
        if "already exists" in str(e).lower():
            LOG.warning("Schema create encountered existing tables (benign race)")
        else:
            raise


def get_engine() -> Engine:
    if _engine is None:
        init_engine_once()
    return _engine  # type: ignore[return-value]


def get_session_factory() -> Callable[[], SASession]:
    if _SessionFactory is None:
        init_engine_once()
    return _SessionFactory  # type: ignore[return-value]


def get_scoped_session() -> scoped_session:
    if _scoped is None:
        init_engine_once()
    if _scoped is None:
        raise RuntimeError("Scoped session could not be initialized.")
    return _scoped  # type: ignore[return-value]


@contextmanager
def app_session() -> Iterator[SASession]:
    scoped = get_scoped_session()
    sess = scoped()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


def reset_for_tests(drop: bool = False) -> None:
    global _engine, _SessionFactory, _scoped
    with _LOCK:
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None and drop:
            try:
                Base.metadata.drop_all(_engine)
            except Exception:
                LOG.warning("Failed dropping tables during reset", exc_info=True)
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionFactory = None
        _scoped = None


__all__ = [
    "init_engine_once",
    "get_engine",
    "get_session_factory",
    "get_scoped_session",
    "app_session",
    "reset_for_tests",
]
