"""Persistence layer: SQLAlchemy models, engine and query helpers."""

from .database import create_session_factory, get_session_factory, init_db, session_scope, unit_of_work

__all__ = [
    "create_session_factory",
    "get_session_factory",
    "init_db",
    "session_scope",
    "unit_of_work",
]
