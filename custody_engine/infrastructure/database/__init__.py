"""Database infrastructure helpers (engine, sessions, migrations)."""

from .base import Base
from .session import build_engine, dispose_engine, get_engine, get_session_factory, init_db, session_scope

__all__ = [
    "Base",
    "build_engine",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
