"""Database package."""

from .engine import build_engine, build_session_factory, session_scope, check_connection
from .schema import init_schema

__all__ = [
    "build_engine",
    "build_session_factory",
    "session_scope",
    "check_connection",
    "init_schema",
]
