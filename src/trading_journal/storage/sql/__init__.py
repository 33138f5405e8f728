"""SQLAlchemy-backed trade store."""

from .connection import create_all, create_engine, create_session_factory
from .repos import SqlTradeStore

__all__ = ["SqlTradeStore", "create_all", "create_engine", "create_session_factory"]
