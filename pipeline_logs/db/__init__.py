"""Database connection and session management."""

from pipeline_logs.db.session import close_db, get_db, get_session_factory, init_db

__all__ = ["get_db", "init_db", "close_db", "get_session_factory"]
