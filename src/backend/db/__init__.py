"""Database module."""

from db.session import atomic, close_db, get_db, get_engine, init_db

__all__ = ["atomic", "get_db", "get_engine", "init_db", "close_db"]
