"""Database engine, sessions and time helpers."""

from .session import Base, SessionLocal, build_engine, engine, get_db
from .time import as_utc, utcnow

__all__ = ["Base", "SessionLocal", "as_utc", "build_engine", "engine", "get_db", "utcnow"]
