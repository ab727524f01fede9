"""Database session and repository utilities."""

from propertyxchange.db.session import (
    dispose_engine,
    get_db_session,
    get_engine,
    get_sessionmaker,
    session_context,
)

__all__ = [
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "get_sessionmaker",
    "session_context",
]
