"""
Database adapter

SQLite connection management (WAL mode).
"""

from adapters.db.sqlite_adapter import (
    SQLiteAdapter,
    create_connection,
    init_schema,
    is_lock_error,
)

__all__ = [
    "SQLiteAdapter",
    "create_connection",
    "init_schema",
    "is_lock_error",
]
