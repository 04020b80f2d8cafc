"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async SQLite adapter.

Usage:
    from db_archiver.adapters import DatabaseClient, AsyncSQLiteAdapter
"""

from db_archiver.adapters.base import BoundStatement, DatabaseClient, quote_identifier
from db_archiver.adapters.sqlite import AsyncSQLiteAdapter

__all__ = [
    "DatabaseClient",
    "BoundStatement",
    "AsyncSQLiteAdapter",
    "quote_identifier",
]
