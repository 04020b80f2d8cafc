"""Async SQLite database adapter.

Provides ``AsyncSQLiteAdapter``, an async implementation of the
``DatabaseClient`` protocol using SQLAlchemy's async engine with the
``aiosqlite`` driver.

Statements are sent with ``exec_driver_sql`` so the driver's native
``?`` placeholders bind positionally.  The engine is configured so that
``BEGIN`` is emitted by SQLAlchemy rather than by the ``sqlite3`` module,
which makes DDL participate in transactions (``batch()`` is atomic for
``CREATE TABLE`` / ``CREATE INDEX`` too).

Usage:
    from db_archiver.adapters.sqlite import AsyncSQLiteAdapter

    adapter = AsyncSQLiteAdapter("sqlite:///data/main.db")
    rows = await adapter.query("SELECT name FROM sqlite_master")
    await adapter.close()
"""

import itertools
import logging
from typing import Any, Sequence

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from db_archiver.adapters.base import BoundStatement

logger = logging.getLogger(__name__)


def normalize_sqlite_url(database_url: str) -> str:
    """Normalize a SQLite URL to the ``sqlite+aiosqlite://`` scheme.

    Example:
        >>> normalize_sqlite_url("sqlite:///data/main.db")
        'sqlite+aiosqlite:///data/main.db'
    """
    url = database_url
    if url.startswith("sqlite://"):
        url = "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


def create_async_engine_sqlite(
    database_url: str, foreign_keys: bool = True, **kwargs: Any
) -> AsyncEngine:
    """Create an async SQLAlchemy engine for SQLite.

    Default settings:

    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``echo=False``.

    Args:
        database_url: URL with ``sqlite+aiosqlite://`` scheme.
        foreign_keys: Run ``PRAGMA foreign_keys=ON`` on every new connection.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Returns:
        Configured ``AsyncEngine``.
    """
    defaults: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    engine = create_async_engine(database_url, **merged)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy so DDL is transactional
        dbapi_connection.isolation_level = None
        if foreign_keys:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


class AsyncSQLiteAdapter:
    """Async SQLite implementation of the ``DatabaseClient`` protocol.

    Args:
        database_url: SQLite URL.  Accepts ``sqlite:///`` or
            ``sqlite+aiosqlite:///`` schemes; the URL is normalized to
            ``sqlite+aiosqlite://`` automatically.
        foreign_keys: Enforce foreign keys on every connection.
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine_sqlite``.

    Example:
        adapter = AsyncSQLiteAdapter("sqlite:///data/main.db")
        rows = await adapter.query_raw('SELECT "id" FROM "Customers"')
        await adapter.close()
    """

    supports_batch: bool = True

    def __init__(
        self,
        database_url: str,
        foreign_keys: bool = True,
        **engine_kwargs: Any,
    ) -> None:
        url = normalize_sqlite_url(database_url)
        self._engine: AsyncEngine = create_async_engine_sqlite(
            url, foreign_keys=foreign_keys, **engine_kwargs
        )

    # ------------------------------------------------------------------
    # Query Methods
    # ------------------------------------------------------------------

    async def query(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict]:
        """Run a query and return rows as dicts."""
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(sql, tuple(params or ()))
            col_names = list(result.keys())
            return [dict(zip(col_names, row)) for row in result.fetchall()]

    async def query_raw(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[list]:
        """Run a query and return rows as positional lists."""
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(sql, tuple(params or ()))
            return [list(row) for row in result.fetchall()]

    # ------------------------------------------------------------------
    # Write Methods
    # ------------------------------------------------------------------

    async def batch(self, statements: Sequence[BoundStatement]) -> list[int]:
        """Execute statements atomically inside one transaction.

        Consecutive statements with identical SQL are sent as a single
        ``executemany`` call.  Uses ``engine.begin()`` for automatic commit
        on success, rollback on error.

        Foreign key checks are deferred to commit, so rows of a
        self-referencing table may arrive in any order.
        """
        counts: list[int] = []
        if not statements:
            return counts

        async with self._engine.begin() as conn:
            # Reset by SQLite at the end of the transaction
            await conn.exec_driver_sql("PRAGMA defer_foreign_keys = ON")
            for sql, group in itertools.groupby(statements, key=lambda s: s.sql):
                params = [tuple(s.params) for s in group]
                if len(params) == 1:
                    result = await conn.exec_driver_sql(sql, params[0])
                    counts.append(result.rowcount)
                else:
                    result = await conn.exec_driver_sql(sql, params)
                    # executemany only reports a total
                    per_row = 1 if result.rowcount == len(params) else -1
                    counts.extend([per_row] * len(params))

        logger.debug("batch executed %d statement(s)", len(counts))
        return counts

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a single statement and commit."""
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql(sql, tuple(params or ()))

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()

    # ------------------------------------------------------------------
    # Connection Test
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """Test database connection health.

        Returns:
            ``True`` if ``SELECT 1`` succeeds.

        Raises:
            Exception: If the database connection fails.
        """
        rows = await self.query_raw("SELECT 1")
        return rows == [[1]]
