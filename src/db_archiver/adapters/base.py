"""Relational store protocol definition.

Defines the ``DatabaseClient`` Protocol that backup and restore code talks
to.  All methods are ``async def`` -- the library is async-first.
Parameters are bound positionally (``?`` placeholders).

Usage:
    from db_archiver.adapters.base import BoundStatement, DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.query("SELECT name FROM sqlite_master")
        await client.batch([
            BoundStatement("INSERT INTO t (a, b) VALUES (?, ?)", (1, "x")),
            BoundStatement("INSERT INTO t (a, b) VALUES (?, ?)", (2, "y")),
        ])
        await client.close()
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence


@dataclass(frozen=True)
class BoundStatement:
    """A SQL statement with positionally bound parameters.

    Example:
        stmt = BoundStatement('INSERT INTO "T" ("a") VALUES (?)', (1,))
    """

    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in generated SQL.

    Example:
        >>> quote_identifier("Orders")
        '"Orders"'

    Embedded double quotes are doubled.
    """
    return '"' + name.replace('"', '""') + '"'


class DatabaseClient(Protocol):
    """Relational store interface used by backup and restore.

    All methods are async -- callers must ``await`` every operation.
    ``supports_batch`` tells callers whether ``batch()`` runs its
    statements atomically; when it is ``False`` callers fall back to
    sequential ``execute()`` calls.
    """

    supports_batch: bool

    async def query(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict]:
        """Run a query and return rows as column-name dicts.

        Args:
            sql: SQL text with ``?`` placeholders.
            params: Positional parameters.

        Returns:
            List of dicts, one per row.  Empty list if no rows.
        """
        ...

    async def query_raw(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[list]:
        """Run a query and return rows as positional lists.

        Column order follows the select list exactly, which is what the
        backup writer relies on when it exports table data.
        """
        ...

    async def batch(self, statements: Sequence[BoundStatement]) -> list[int]:
        """Execute statements in order inside a single transaction.

        Args:
            statements: Statements to run.

        Returns:
            Affected row count per statement (``-1`` when unknown).

        Raises:
            Exception: The first store error; the transaction is rolled back.
        """
        ...

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a single statement (DDL or DML) and commit."""
        ...

    async def close(self) -> None:
        """Close the connection pool and clean up resources."""
        ...
