"""Recreate one table and load its rows.

Usage:
    from db_archiver.restore.materializer import materialize_table

    result = await materialize_table(adapter, metadata.tables["Orders"], rows)
    # TableRestoreResult(name="Orders", indexes=1, rows=2)
"""

import logging
from typing import Any, Sequence

from db_archiver.adapters.base import BoundStatement, DatabaseClient, quote_identifier
from db_archiver.errors import MaterializationError
from db_archiver.restore.models import TableRestoreResult
from db_archiver.schema.models import TableDescriptor

logger = logging.getLogger(__name__)


def build_insert_sql(table: TableDescriptor) -> str:
    """Positional INSERT for ``table`` with its columns in declaration order.

    Example:
        >>> build_insert_sql(TableDescriptor(name="T", sql="", columns=["a", "b"]))
        'INSERT INTO "T" ("a", "b") VALUES (?, ?)'
    """
    columns = ", ".join(quote_identifier(c) for c in table.columns)
    placeholders = ", ".join("?" for _ in table.columns)
    return f"INSERT INTO {quote_identifier(table.name)} ({columns}) VALUES ({placeholders})"


async def _run_statements(client: DatabaseClient, statements: list[BoundStatement]) -> None:
    if client.supports_batch:
        await client.batch(statements)
        return
    for statement in statements:
        await client.execute(statement.sql, statement.params)


def _check_rows(table: TableDescriptor, rows: Sequence[Sequence[Any]]) -> None:
    width = len(table.columns)
    for position, row in enumerate(rows):
        if not isinstance(row, (list, tuple)):
            raise MaterializationError(
                table.name,
                ValueError(f"row {position} is {type(row).__name__}, expected a list"),
            )
        if len(row) != width:
            raise MaterializationError(
                table.name,
                ValueError(f"row {position} has {len(row)} value(s), expected {width}"),
            )


async def materialize_table(
    client: DatabaseClient,
    table: TableDescriptor,
    rows: Sequence[Sequence[Any]],
) -> TableRestoreResult:
    """Create ``table`` and its indexes, then insert ``rows``.

    Rows are bound positionally against ``table.columns`` and checked before
    any DDL runs.  Nothing is rolled back on failure; the destination is left
    as it is for inspection.

    Raises:
        MaterializationError: If the DDL or the insert batch fails, or a row
            is not a list with one value per column.
    """
    _check_rows(table, rows)

    ddl = [table.sql, *(index.sql for index in table.indexes)]
    try:
        await _run_statements(client, [BoundStatement(sql) for sql in ddl])
    except Exception as e:
        raise MaterializationError(table.name, e) from e

    result = TableRestoreResult(name=table.name, indexes=len(table.indexes), rows=len(rows))
    if not rows:
        logger.debug("restored %s: no rows", table.name)
        return result

    insert_sql = build_insert_sql(table)
    try:
        await _run_statements(
            client, [BoundStatement(insert_sql, tuple(row)) for row in rows]
        )
    except Exception as e:
        raise MaterializationError(table.name, e) from e

    logger.debug("restored %s: %d row(s)", table.name, len(rows))
    return result
