"""SQLite schema introspection via ``sqlite_master`` and table pragmas.

This module queries the live database to extract what a backup needs:
- Tables and their DDL
- Indexes and their DDL
- Column names, in declaration order
- Foreign key edges (used only to compute the load order)

Engine tables (``sqlite_*``) and platform-reserved tables (``_cf_*``) are
never included.
"""

import logging

from db_archiver.adapters.base import DatabaseClient
from db_archiver.schema.models import (
    ForeignKeyEdge,
    IndexDescriptor,
    IntrospectedTable,
    TableDescriptor,
)

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects a SQLite-family database through a ``DatabaseClient``.

    Usage:
        introspector = SchemaIntrospector(adapter)

        # Tables with DDL and indexes only (cheap; used for conflict checks)
        tables = await introspector.get_table_list()

        # Tables with columns and foreign keys
        detailed = await introspector.introspect()
    """

    # Name prefixes excluded from introspection (engine and platform tables)
    EXCLUDED_PREFIXES: tuple[str, ...] = ("sqlite_", "_cf_")

    def __init__(
        self,
        client: DatabaseClient,
        excluded_prefixes: tuple[str, ...] | None = None,
    ) -> None:
        """Initialize with a database client.

        Args:
            client: Adapter implementing ``DatabaseClient``.
            excluded_prefixes: Table/index name prefixes to skip.  Defaults
                to ``EXCLUDED_PREFIXES``.
        """
        self._client = client
        self._excluded_prefixes = (
            self.EXCLUDED_PREFIXES if excluded_prefixes is None else tuple(excluded_prefixes)
        )

    async def introspect(self) -> dict[str, IntrospectedTable]:
        """Get every user table with DDL, indexes, columns and foreign keys."""
        tables = await self.get_table_list()
        return await self.populate_table_details(tables)

    async def get_table_list(self) -> dict[str, TableDescriptor]:
        """Get all user tables and the indexes on each.

        Keys are table names exactly as the engine reports them, which is
        the case used in the ``CREATE TABLE`` statement.

        Returns:
            Dict mapping table name to ``TableDescriptor`` (columns empty).
        """
        conditions = " ".join("AND name NOT GLOB ?" for _ in self._excluded_prefixes)
        rows = await self._client.query(
            f"""
            SELECT type, name, tbl_name, sql FROM sqlite_master
             WHERE type IN ('table', 'index')
               {conditions}
             ORDER BY tbl_name ASC
            """,
            tuple(f"{prefix}*" for prefix in self._excluded_prefixes),
        )

        tables: dict[str, TableDescriptor] = {}
        for row in rows:
            if row["type"] == "table":
                tables[row["name"]] = TableDescriptor(name=row["name"], sql=row["sql"])

        # SQLite reports an index's tbl_name in the table's own case, even if
        # the index DDL spells it differently.
        for row in rows:
            if row["type"] != "index":
                continue
            if row["sql"] is None:
                # Automatic index for a PRIMARY KEY/UNIQUE constraint
                continue
            table = tables.get(row["tbl_name"])
            if table is None:
                logger.warning(
                    "index %s refers to unknown table %s", row["name"], row["tbl_name"]
                )
                continue
            table.indexes.append(IndexDescriptor(name=row["name"], sql=row["sql"]))

        return tables

    async def populate_table_details(
        self, tables: dict[str, TableDescriptor]
    ) -> dict[str, IntrospectedTable]:
        """Add column names and foreign keys to each table.

        The input mapping is not modified; new objects are returned.
        Foreign key target names are normalized to the case of the table
        list, since the engine reports them in the case used by the
        constraint definition.

        Args:
            tables: Mapping from ``get_table_list()``.

        Returns:
            Dict mapping table name to ``IntrospectedTable``.
        """
        detailed: dict[str, IntrospectedTable] = {
            name: IntrospectedTable(**table.model_dump()) for name, table in tables.items()
        }

        if not detailed:
            logger.warning("database has no tables; no details to gather")
            return detailed

        name_map = {name.upper(): name for name in detailed}

        for name, table in detailed.items():
            table.columns = await self._get_columns(name)
            table.constraints = [
                self._normalize_edge(name, edge, name_map)
                for edge in await self._get_foreign_keys(name)
            ]

        return detailed

    async def _get_columns(self, table_name: str) -> list[str]:
        """Get column names for a table, in declaration order."""
        rows = await self._client.query(
            "SELECT name FROM pragma_table_info(?) ORDER BY cid", (table_name,)
        )
        return [row["name"] for row in rows]

    async def _get_foreign_keys(self, table_name: str) -> list[ForeignKeyEdge]:
        """Get foreign key edges for a table."""
        rows = await self._client.query(
            'SELECT "table", "from", "to" FROM pragma_foreign_key_list(?)',
            (table_name,),
        )
        return [ForeignKeyEdge(**row) for row in rows]

    def _normalize_edge(
        self, table_name: str, edge: ForeignKeyEdge, name_map: dict[str, str]
    ) -> ForeignKeyEdge:
        """Patch an edge's target table to the authoritative case."""
        target = name_map.get(edge.table.upper())
        if target is None:
            logger.warning(
                "foreign key constraint on unknown table: %s.%s => %s.%s",
                table_name, edge.from_column, edge.table, edge.to_column,
            )
            return edge
        if target != edge.table:
            logger.warning(
                "case-mismatched foreign key constraint: %s.%s => %s.%s",
                table_name, edge.from_column, edge.table, edge.to_column,
            )
            return edge.model_copy(update={"table": target})
        return edge
