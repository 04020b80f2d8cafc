"""Backup metadata assembly.

``build_backup_metadata`` is a pure function combining a load order with
the introspected tables; ``generate_backup_metadata`` runs the whole
introspect -> resolve -> build pipeline against a live database.
"""

import logging
from collections.abc import Mapping

from db_archiver.adapters.base import DatabaseClient
from db_archiver.schema.dependencies import resolve_load_order
from db_archiver.schema.introspector import SchemaIntrospector
from db_archiver.schema.models import BackupMetadata, IntrospectedTable

logger = logging.getLogger(__name__)


def build_backup_metadata(
    load_order: list[str], tables: Mapping[str, IntrospectedTable]
) -> BackupMetadata:
    """Combine a load order and introspected tables into one document.

    Foreign key constraints are stripped; only what restore needs is kept.
    """
    return BackupMetadata(
        load_order=list(load_order),
        tables={name: table.to_descriptor() for name, table in tables.items()},
    )


async def generate_backup_metadata(
    client: DatabaseClient, introspector: SchemaIntrospector | None = None
) -> BackupMetadata:
    """Introspect ``client`` and build its backup metadata.

    Raises:
        CyclicDependencyError: If the foreign keys form a cycle.
    """
    introspector = introspector or SchemaIntrospector(client)
    tables = await introspector.introspect()
    load_order = resolve_load_order(tables)
    logger.info("resolved load order for %d table(s): %s", len(load_order), load_order)
    return build_backup_metadata(load_order, tables)
