"""Backup writer: exports schema and rows to the blob store.

Objects written for one backup:

    {source_database}/{backup_name}/metadata.json
    {source_database}/{backup_name}/{table}.json   (one per table, loadOrder)

Usage:
    from db_archiver.backup.writer import create_backup

    result = await create_backup(adapter, store, tracker, "main", "nightly")
    print(result.base_key, [t.rows for t in result.tables])
"""

import logging

from db_archiver.adapters.base import DatabaseClient, quote_identifier
from db_archiver.backup.metadata import generate_backup_metadata
from db_archiver.backup.models import BackupResult, TableBackupSummary, backup_prefix
from db_archiver.backup.tracking import BackupTracker
from db_archiver.schema.models import TableDescriptor
from db_archiver.storage.base import BlobStore, store_json

logger = logging.getLogger(__name__)


async def fetch_table_rows(client: DatabaseClient, descriptor: TableDescriptor) -> list[list]:
    """Fetch every row of a table as positional lists.

    The select list names each column explicitly, in ``columns`` order, so
    that the stored arrays line up with the metadata.
    """
    if not descriptor.columns:
        logger.warning("table %s has no columns; exporting no rows", descriptor.name)
        return []
    column_list = ", ".join(quote_identifier(c) for c in descriptor.columns)
    sql = f"SELECT {column_list} FROM {quote_identifier(descriptor.name)}"
    return await client.query_raw(sql)


async def create_backup(
    source: DatabaseClient,
    store: BlobStore,
    tracker: BackupTracker | None,
    source_database: str,
    backup_name: str,
) -> BackupResult:
    """Write a full backup of ``source``.

    An existing backup with the same name is overwritten object by object.

    Args:
        source: Adapter for the database being backed up.
        store: Blob store receiving the objects.
        tracker: Tracking table writer; ``None`` skips the tracking record.
        source_database: Binding name, first key segment.
        backup_name: Backup name, second key segment.

    Raises:
        CyclicDependencyError: If the source schema has a foreign key cycle.
    """
    base_key = backup_prefix(source_database, backup_name)
    metadata = await generate_backup_metadata(source)
    await store_json(store, f"{base_key}/metadata.json", metadata.to_document())

    summaries: list[TableBackupSummary] = []
    for name in metadata.load_order:
        descriptor = metadata.tables[name]
        rows = await fetch_table_rows(source, descriptor)
        await store_json(store, f"{base_key}/{name}.json", rows)
        summaries.append(
            TableBackupSummary(
                name=name,
                indexes=len(descriptor.indexes),
                rows=len(rows),
                columns=descriptor.columns,
            )
        )
        logger.debug("backed up %s: %d row(s)", name, len(rows))

    record = None
    if tracker is not None:
        record = await tracker.record_backup(source_database, backup_name)

    logger.info("backup %s complete: %d table(s)", base_key, len(summaries))
    return BackupResult(base_key=base_key, tables=summaries, record=record)
