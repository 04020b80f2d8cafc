"""Restore orchestration.

One core, ``restore_from_source()``, drives every restore:

1. load the metadata from the source
2. refuse if the destination already holds any table to be restored
3. let the source run its pre-flight check
4. materialize each table strictly in ``loadOrder`` order

Restores are not transactional.  A failure part way leaves the tables
restored so far in place, for inspection.

Usage:
    from db_archiver.restore import restore_backup

    result = await restore_backup(store, adapter, "main", "scratch", "nightly")
    result = await restore_backup(store, adapter, "main", "scratch", "nightly.tgz")
"""

import logging

from db_archiver.adapters.base import DatabaseClient
from db_archiver.errors import TableConflictError
from db_archiver.restore.materializer import materialize_table
from db_archiver.restore.models import RestoreResult, TableRestoreResult
from db_archiver.restore.sources import (
    ArchiveSource,
    ObjectSetSource,
    RestoreSource,
    is_archive_name,
)
from db_archiver.restore.validator import find_conflicting_tables
from db_archiver.storage.base import BlobStore

logger = logging.getLogger(__name__)


async def restore_from_source(
    destination: DatabaseClient, source: RestoreSource
) -> list[TableRestoreResult]:
    """Restore every table ``source`` provides into ``destination``.

    Raises:
        MetadataNotFoundError: If the source has no metadata.
        TableConflictError: If any table already exists; nothing is written.
        MissingAssetsError: If the pre-flight check finds absent payloads.
        MissingMemberError: If a payload is absent when it is needed.
        UnexpectedMemberError: If an archive member is out of order.
        UnknownTableMemberError: If a payload names an undescribed table.
        MalformedPayloadError: If a document cannot be decoded.
        MaterializationError: If DDL or inserts fail for a table.
    """
    results: list[TableRestoreResult] = []
    try:
        metadata = await source.load_metadata()

        conflicts = await find_conflicting_tables(destination, metadata)
        if conflicts:
            raise TableConflictError(conflicts)

        await source.preflight(metadata)

        async for table, rows in source.payloads(metadata):
            result = await materialize_table(destination, table, rows)
            results.append(result)
            logger.info(
                "restored table %s (%d index(es), %d row(s))",
                result.name,
                result.indexes,
                result.rows,
            )
    except Exception:
        if results:
            logger.error(
                "restore of %s stopped after %d table(s); restored tables are left in place",
                source.base_key,
                len(results),
            )
        raise
    finally:
        await source.close()

    return results


def open_source(
    store: BlobStore,
    from_database: str,
    name: str,
    check_assets: bool = True,
) -> RestoreSource:
    """Pick the source variant for a backup name.

    Names ending in ``.tar`` or ``.tgz`` are archives; anything else is an
    object set.
    """
    if is_archive_name(name):
        return ArchiveSource(store, from_database, name)
    return ObjectSetSource(store, from_database, name, check_assets=check_assets)


async def restore_backup(
    store: BlobStore,
    destination: DatabaseClient,
    from_database: str,
    to_database: str,
    name: str,
    check_assets: bool = True,
) -> RestoreResult:
    """Restore backup ``{from_database}/{name}`` into ``destination``.

    Args:
        store: Blob store holding the backup.
        destination: Adapter for the (empty) destination database.
        from_database: Database the backup was taken from.
        to_database: Binding name of ``destination``, for the result.
        name: Backup name; ``.tar`` / ``.tgz`` selects the archive variant.
        check_assets: Run the object-set pre-flight existence check.

    Returns:
        RestoreResult listing every restored table.
    """
    source = open_source(store, from_database, name, check_assets=check_assets)
    logger.info(
        "restoring %s into %s (%s variant)", source.base_key, to_database, source.variant
    )
    tables = await restore_from_source(destination, source)
    return RestoreResult(
        from_database=from_database,
        to_database=to_database,
        name=name,
        base_key=source.base_key,
        variant=source.variant,
        tables=tables,
    )
