"""Restore: validation, table materialization and orchestration.

Usage:
    from db_archiver.restore import restore_backup, RestoreResult
"""

from db_archiver.restore.materializer import build_insert_sql, materialize_table
from db_archiver.restore.models import RestoreResult, TableRestoreResult
from db_archiver.restore.orchestrator import open_source, restore_backup, restore_from_source
from db_archiver.restore.sources import (
    ArchiveSource,
    ObjectSetSource,
    RestoreSource,
    is_archive_name,
)
from db_archiver.restore.validator import find_conflicting_tables

__all__ = [
    "ArchiveSource",
    "ObjectSetSource",
    "RestoreResult",
    "RestoreSource",
    "TableRestoreResult",
    "build_insert_sql",
    "find_conflicting_tables",
    "is_archive_name",
    "materialize_table",
    "open_source",
    "restore_backup",
    "restore_from_source",
]
