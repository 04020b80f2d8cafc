"""Backup creation, tracking and archive packing.

Usage:
    from db_archiver.backup import BackupTracker, create_backup, pack_backup
"""

from db_archiver.backup.archive import pack_backup
from db_archiver.backup.metadata import build_backup_metadata, generate_backup_metadata
from db_archiver.backup.models import (
    BackupRecord,
    BackupResult,
    TableBackupSummary,
    backup_prefix,
)
from db_archiver.backup.tracking import BackupTracker
from db_archiver.backup.writer import create_backup, fetch_table_rows

__all__ = [
    "BackupRecord",
    "BackupResult",
    "BackupTracker",
    "TableBackupSummary",
    "backup_prefix",
    "build_backup_metadata",
    "create_backup",
    "fetch_table_rows",
    "generate_backup_metadata",
    "pack_backup",
]
