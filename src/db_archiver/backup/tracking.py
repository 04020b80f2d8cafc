"""Backup tracking table.

Keeps one ``BackupList`` row per ``(dbName, backupName)`` pair in a
dedicated tracking database.  Creating a backup under an existing name
overwrites its objects in the blob store but leaves the tracking row as
it was.

Usage:
    tracker = BackupTracker(tracking_adapter)
    await tracker.ensure_table()
    record = await tracker.record_backup("main", "nightly")
    records = await tracker.list_backups()
"""

import logging

from db_archiver.adapters.base import DatabaseClient, quote_identifier
from db_archiver.backup.models import BackupRecord

logger = logging.getLogger(__name__)


class BackupTracker:
    """Reads and writes backup tracking records.

    Args:
        client: Adapter for the tracking database.
        table: Tracking table name.
    """

    def __init__(self, client: DatabaseClient, table: str = "BackupList") -> None:
        self._client = client
        self._table = quote_identifier(table)

    async def ensure_table(self) -> None:
        """Create the tracking table if it does not exist."""
        await self._client.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                dbName TEXT NOT NULL,
                backupName TEXT NOT NULL,
                UNIQUE (dbName, backupName)
            )
            """
        )

    async def list_backups(self) -> list[BackupRecord]:
        """All known backups, oldest first.

        Names ending in ``.tar`` or ``.tgz`` are archive backups; everything
        else is an object-set backup.
        """
        rows = await self._client.query(
            f"SELECT id, dbName, backupName FROM {self._table} ORDER BY id"
        )
        return [BackupRecord(**row) for row in rows]

    async def find_backup(self, source_database: str, backup_name: str) -> BackupRecord | None:
        rows = await self._client.query(
            f"SELECT id, dbName, backupName FROM {self._table} "
            f"WHERE dbName = ? AND backupName = ?",
            (source_database, backup_name),
        )
        return BackupRecord(**rows[0]) if rows else None

    async def record_backup(self, source_database: str, backup_name: str) -> BackupRecord:
        """Insert a tracking record unless one already exists.

        Returns:
            The existing record (unchanged) or the newly inserted one.
        """
        existing = await self.find_backup(source_database, backup_name)
        if existing is not None:
            logger.info(
                "backup %s:%s overwrote an existing backup", source_database, backup_name
            )
            return existing

        await self._client.execute(
            f"INSERT INTO {self._table} (dbName, backupName) VALUES (?, ?)",
            (source_database, backup_name),
        )
        created = await self.find_backup(source_database, backup_name)
        if created is None:
            raise RuntimeError(
                f"tracking record for {source_database}:{backup_name} was not stored"
            )
        return created
