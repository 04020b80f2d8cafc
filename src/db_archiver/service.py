"""Request-level API over backup and restore.

``ArchiverService`` is what a routing layer (or the CLI) calls: it
validates requests, resolves database bindings through the factory, opens
and closes adapters, and delegates to the backup and restore modules.

Usage:
    from db_archiver.config import load_config
    from db_archiver.service import ArchiverService, BackupCreateRequest

    service = ArchiverService(load_config())
    result = await service.create_backup(BackupCreateRequest(fromDatabase="main"))
"""

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from db_archiver.adapters import DatabaseClient
from db_archiver.backup import (
    BackupRecord,
    BackupResult,
    BackupTracker,
    create_backup,
    generate_backup_metadata,
    pack_backup,
)
from db_archiver.config.models import ArchiverConfig
from db_archiver.errors import ConfigError
from db_archiver.factory import get_adapter, get_blob_store
from db_archiver.restore import RestoreResult, restore_backup
from db_archiver.schema.models import BackupMetadata
from db_archiver.storage import BlobStore

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = r"^[\w-]+$"
BACKUP_NAME_PATTERN = r"^[\w.-]+$"


def default_backup_name() -> str:
    """Timestamp name used when a backup request does not give one."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


# ============================================================================
# Request Models
# ============================================================================


class BackupCreateRequest(BaseModel):
    """Body of a create-backup request."""

    model_config = ConfigDict(populate_by_name=True)

    from_database: str = Field(alias="fromDatabase", pattern=IDENTIFIER_PATTERN)
    name: str = Field(default_factory=default_backup_name, pattern=IDENTIFIER_PATTERN)


class BackupRestoreRequest(BaseModel):
    """Body of a restore request; ``name`` may carry a ``.tar``/``.tgz`` suffix."""

    model_config = ConfigDict(populate_by_name=True)

    from_database: str = Field(alias="fromDatabase", pattern=IDENTIFIER_PATTERN)
    to_database: str = Field(alias="toDatabase", pattern=IDENTIFIER_PATTERN)
    name: str = Field(pattern=BACKUP_NAME_PATTERN)


# ============================================================================
# Service
# ============================================================================


class ArchiverService:
    """Backup and restore operations against configured bindings.

    Args:
        config: Loaded archiver configuration.
        store: Blob store override; defaults to the configured one.
    """

    def __init__(self, config: ArchiverConfig, store: BlobStore | None = None) -> None:
        self.config = config
        self.store = store if store is not None else get_blob_store(config)

    async def _open_tracker(self) -> tuple[BackupTracker, DatabaseClient] | None:
        if self.config.tracking is None:
            return None
        client = get_adapter(self.config, self.config.tracking)
        tracker = BackupTracker(client, table=self.config.tracking_table)
        try:
            await tracker.ensure_table()
        except Exception:
            await client.close()
            raise
        return tracker, client

    async def create_backup(self, request: BackupCreateRequest) -> BackupResult:
        """Back up ``request.from_database`` under ``request.name``.

        Raises:
            UnknownDatabaseBindingError: If the database is not configured.
            CyclicDependencyError: If its foreign keys form a cycle.
        """
        source = get_adapter(self.config, request.from_database)
        tracking = None
        try:
            tracking = await self._open_tracker()
            tracker = tracking[0] if tracking else None
            return await create_backup(
                source, self.store, tracker, request.from_database, request.name
            )
        finally:
            await source.close()
            if tracking is not None:
                await tracking[1].close()

    async def restore_backup(
        self, request: BackupRestoreRequest, check_assets: bool = True
    ) -> RestoreResult:
        """Restore ``{from_database}/{name}`` into ``request.to_database``.

        The source database only names the backup; it does not need to be
        a configured binding.

        Raises:
            UnknownDatabaseBindingError: If the destination is not configured.
            ArchiverError: For every refused or failed restore.
        """
        destination = get_adapter(self.config, request.to_database)
        try:
            return await restore_backup(
                self.store,
                destination,
                request.from_database,
                request.to_database,
                request.name,
                check_assets=check_assets,
            )
        finally:
            await destination.close()

    async def list_backups(self) -> list[BackupRecord]:
        """All tracked backups.

        Raises:
            ConfigError: If no tracking database is configured.
        """
        tracking = await self._open_tracker()
        if tracking is None:
            raise ConfigError("no tracking database configured; set 'tracking'")
        tracker, client = tracking
        try:
            return await tracker.list_backups()
        finally:
            await client.close()

    async def pack_backup(
        self, from_database: str, name: str, compress: bool = False
    ) -> str:
        """Pack an object-set backup into an archive and track the archive.

        Returns:
            Key of the stored archive.
        """
        archive_key = await pack_backup(self.store, from_database, name, compress=compress)
        archive_name = archive_key.rsplit("/", 1)[-1]

        tracking = await self._open_tracker()
        if tracking is not None:
            tracker, client = tracking
            try:
                await tracker.record_backup(from_database, archive_name)
            finally:
                await client.close()
        return archive_key

    async def plan(self, from_database: str) -> BackupMetadata:
        """Introspect a database and return the metadata a backup would write."""
        source = get_adapter(self.config, from_database)
        try:
            return await generate_backup_metadata(source)
        finally:
            await source.close()
