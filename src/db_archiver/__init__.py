"""db-archiver: foreign-key aware backup and restore for SQLite-family databases.

Introspects a database, orders its tables so that referenced tables come
first, writes schema and rows to a blob store, and restores them into an
empty database from either a set of objects or a single tar archive.

Usage:
    from db_archiver import AsyncSQLiteAdapter, LocalBlobStore
    from db_archiver import create_backup, restore_backup, pack_backup
    from db_archiver import ArchiverService, load_config
"""

__version__ = "0.1.0"

# Adapters
from db_archiver.adapters.base import BoundStatement, DatabaseClient
from db_archiver.adapters.sqlite import AsyncSQLiteAdapter

# Storage
from db_archiver.storage import BlobStore, LocalBlobStore, S3BlobStore

# Config
from db_archiver.config.loader import load_config
from db_archiver.config.models import ArchiverConfig, DatabaseBinding

# Factory
from db_archiver.factory import get_adapter, get_blob_store, resolve_url

# Schema
from db_archiver.schema import BackupMetadata, SchemaIntrospector, TableDescriptor, resolve_load_order

# Backup / restore
from db_archiver.backup import BackupTracker, create_backup, pack_backup
from db_archiver.restore import restore_backup

# Service
from db_archiver.service import ArchiverService, BackupCreateRequest, BackupRestoreRequest

# Errors
from db_archiver.errors import ArchiverError

__all__ = [
    # Adapters
    "DatabaseClient",
    "BoundStatement",
    "AsyncSQLiteAdapter",
    # Storage
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    # Config
    "load_config",
    "ArchiverConfig",
    "DatabaseBinding",
    # Factory
    "get_adapter",
    "get_blob_store",
    "resolve_url",
    # Schema
    "SchemaIntrospector",
    "resolve_load_order",
    "BackupMetadata",
    "TableDescriptor",
    # Backup / restore
    "BackupTracker",
    "create_backup",
    "pack_backup",
    "restore_backup",
    # Service
    "ArchiverService",
    "BackupCreateRequest",
    "BackupRestoreRequest",
    # Errors
    "ArchiverError",
]
