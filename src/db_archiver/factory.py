"""Adapter and blob store factory.

Resolves configured database bindings to ``DatabaseClient`` instances and
the ``[blob_store]`` section to a ``BlobStore``.
"""

import logging
from urllib.parse import quote

from db_archiver.adapters import AsyncSQLiteAdapter, DatabaseClient
from db_archiver.config.models import ArchiverConfig, BlobStoreConfig, DatabaseBinding
from db_archiver.errors import ConfigError, UnknownDatabaseBindingError
from db_archiver.storage import BlobStore, LocalBlobStore, S3BlobStore

logger = logging.getLogger(__name__)


def resolve_url(binding: DatabaseBinding) -> str:
    """Resolve a binding URL with password substitution.

    Args:
        binding: Database binding from config

    Returns:
        Connection URL with password substituted
    """
    url = binding.url
    if binding.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(binding.db_password, safe=""))
    return url


def get_binding(config: ArchiverConfig, name: str) -> DatabaseBinding:
    """Look up a database binding by name.

    Raises:
        UnknownDatabaseBindingError: If ``name`` is not configured.
    """
    if name not in config.databases:
        raise UnknownDatabaseBindingError(name, sorted(config.databases))
    return config.databases[name]


def get_adapter(config: ArchiverConfig, name: str) -> DatabaseClient:
    """Create an adapter for the binding called ``name``.

    The caller owns the adapter and must ``await adapter.close()``.

    Raises:
        UnknownDatabaseBindingError: If ``name`` is not configured.
    """
    binding = get_binding(config, name)
    logger.debug("creating adapter for database binding %s", name)
    return AsyncSQLiteAdapter(database_url=resolve_url(binding))


def get_blob_store(config: ArchiverConfig | BlobStoreConfig) -> BlobStore:
    """Create the configured blob store.

    Raises:
        ConfigError: For an unknown provider or an S3 store with no bucket.
    """
    store_config = config.blob_store if isinstance(config, ArchiverConfig) else config
    provider = store_config.provider.lower()

    if provider == "local":
        return LocalBlobStore(store_config.path)

    if provider == "s3":
        if not store_config.bucket:
            raise ConfigError("blob_store.bucket is required for the s3 provider")
        return S3BlobStore(
            bucket=store_config.bucket,
            prefix=store_config.prefix,
            region=store_config.region,
            endpoint_url=store_config.endpoint_url or None,
        )

    raise ConfigError(
        f"unknown blob store provider '{store_config.provider}'",
        details={"provider": store_config.provider, "supported": ["local", "s3"]},
    )
