"""Blob store protocol and JSON helpers.

Backup objects are stored under path-like keys:

    {source_database}/{backup_name}/metadata.json
    {source_database}/{backup_name}/{table}.json

Usage:
    from db_archiver.storage.base import BlobStore, fetch_json, store_json

    await store_json(store, "main/nightly/metadata.json", metadata_dict)
    data = await fetch_json(store, "main/nightly/metadata.json")
"""

import json
import logging
from typing import Any, BinaryIO, Protocol

from db_archiver.errors import MalformedPayloadError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class BlobStore(Protocol):
    """Key/value object store holding backups."""

    async def exists(self, key: str) -> dict | None:
        """Return object metadata if ``key`` exists, else ``None``."""
        ...

    async def get(self, key: str) -> bytes | None:
        """Return the object body, or ``None`` if ``key`` does not exist."""
        ...

    async def open_stream(self, key: str) -> BinaryIO | None:
        """Open the object body for sequential reading.

        Returns a readable binary file object the caller must close, or
        ``None`` if ``key`` does not exist.  Used for archives, which can be
        larger than is reasonable to hold in memory.
        """
        ...

    async def put(
        self, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        """Store ``data`` under ``key``, overwriting any existing object."""
        ...

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List keys starting with ``prefix``."""
        ...


async def key_exists(store: BlobStore, key: str) -> dict | None:
    """Check the store for ``key``; returns object metadata or ``None``."""
    logger.debug("checking blob store for key: %s", key)
    return await store.exists(key)


async def store_json(store: BlobStore, key: str, obj: Any) -> None:
    """Encode ``obj`` as JSON and store it under ``key``.

    Values that are not JSON-native (dates, decimals) are written with
    ``str()``.
    """
    logger.info("storing JSON to key: %s", key)
    body = json.dumps(obj, default=str).encode("utf-8")
    await store.put(key, body, content_type=JSON_CONTENT_TYPE)


def decode_json(key: str, body: bytes) -> Any:
    """Decode a JSON document read from ``key``.

    Raises:
        MalformedPayloadError: If the body is not valid UTF-8 JSON.
    """
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(key, str(e)) from e


async def fetch_json(store: BlobStore, key: str) -> Any | None:
    """Fetch and decode the JSON document at ``key``.

    Returns:
        The decoded value, or ``None`` if the key does not exist.

    Raises:
        MalformedPayloadError: If the object exists but is not valid JSON.
    """
    logger.info("fetching JSON from key: %s", key)
    body = await store.get(key)
    if body is None:
        logger.warning("key not found: %s", key)
        return None
    return decode_json(key, body)
