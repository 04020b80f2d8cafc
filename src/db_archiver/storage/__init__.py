"""Blob stores for backup objects.

Usage:
    from db_archiver.storage import BlobStore, LocalBlobStore, S3BlobStore
    from db_archiver.storage import fetch_json, store_json
"""

from db_archiver.storage.base import (
    JSON_CONTENT_TYPE,
    BlobStore,
    decode_json,
    fetch_json,
    key_exists,
    store_json,
)
from db_archiver.storage.local import LocalBlobStore
from db_archiver.storage.s3 import S3BlobStore

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "JSON_CONTENT_TYPE",
    "decode_json",
    "fetch_json",
    "key_exists",
    "store_json",
]
