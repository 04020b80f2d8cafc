"""S3-compatible blob store (AWS S3, Cloudflare R2, MinIO).

Uses an ``aioboto3`` session; a client is opened per operation so the
store object holds no open connections between calls.

Usage:
    from db_archiver.storage.s3 import S3BlobStore

    store = S3BlobStore(
        bucket="db-backups",
        endpoint_url="https://<account>.r2.cloudflarestorage.com",
    )
    body = await store.get("main/nightly/metadata.json")
"""

import logging
import tempfile
from typing import Any, BinaryIO

import aioboto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# Streamed bodies stay in memory up to this size, then spill to disk
SPOOL_MAX_SIZE = 8 * 1024 * 1024
CHUNK_SIZE = 1024 * 1024


class S3BlobStore:
    """Blob store backed by an S3 bucket.

    Args:
        bucket: Bucket name.
        prefix: Optional key prefix prepended to every key.
        region: AWS region name.
        endpoint_url: Custom endpoint for S3-compatible services.
        session: Optional pre-built ``aioboto3.Session``.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        session: aioboto3.Session | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region = region
        self.endpoint_url = endpoint_url or None
        self.session = session or aioboto3.Session()

    def _full_key(self, key: str) -> str:
        """Get full S3 key with prefix."""
        if self.prefix:
            return f"{self.prefix}/{key}"
        return key

    def _client(self):
        kwargs: dict[str, Any] = {"region_name": self.region}
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return self.session.client("s3", **kwargs)

    @staticmethod
    def _is_not_found(error: ClientError) -> bool:
        code = str(error.response.get("Error", {}).get("Code", ""))
        return code in _NOT_FOUND_CODES

    async def exists(self, key: str) -> dict | None:
        async with self._client() as s3:
            try:
                head = await s3.head_object(Bucket=self.bucket, Key=self._full_key(key))
            except ClientError as e:
                if self._is_not_found(e):
                    return None
                raise
        return {
            "key": key,
            "size": head.get("ContentLength"),
            "modified": head.get("LastModified"),
            "content_type": head.get("ContentType"),
        }

    async def get(self, key: str) -> bytes | None:
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=self._full_key(key))
            except ClientError as e:
                if self._is_not_found(e):
                    return None
                raise
            async with response["Body"] as stream:
                return await stream.read()

    async def open_stream(self, key: str) -> BinaryIO | None:
        """Download ``key`` chunk by chunk into a spooled temporary file.

        The returned file is positioned at the start; the caller closes it.
        """
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=self._full_key(key))
            except ClientError as e:
                if self._is_not_found(e):
                    return None
                raise
            spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
            try:
                async with response["Body"] as stream:
                    while True:
                        chunk = await stream.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        spool.write(chunk)
            except BaseException:
                spool.close()
                raise
        logger.debug("streamed %s (%d bytes)", key, spool.tell())
        spool.seek(0)
        return spool

    async def put(
        self, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        async with self._client() as s3:
            await s3.put_object(
                Bucket=self.bucket,
                Key=self._full_key(key),
                Body=data,
                ContentType=content_type,
            )

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List keys with a given prefix (store prefix removed)."""
        full_prefix = self._full_key(prefix)
        keys: list[str] = []
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=full_prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if self.prefix and key.startswith(self.prefix + "/"):
                        key = key[len(self.prefix) + 1:]
                    keys.append(key)
        return keys
