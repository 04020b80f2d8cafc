"""Restore sources: where a backup's metadata and table payloads come from.

Two physical shapes are supported behind the ``RestoreSource`` protocol:

- ``ObjectSetSource``: random access to discrete objects under
  ``{db}/{name}/``; payloads can be checked up front.
- ``ArchiveSource``: one tar archive at ``{db}/{name}`` read strictly
  forward; members must appear in the order the metadata prescribes.

Both yield ``(TableDescriptor, rows)`` pairs in ``loadOrder`` order.
"""

import asyncio
import logging
import tarfile
import zlib
from collections.abc import AsyncIterator, Iterator
from typing import BinaryIO, Protocol

from db_archiver.backup.models import backup_prefix
from db_archiver.errors import (
    MalformedPayloadError,
    MetadataNotFoundError,
    MissingAssetsError,
    MissingMemberError,
    UnexpectedMemberError,
    UnknownTableMemberError,
)
from db_archiver.schema.models import BackupMetadata, TableDescriptor
from db_archiver.storage.base import BlobStore, decode_json, fetch_json, key_exists

logger = logging.getLogger(__name__)

METADATA_MEMBER = "metadata.json"
ARCHIVE_SUFFIXES = (".tar", ".tgz")

# Raised while decoding a damaged or truncated archive stream
_TAR_ERRORS = (tarfile.TarError, zlib.error, EOFError)


def is_archive_name(name: str) -> bool:
    """True if a backup name refers to a tar archive rather than an object set."""
    return name.endswith(ARCHIVE_SUFFIXES)


def _validate_metadata(key: str, document: object) -> BackupMetadata:
    try:
        return BackupMetadata.model_validate(document)
    except ValueError as e:
        raise MalformedPayloadError(key, str(e)) from e


def _parse_rows(key: str, body: bytes) -> list[list]:
    rows = decode_json(key, body)
    if not isinstance(rows, list):
        raise MalformedPayloadError(key, "table data is not a JSON array")
    for position, row in enumerate(rows):
        if not isinstance(row, list):
            raise MalformedPayloadError(
                key, f"row {position} is {type(row).__name__}, not a JSON array"
            )
    return rows


class RestoreSource(Protocol):
    """Capability the restore core is parameterized over."""

    base_key: str
    variant: str

    async def load_metadata(self) -> BackupMetadata:
        """Load and decode the backup's control document."""
        ...

    async def preflight(self, metadata: BackupMetadata) -> None:
        """Check payload availability before anything is written."""
        ...

    def payloads(
        self, metadata: BackupMetadata
    ) -> AsyncIterator[tuple[TableDescriptor, list[list]]]:
        """Yield each table with its rows, in ``loadOrder`` order."""
        ...

    async def close(self) -> None:
        ...


class ObjectSetSource:
    """Backup stored as discrete objects under ``{db}/{name}/``.

    Args:
        store: Blob store holding the backup.
        source_database: Database the backup was taken from.
        backup_name: Backup name.
        check_assets: Check every per-table object exists before restoring.
    """

    variant = "files"

    def __init__(
        self,
        store: BlobStore,
        source_database: str,
        backup_name: str,
        check_assets: bool = True,
    ) -> None:
        self._store = store
        self._check_assets = check_assets
        self.base_key = backup_prefix(source_database, backup_name)

    def table_key(self, table: str) -> str:
        return f"{self.base_key}/{table}.json"

    async def load_metadata(self) -> BackupMetadata:
        key = f"{self.base_key}/{METADATA_MEMBER}"
        document = await fetch_json(self._store, key)
        if document is None:
            raise MetadataNotFoundError(key)
        return _validate_metadata(key, document)

    async def preflight(self, metadata: BackupMetadata) -> None:
        """Check all per-table objects concurrently.

        Raises:
            MissingAssetsError: Listing every absent key, in ``loadOrder`` order.
        """
        if not self._check_assets:
            logger.debug("asset pre-flight check disabled for %s", self.base_key)
            return
        keys = [self.table_key(name) for name in metadata.load_order]
        found = await asyncio.gather(*(key_exists(self._store, key) for key in keys))
        missing = [key for key, meta in zip(keys, found) if meta is None]
        if missing:
            raise MissingAssetsError(missing)

    async def payloads(
        self, metadata: BackupMetadata
    ) -> AsyncIterator[tuple[TableDescriptor, list[list]]]:
        for name in metadata.load_order:
            table = metadata.tables.get(name)
            if table is None:
                raise UnknownTableMemberError(name)
            key = self.table_key(name)
            body = await self._store.get(key)
            if body is None:
                raise MissingMemberError(key)
            yield table, _parse_rows(key, body)

    async def close(self) -> None:
        pass


class ArchiveSource:
    """Backup stored as one tar archive, read forward only.

    The archive body is consumed as a stream (``r|gz`` for ``.tgz``, ``r|``
    for ``.tar``), one member at a time.  The first member must be
    ``metadata.json``; after that, members must follow ``loadOrder`` exactly.

    Args:
        store: Blob store holding the archive.
        source_database: Database the backup was taken from.
        backup_name: Archive name, ending in ``.tar`` or ``.tgz``.
    """

    variant = "archive"

    def __init__(self, store: BlobStore, source_database: str, backup_name: str) -> None:
        if not is_archive_name(backup_name):
            raise ValueError(f"'{backup_name}' is not a recognized tar archive name")
        self._store = store
        self.base_key = backup_prefix(source_database, backup_name)
        self._stream: BinaryIO | None = None
        self._tar: tarfile.TarFile | None = None
        self._members: Iterator[tarfile.TarInfo] | None = None

    async def _open(self) -> None:
        stream = await self._store.open_stream(self.base_key)
        if stream is None:
            raise MetadataNotFoundError(self.base_key)
        self._stream = stream
        mode = "r|gz" if self.base_key.endswith(".tgz") else "r|"
        try:
            self._tar = tarfile.open(fileobj=stream, mode=mode)
        except _TAR_ERRORS as e:
            raise MalformedPayloadError(self.base_key, str(e)) from e
        self._members = iter(self._tar)

    def _next_member(self) -> tarfile.TarInfo | None:
        try:
            return next(self._members)
        except StopIteration:
            return None
        except _TAR_ERRORS as e:
            raise MalformedPayloadError(self.base_key, str(e)) from e

    def _read_member(self, member: tarfile.TarInfo) -> bytes:
        try:
            handle = self._tar.extractfile(member)
            if handle is None:
                raise MalformedPayloadError(member.name, "member has no contents")
            return handle.read()
        except _TAR_ERRORS as e:
            raise MalformedPayloadError(member.name, str(e)) from e

    def _expect(self, member: tarfile.TarInfo | None, expected: str) -> tarfile.TarInfo:
        if member is None:
            raise MissingMemberError(expected)
        if not member.isfile() or member.name != expected:
            raise UnexpectedMemberError(member.name, expected, archive=self.base_key)
        return member

    async def load_metadata(self) -> BackupMetadata:
        await self._open()
        member = self._expect(self._next_member(), METADATA_MEMBER)
        body = self._read_member(member)
        return _validate_metadata(METADATA_MEMBER, decode_json(METADATA_MEMBER, body))

    async def preflight(self, metadata: BackupMetadata) -> None:
        # Members can only be seen by reading them; nothing to check ahead.
        pass

    async def payloads(
        self, metadata: BackupMetadata
    ) -> AsyncIterator[tuple[TableDescriptor, list[list]]]:
        if self._members is None:
            raise RuntimeError("load_metadata() must be called before payloads()")
        for name in metadata.load_order:
            expected = f"{name}.json"
            member = self._expect(self._next_member(), expected)
            table = metadata.tables.get(name)
            if table is None:
                raise UnknownTableMemberError(name)
            yield table, _parse_rows(member.name, self._read_member(member))

        extra = self._next_member()
        if extra is not None:
            raise UnexpectedMemberError(extra.name, None, archive=self.base_key)

    async def close(self) -> None:
        if self._tar is not None:
            self._tar.close()
            self._tar = None
            self._members = None
        if self._stream is not None:
            self._stream.close()
            self._stream = None
