"""Pack an object-set backup into a single tar archive.

The archive holds ``metadata.json`` first, then one ``{table}.json`` per
table in ``loadOrder`` order, which is exactly what the sequential restore
variant expects.  The archive is stored next to the object set:

    {source_database}/{backup_name}.tar   (or .tgz when compressed)
"""

import io
import logging
import tarfile
import time

from db_archiver.backup.models import backup_prefix
from db_archiver.errors import MetadataNotFoundError, MissingAssetsError
from db_archiver.schema.models import BackupMetadata
from db_archiver.storage.base import BlobStore, decode_json

logger = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPES = {
    ".tar": "application/x-tar",
    ".tgz": "application/gzip",
}


def _add_member(tar: tarfile.TarFile, name: str, data: bytes, mtime: float) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mtime = int(mtime)
    info.mode = 0o644
    tar.addfile(info, io.BytesIO(data))


async def pack_backup(
    store: BlobStore,
    source_database: str,
    backup_name: str,
    compress: bool = False,
) -> str:
    """Build ``{db}/{name}.tar`` (or ``.tgz``) from an object-set backup.

    Returns:
        The key the archive was stored under.

    Raises:
        MetadataNotFoundError: If the object set has no metadata.json.
        MissingAssetsError: If any per-table object is absent.
    """
    base_key = backup_prefix(source_database, backup_name)
    metadata_key = f"{base_key}/metadata.json"
    metadata_body = await store.get(metadata_key)
    if metadata_body is None:
        raise MetadataNotFoundError(metadata_key)
    metadata = BackupMetadata.model_validate(decode_json(metadata_key, metadata_body))

    payloads: list[tuple[str, bytes]] = []
    missing: list[str] = []
    for name in metadata.load_order:
        key = f"{base_key}/{name}.json"
        body = await store.get(key)
        if body is None:
            missing.append(key)
            continue
        payloads.append((f"{name}.json", body))
    if missing:
        raise MissingAssetsError(missing)

    suffix = ".tgz" if compress else ".tar"
    buffer = io.BytesIO()
    now = time.time()
    with tarfile.open(fileobj=buffer, mode="w:gz" if compress else "w") as tar:
        _add_member(tar, "metadata.json", metadata_body, now)
        for member_name, body in payloads:
            _add_member(tar, member_name, body, now)

    archive_key = f"{base_key}{suffix}"
    await store.put(archive_key, buffer.getvalue(), content_type=ARCHIVE_CONTENT_TYPES[suffix])
    logger.info(
        "packed %d table(s) from %s into %s", len(payloads), base_key, archive_key
    )
    return archive_key
