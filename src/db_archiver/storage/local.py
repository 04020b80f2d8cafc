"""Filesystem-backed blob store.

Keys map to paths relative to a root directory.  Useful for local
development and for tests.

Usage:
    from db_archiver.storage.local import LocalBlobStore

    store = LocalBlobStore("backups")
    await store.put("main/nightly/metadata.json", b"{}", "application/json")
"""

from pathlib import Path, PurePosixPath
from typing import BinaryIO


class LocalBlobStore:
    """Blob store that keeps each object as a file under ``root``.

    Args:
        root: Directory holding all objects.  Created if missing.

    Example:
        store = LocalBlobStore("/var/backups/db")
        body = await store.get("main/nightly/Customers.json")
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        """Map a key to a file path, rejecting keys that escape ``root``."""
        parts = PurePosixPath(key).parts
        if not parts or ".." in parts or PurePosixPath(key).is_absolute():
            raise ValueError(f"invalid blob key: {key!r}")
        return self._root.joinpath(*parts)

    async def exists(self, key: str) -> dict | None:
        path = self._path(key)
        if not path.is_file():
            return None
        stat = path.stat()
        return {"key": key, "size": stat.st_size, "modified": stat.st_mtime}

    async def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    async def open_stream(self, key: str) -> BinaryIO | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.open("rb")

    async def put(
        self, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List keys starting with ``prefix``, sorted."""
        keys = [
            p.relative_to(self._root).as_posix()
            for p in self._root.rglob("*")
            if p.is_file()
        ]
        return sorted(k for k in keys if k.startswith(prefix))
