"""Exception taxonomy for backup and restore operations.

Every failure that stops a backup or restore is an ``ArchiverError``
subclass.  None of them are retried internally; callers (the CLI or an
HTTP layer) turn them into a structured failure response via
``ArchiverError.to_dict()``.

Usage:
    from db_archiver.errors import ArchiverError, TableConflictError

    try:
        await restore_backup(store, adapter, "main", "scratch", "nightly")
    except TableConflictError as e:
        print(e.tables)
    except ArchiverError as e:
        print(e.to_dict())
"""

from typing import Any


class ArchiverError(Exception):
    """Base class for all backup/restore failures."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured failure body: ``{"error", "message", "details"}``."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(ArchiverError):
    """Raised when the configuration file cannot be parsed."""

    pass


class UnknownDatabaseBindingError(ArchiverError):
    """Raised when a database name is not configured."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        available = available or []
        super().__init__(
            f"no such bound database '{name}'",
            details={"database": name, "available": available},
        )
        self.name = name
        self.available = available


class MetadataNotFoundError(ArchiverError):
    """Raised when a backup's control document (or archive) is absent."""

    def __init__(self, key: str) -> None:
        super().__init__(f"metadata file '{key}' not found", details={"key": key})
        self.key = key


class TableConflictError(ArchiverError):
    """Raised when the destination already holds tables slated for restore."""

    def __init__(self, tables: list[str]) -> None:
        super().__init__(
            "cannot restore; tables to be restored already exist",
            details=list(tables),
        )
        self.tables = list(tables)


class MissingAssetsError(ArchiverError):
    """Raised by the pre-flight check when per-table objects are absent."""

    def __init__(self, keys: list[str]) -> None:
        super().__init__(
            f"cannot restore; {len(keys)} table data file(s) missing",
            details=list(keys),
        )
        self.keys = list(keys)


class MissingMemberError(ArchiverError):
    """Raised when an expected per-table payload is absent."""

    def __init__(self, expected: str) -> None:
        super().__init__(
            f"cannot restore; table data file '{expected}' missing",
            details={"expected": expected},
        )
        self.expected = expected


class UnexpectedMemberError(ArchiverError):
    """Raised when an archive member is not the one the metadata prescribes."""

    def __init__(self, found: str, expected: str | None, archive: str = "") -> None:
        where = f" in '{archive}'" if archive else ""
        if expected is None:
            message = f"unexpected file '{found}'{where}; expected end of archive"
        else:
            message = f"unexpected file '{found}'{where}; expected '{expected}'"
        super().__init__(
            message, details={"found": found, "expected": expected, "archive": archive}
        )
        self.found = found
        self.expected = expected


class UnknownTableMemberError(ArchiverError):
    """Raised when a payload names a table the metadata does not describe."""

    def __init__(self, table: str) -> None:
        super().__init__(
            f"cannot restore; backup contains entry for table {table} "
            f"but the metadata.json does not mention it",
            details={"table": table},
        )
        self.table = table


class MalformedPayloadError(ArchiverError):
    """Raised when a stored JSON document cannot be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"cannot decode '{key}': {reason}", details={"key": key, "reason": reason}
        )
        self.key = key


class CyclicDependencyError(ArchiverError):
    """Raised when foreign keys form a cycle that cannot be linearized."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            f"cyclic foreign key dependency: {' -> '.join(cycle)}",
            details=list(cycle),
        )
        self.cycle = list(cycle)


class MaterializationError(ArchiverError):
    """Raised when DDL or the insert batch fails for one table."""

    def __init__(self, table: str, cause: BaseException) -> None:
        super().__init__(
            f"failed to restore table '{table}': {cause}",
            details={"table": table, "cause": str(cause)},
        )
        self.table = table
        self.cause = cause
