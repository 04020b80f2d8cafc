"""Pre-restore conflict detection."""

import logging
import string

from db_archiver.adapters.base import DatabaseClient
from db_archiver.schema.models import BackupMetadata

logger = logging.getLogger(__name__)

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def fold_identifier(name: str) -> str:
    """Lower-case ASCII letters only, matching SQLite identifier comparison.

    Example:
        >>> fold_identifier("ÄRGER_Log")
        'Ärger_log'
    """
    return name.translate(_ASCII_LOWER)


async def find_conflicting_tables(client: DatabaseClient, metadata: BackupMetadata) -> list[str]:
    """Names of tables slated for restore that already exist in ``client``.

    Table names compare case-insensitively for ASCII letters, as the engine
    does.  The result follows ``loadOrder`` order; an empty list means the
    restore may go on.  Nothing is ever dropped here.
    """
    rows = await client.query("SELECT name FROM sqlite_master WHERE type = 'table'")
    existing = {fold_identifier(row["name"]) for row in rows}
    conflicts = [name for name in metadata.load_order if fold_identifier(name) in existing]
    if conflicts:
        logger.warning("destination already holds %d table(s): %s", len(conflicts), conflicts)
    return conflicts
