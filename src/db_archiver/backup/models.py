"""Backup tracking and result models."""

from pydantic import BaseModel, ConfigDict, Field


def backup_prefix(source_database: str, backup_name: str) -> str:
    """Common key prefix of every object in one backup."""
    return f"{source_database}/{backup_name}"


class BackupRecord(BaseModel):
    """Tracking entry: one per ``(source_database, backup_name)`` pair."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    source_database: str = Field(alias="dbName")
    backup_name: str = Field(alias="backupName")


class TableBackupSummary(BaseModel):
    """What was written for one table."""

    name: str
    indexes: int
    rows: int
    columns: list[str] = Field(default_factory=list)


class BackupResult(BaseModel):
    """Result of ``create_backup()``."""

    model_config = ConfigDict(populate_by_name=True)

    base_key: str = Field(alias="baseKey")
    tables: list[TableBackupSummary] = Field(default_factory=list)
    record: BackupRecord | None = None
