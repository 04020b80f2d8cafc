"""Restore result models."""

from pydantic import BaseModel, ConfigDict, Field


class TableRestoreResult(BaseModel):
    """One restored table: its name, index count and inserted row count."""

    name: str
    indexes: int
    rows: int


class RestoreResult(BaseModel):
    """Result of ``restore_backup()``."""

    model_config = ConfigDict(populate_by_name=True)

    from_database: str = Field(alias="fromDatabase")
    to_database: str = Field(alias="toDatabase")
    name: str
    base_key: str = Field(alias="baseKey")
    variant: str  # "files" or "archive"
    tables: list[TableRestoreResult] = Field(default_factory=list)
