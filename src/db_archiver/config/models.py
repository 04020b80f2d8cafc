"""Pydantic models for archiver configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseBinding(BaseModel):
    """A named database connection from db-archiver.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class BlobStoreConfig(BaseModel):
    """Where backups are written."""

    provider: str = "local"  # "local" or "s3"
    path: str = "backups"
    bucket: str = ""
    prefix: str = ""
    region: str = "us-east-1"
    endpoint_url: str = ""


class ArchiverConfig(BaseModel):
    """Complete archiver configuration from db-archiver.toml."""

    databases: dict[str, DatabaseBinding] = Field(default_factory=dict)
    tracking: str | None = None  # binding that holds the BackupList table
    tracking_table: str = "BackupList"
    blob_store: BlobStoreConfig = Field(default_factory=BlobStoreConfig)
