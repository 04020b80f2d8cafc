"""Configuration: TOML loading and config models.

Usage:
    >>> from db_archiver.config import load_config, ArchiverConfig, DatabaseBinding
"""

from db_archiver.config.loader import load_config
from db_archiver.config.models import ArchiverConfig, BlobStoreConfig, DatabaseBinding

__all__ = ["load_config", "ArchiverConfig", "BlobStoreConfig", "DatabaseBinding"]
