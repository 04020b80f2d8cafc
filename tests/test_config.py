"""Tests for configuration loading, the factory and error payloads."""

import pytest

from db_archiver.adapters.sqlite import AsyncSQLiteAdapter, normalize_sqlite_url
from db_archiver.config.loader import load_config
from db_archiver.config.models import ArchiverConfig, BlobStoreConfig, DatabaseBinding
from db_archiver.errors import ConfigError, TableConflictError, UnknownDatabaseBindingError
from db_archiver.factory import get_adapter, get_blob_store, resolve_url
from db_archiver.storage.local import LocalBlobStore
from db_archiver.storage.s3 import S3BlobStore

SAMPLE_TOML = """
tracking = "archiver"

[databases.main]
url = "sqlite:///data/main.db"
description = "Primary"

[databases.archiver]
url = "sqlite:///data/archiver.db"

[blob_store]
provider = "local"
path = "backups"
"""


# ============================================================================
# load_config
# ============================================================================


class TestLoadConfig:
    """TOML file to ArchiverConfig."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "db-archiver.toml"
        path.write_text(SAMPLE_TOML)
        config = load_config(path)

        assert set(config.databases) == {"main", "archiver"}
        assert config.databases["main"].description == "Primary"
        assert config.tracking == "archiver"
        assert config.tracking_table == "BackupList"
        assert config.blob_store.provider == "local"

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text(SAMPLE_TOML)
        monkeypatch.setenv("DB_ARCHIVER_CONFIG", str(path))
        assert "main" in load_config().databases

    def test_cwd_default(self, tmp_path, monkeypatch):
        (tmp_path / "db-archiver.toml").write_text(SAMPLE_TOML)
        monkeypatch.delenv("DB_ARCHIVER_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert "archiver" in load_config().databases

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("databases = [")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[databases.main]\ndescription = 'no url'\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_tracking_must_be_bound(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('tracking = "nowhere"\n[databases.main]\nurl = "sqlite://"\n')
        with pytest.raises(ConfigError, match="nowhere"):
            load_config(path)


# ============================================================================
# Factory
# ============================================================================


class TestFactory:
    """Bindings to adapters, blob store section to a store."""

    def test_password_substitution(self):
        binding = DatabaseBinding(url="sqlite:///[YOUR-PASSWORD].db", db_password="p@ss/word")
        assert resolve_url(binding) == "sqlite:///p%40ss%2Fword.db"

    def test_url_unchanged_without_password(self):
        assert resolve_url(DatabaseBinding(url="sqlite:///x.db")) == "sqlite:///x.db"

    async def test_get_adapter(self, tmp_path):
        config = ArchiverConfig(
            databases={"main": DatabaseBinding(url=f"sqlite:///{tmp_path / 'm.db'}")}
        )
        adapter = get_adapter(config, "main")
        try:
            assert isinstance(adapter, AsyncSQLiteAdapter)
            assert await adapter.test_connection() is True
        finally:
            await adapter.close()

    def test_unknown_binding(self):
        config = ArchiverConfig(databases={"main": DatabaseBinding(url="sqlite://")})
        with pytest.raises(UnknownDatabaseBindingError) as exc_info:
            get_adapter(config, "other")
        assert exc_info.value.to_dict()["message"] == "no such bound database 'other'"
        assert exc_info.value.available == ["main"]

    def test_local_store(self, tmp_path):
        store = get_blob_store(BlobStoreConfig(provider="local", path=str(tmp_path / "b")))
        assert isinstance(store, LocalBlobStore)

    def test_s3_store(self):
        store = get_blob_store(
            ArchiverConfig(blob_store=BlobStoreConfig(provider="s3", bucket="bkt", prefix="p"))
        )
        assert isinstance(store, S3BlobStore)
        assert store.bucket == "bkt"
        assert store.endpoint_url is None

    def test_s3_requires_bucket(self):
        with pytest.raises(ConfigError):
            get_blob_store(BlobStoreConfig(provider="s3"))

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="ftp"):
            get_blob_store(BlobStoreConfig(provider="ftp"))


class TestSQLiteUrl:
    def test_normalizes_scheme(self):
        assert normalize_sqlite_url("sqlite:///a.db") == "sqlite+aiosqlite:///a.db"
        assert normalize_sqlite_url("sqlite+aiosqlite:///a.db") == "sqlite+aiosqlite:///a.db"


class TestErrorPayload:
    def test_to_dict(self):
        error = TableConflictError(["Customers"])
        assert error.to_dict() == {
            "error": "TableConflictError",
            "message": "cannot restore; tables to be restored already exist",
            "details": ["Customers"],
        }
