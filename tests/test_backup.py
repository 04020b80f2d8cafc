"""Tests for backup metadata, the writer, the tracker and archive packing."""

import io
import json
import logging
import tarfile
from unittest.mock import AsyncMock

import pytest

from db_archiver.backup.archive import pack_backup
from db_archiver.backup.metadata import build_backup_metadata, generate_backup_metadata
from db_archiver.backup.tracking import BackupTracker
from db_archiver.backup.writer import create_backup, fetch_table_rows
from db_archiver.errors import CyclicDependencyError, MetadataNotFoundError, MissingAssetsError
from db_archiver.schema.models import ForeignKeyEdge, IntrospectedTable, TableDescriptor


# ============================================================================
# Metadata
# ============================================================================


class TestBuildBackupMetadata:
    """Pure metadata assembly."""

    def test_constraints_stripped(self):
        tables = {
            "Orders": IntrospectedTable(
                name="Orders",
                sql="CREATE TABLE Orders (id, cid)",
                columns=["id", "cid"],
                constraints=[ForeignKeyEdge(table="Customers", from_column="cid", to_column="id")],
            )
        }
        metadata = build_backup_metadata(["Orders"], tables)
        document = metadata.to_document()

        assert document["loadOrder"] == ["Orders"]
        assert "constraints" not in document["tables"]["Orders"]
        assert document["tables"]["Orders"]["columns"] == ["id", "cid"]
        assert document["tables"]["Orders"]["type"] == "table"

    async def test_generate_from_live_database(self, source_db):
        metadata = await generate_backup_metadata(source_db)
        assert metadata.load_order == ["Customers", "Orders"]
        assert set(metadata.tables) == {"Customers", "Orders"}

    async def test_cycle_fails_backup_before_writing(self, dest_db, store):
        await dest_db.execute("CREATE TABLE A (id INTEGER PRIMARY KEY, b_id INTEGER REFERENCES B(id))")
        await dest_db.execute("CREATE TABLE B (id INTEGER PRIMARY KEY, a_id INTEGER REFERENCES A(id))")
        with pytest.raises(CyclicDependencyError):
            await create_backup(dest_db, store, None, "loopy", "b1")
        assert await store.list_keys() == []


# ============================================================================
# Writer
# ============================================================================


class TestCreateBackup:
    """Objects written to the blob store."""

    async def test_writes_metadata_and_tables(self, source_db, store):
        result = await create_backup(source_db, store, None, "main", "nightly")

        assert result.base_key == "main/nightly"
        assert sorted(await store.list_keys("main/nightly/")) == [
            "main/nightly/Customers.json",
            "main/nightly/Orders.json",
            "main/nightly/metadata.json",
        ]
        metadata = json.loads(await store.get("main/nightly/metadata.json"))
        assert metadata["loadOrder"] == ["Customers", "Orders"]
        assert metadata["tables"]["Orders"]["indexes"][0]["name"] == "idx_orders_customer"

        customers = json.loads(await store.get("main/nightly/Customers.json"))
        assert sorted(customers, key=lambda row: row[0]) == [
            [1, "Ada", "ada@example.com"],
            [2, "Grace", None],
        ]

    async def test_result_summaries(self, source_db, store):
        result = await create_backup(source_db, store, None, "main", "nightly")
        summary = {t.name: (t.indexes, t.rows) for t in result.tables}
        assert summary == {"Customers": (0, 2), "Orders": (1, 2)}
        assert result.record is None

    async def test_overwrite_is_allowed(self, source_db, store):
        await create_backup(source_db, store, None, "main", "nightly")
        await source_db.execute("DELETE FROM Orders")
        await create_backup(source_db, store, None, "main", "nightly")
        assert json.loads(await store.get("main/nightly/Orders.json")) == []

    async def test_empty_database(self, dest_db, store):
        result = await create_backup(dest_db, store, None, "empty", "b1")
        metadata = json.loads(await store.get("empty/b1/metadata.json"))
        assert metadata == {"loadOrder": [], "tables": {}}
        assert result.tables == []


class TestFetchTableRows:
    """Explicit column list in metadata order."""

    async def test_columns_in_descriptor_order(self, source_db):
        descriptor = TableDescriptor(
            name="Customers", sql="", columns=["email", "id"]
        )
        rows = await fetch_table_rows(source_db, descriptor)
        # Export order is whatever the engine scans; compare by id
        assert sorted(rows, key=lambda row: row[1]) == [["ada@example.com", 1], [None, 2]]

    async def test_no_select_star(self):
        client = AsyncMock()
        client.query_raw = AsyncMock(return_value=[])
        await fetch_table_rows(client, TableDescriptor(name="T", sql="", columns=["a", "b"]))
        assert client.query_raw.call_args.args[0] == 'SELECT "a", "b" FROM "T"'


# ============================================================================
# Tracker
# ============================================================================


class TestBackupTracker:
    """BackupList records are created once per identity."""

    async def test_record_and_list(self, tracking_db):
        tracker = BackupTracker(tracking_db)
        await tracker.ensure_table()
        first = await tracker.record_backup("main", "nightly")
        second = await tracker.record_backup("main", "weekly")

        records = await tracker.list_backups()
        assert [(r.source_database, r.backup_name) for r in records] == [
            ("main", "nightly"),
            ("main", "weekly"),
        ]
        assert first.id != second.id

    async def test_existing_record_returned_unchanged(self, tracking_db, caplog):
        tracker = BackupTracker(tracking_db)
        await tracker.ensure_table()
        first = await tracker.record_backup("main", "nightly")

        with caplog.at_level(logging.INFO):
            again = await tracker.record_backup("main", "nightly")

        assert again == first
        assert len(await tracker.list_backups()) == 1
        assert "overwrote an existing backup" in caplog.text

    async def test_ensure_table_idempotent(self, tracking_db):
        tracker = BackupTracker(tracking_db)
        await tracker.ensure_table()
        await tracker.ensure_table()
        assert await tracker.list_backups() == []

    async def test_writer_records_backup(self, source_db, tracking_db, store):
        tracker = BackupTracker(tracking_db)
        await tracker.ensure_table()
        result = await create_backup(source_db, store, tracker, "main", "nightly")
        assert result.record is not None
        assert result.record.backup_name == "nightly"
        assert result.model_dump(by_alias=True)["record"]["dbName"] == "main"


# ============================================================================
# Archive packing
# ============================================================================


class TestPackBackup:
    """Tar archive layout."""

    @pytest.mark.parametrize("compress,suffix,mode", [(False, ".tar", "r|"), (True, ".tgz", "r|gz")])
    async def test_member_order(self, source_db, store, compress, suffix, mode):
        await create_backup(source_db, store, None, "main", "nightly")
        key = await pack_backup(store, "main", "nightly", compress=compress)

        assert key == f"main/nightly{suffix}"
        with tarfile.open(fileobj=io.BytesIO(await store.get(key)), mode=mode) as tar:
            names = [member.name for member in tar]
        assert names == ["metadata.json", "Customers.json", "Orders.json"]

    async def test_missing_table_object(self, source_db, store):
        await create_backup(source_db, store, None, "main", "nightly")
        (store.root / "main" / "nightly" / "Orders.json").unlink()

        with pytest.raises(MissingAssetsError) as exc_info:
            await pack_backup(store, "main", "nightly")
        assert exc_info.value.keys == ["main/nightly/Orders.json"]

    async def test_missing_metadata(self, store):
        with pytest.raises(MetadataNotFoundError):
            await pack_backup(store, "main", "nope")
