"""Shared fixtures: real SQLite databases and a filesystem blob store."""

import pytest

from db_archiver.adapters.sqlite import AsyncSQLiteAdapter
from db_archiver.storage.local import LocalBlobStore

CUSTOMERS_DDL = (
    "CREATE TABLE Customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT UNIQUE)"
)
ORDERS_DDL = (
    "CREATE TABLE Orders (id INTEGER PRIMARY KEY, "
    "customer_id INTEGER NOT NULL REFERENCES Customers(id), total REAL)"
)
ORDERS_INDEX_DDL = "CREATE INDEX idx_orders_customer ON Orders (customer_id)"


async def populate_shop(adapter: AsyncSQLiteAdapter) -> None:
    """Customers <- Orders, with a couple of rows each."""
    for sql in (CUSTOMERS_DDL, ORDERS_DDL, ORDERS_INDEX_DDL):
        await adapter.execute(sql)
    await adapter.execute(
        "INSERT INTO Customers (id, name, email) VALUES (?, ?, ?)", (1, "Ada", "ada@example.com")
    )
    await adapter.execute(
        "INSERT INTO Customers (id, name, email) VALUES (?, ?, ?)", (2, "Grace", None)
    )
    await adapter.execute(
        "INSERT INTO Orders (id, customer_id, total) VALUES (?, ?, ?)", (10, 1, 9.5)
    )
    await adapter.execute(
        "INSERT INTO Orders (id, customer_id, total) VALUES (?, ?, ?)", (11, 2, 20.0)
    )


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
async def source_db(tmp_path):
    adapter = AsyncSQLiteAdapter(f"sqlite:///{tmp_path / 'source.db'}")
    await populate_shop(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
async def dest_db(tmp_path):
    adapter = AsyncSQLiteAdapter(f"sqlite:///{tmp_path / 'dest.db'}")
    yield adapter
    await adapter.close()


@pytest.fixture
async def tracking_db(tmp_path):
    adapter = AsyncSQLiteAdapter(f"sqlite:///{tmp_path / 'tracking.db'}")
    yield adapter
    await adapter.close()
