"""Pydantic models for introspected schema and backup metadata.

This module contains schema-domain models:
- Persisted models: IndexDescriptor, TableDescriptor, BackupMetadata
- Transient models: ForeignKeyEdge, IntrospectedTable (constraints are
  only needed while the dependency graph is built)

The persisted metadata document has the shape:

    {"loadOrder": ["T1", "T2"],
     "tables": {"T1": {"type": "table", "name": "T1", "sql": "...",
                       "indexes": [{"type": "index", "name": "...", "sql": "..."}],
                       "columns": ["a", "b"]}}}
"""

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Persisted Models
# ============================================================================


class IndexDescriptor(BaseModel):
    """DDL for one index on a table."""

    type: str = "index"
    name: str
    sql: str


class TableDescriptor(BaseModel):
    """Everything needed to recreate one table and bind its rows.

    Example:
        >>> t = TableDescriptor(name="Customers", sql="CREATE TABLE Customers (id)")
        >>> t.columns
        []
    """

    type: str = "table"
    name: str
    sql: str
    indexes: list[IndexDescriptor] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)  # declaration order


class BackupMetadata(BaseModel):
    """Control document for one backup instance."""

    model_config = ConfigDict(populate_by_name=True)

    load_order: list[str] = Field(default_factory=list, alias="loadOrder")
    tables: dict[str, TableDescriptor] = Field(default_factory=dict)

    def to_document(self) -> dict:
        """Dump to the JSON document shape (``loadOrder`` key)."""
        return self.model_dump(by_alias=True)


# ============================================================================
# Transient Models
# ============================================================================


class ForeignKeyEdge(BaseModel):
    """One foreign key column pair: ``from`` here references ``table.to``."""

    model_config = ConfigDict(populate_by_name=True)

    table: str
    from_column: str = Field(alias="from")
    to_column: str | None = Field(default=None, alias="to")


class IntrospectedTable(TableDescriptor):
    """A table descriptor carrying its foreign-key edges."""

    constraints: list[ForeignKeyEdge] = Field(default_factory=list)

    def to_descriptor(self) -> TableDescriptor:
        """Strip the constraints, leaving the persisted descriptor."""
        return TableDescriptor(**self.model_dump(exclude={"constraints"}))
