"""Schema introspection and dependency resolution.

Provides live database introspection (``SchemaIntrospector``), the
foreign key dependency graph and load order (``resolve_load_order``),
and the metadata models shared by backup and restore.

Usage:
    from db_archiver.schema import SchemaIntrospector, resolve_load_order
    from db_archiver.schema import BackupMetadata, TableDescriptor
"""

from db_archiver.schema.dependencies import (
    build_dependency_graph,
    resolve_load_order,
    topological_order,
)
from db_archiver.schema.introspector import SchemaIntrospector
from db_archiver.schema.models import (
    BackupMetadata,
    ForeignKeyEdge,
    IndexDescriptor,
    IntrospectedTable,
    TableDescriptor,
)

__all__ = [
    "SchemaIntrospector",
    "build_dependency_graph",
    "resolve_load_order",
    "topological_order",
    "BackupMetadata",
    "ForeignKeyEdge",
    "IndexDescriptor",
    "IntrospectedTable",
    "TableDescriptor",
]
