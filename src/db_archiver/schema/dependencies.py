"""Foreign key dependency graph and table load order.

The graph is an explicit adjacency mapping ``table -> referenced tables``
built from the introspected constraints; descriptors are looked up by
name and never modified during traversal.

Usage:
    from db_archiver.schema.dependencies import resolve_load_order

    tables = await SchemaIntrospector(adapter).introspect()
    load_order = resolve_load_order(tables)
    # ["Customers", "Orders"]
"""

import logging
from collections.abc import Iterator, Mapping

from db_archiver.errors import CyclicDependencyError
from db_archiver.schema.models import IntrospectedTable

logger = logging.getLogger(__name__)


def build_dependency_graph(
    tables: Mapping[str, IntrospectedTable],
) -> dict[str, list[str]]:
    """Build the adjacency mapping from foreign key constraints.

    Each table maps to the unique tables it references, in constraint
    order.  Self references are dropped (a table can always be loaded
    after itself), as are references to tables that are not part of the
    mapping.

    Args:
        tables: Introspected tables with ``constraints`` populated.

    Returns:
        Dict mapping each table name to a list of dependency names.

    Example:
        graph = build_dependency_graph(tables)
        # {"Customers": [], "Orders": ["Customers"]}
    """
    graph: dict[str, list[str]] = {}
    for name, table in tables.items():
        deps: dict[str, None] = {}
        for edge in table.constraints:
            if edge.table == name:
                continue
            if edge.table not in tables:
                logger.warning(
                    "ignoring dependency of %s on unknown table %s", name, edge.table
                )
                continue
            deps[edge.table] = None
        graph[name] = list(deps)
    return graph


def topological_order(graph: Mapping[str, list[str]]) -> list[str]:
    """Depth-first post-order over ``graph``.

    Returns nodes so that every node follows all of its dependencies.  The
    order is valid, not minimal: tables without constraints are not
    guaranteed to come first.

    Raises:
        CyclicDependencyError: If a node is reached again while it is still
            on the current path.  Cycles are reported, never broken.
    """
    order: list[str] = []
    visited: set[str] = set()

    for root in graph:
        if root in visited:
            continue
        # Explicit stack of (node, remaining deps) so depth is unbounded
        path: list[str] = [root]
        on_path: set[str] = {root}
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(graph.get(root, [])))]
        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if dep in visited:
                    continue
                if dep in on_path:
                    start = path.index(dep)
                    raise CyclicDependencyError(path[start:] + [dep])
                path.append(dep)
                on_path.add(dep)
                stack.append((dep, iter(graph.get(dep, []))))
                break
            else:
                stack.pop()
                path.pop()
                on_path.discard(node)
                visited.add(node)
                order.append(node)

    return order


def resolve_load_order(tables: Mapping[str, IntrospectedTable]) -> list[str]:
    """Compute the order in which tables can be loaded into an empty database.

    Args:
        tables: Introspected tables with ``constraints`` populated.

    Returns:
        Table names; no table precedes a table it references.

    Raises:
        CyclicDependencyError: If the foreign keys form a cycle.
    """
    return topological_order(build_dependency_graph(tables))
