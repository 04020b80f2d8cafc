"""Tests for the foreign key dependency graph and load order."""

import pytest

from db_archiver.errors import CyclicDependencyError
from db_archiver.schema.dependencies import (
    build_dependency_graph,
    resolve_load_order,
    topological_order,
)
from db_archiver.schema.models import ForeignKeyEdge, IntrospectedTable


def _table(name: str, *refs: str) -> IntrospectedTable:
    return IntrospectedTable(
        name=name,
        sql=f"CREATE TABLE {name} (id)",
        columns=["id"],
        constraints=[ForeignKeyEdge(table=r, from_column=f"{r.lower()}_id", to_column="id") for r in refs],
    )


def _tables(*tables: IntrospectedTable) -> dict[str, IntrospectedTable]:
    return {t.name: t for t in tables}


def _assert_dependencies_first(order: list[str], tables: dict[str, IntrospectedTable]) -> None:
    for name, table in tables.items():
        for edge in table.constraints:
            if edge.table != name and edge.table in tables:
                assert order.index(edge.table) < order.index(name), (
                    f"{edge.table} must precede {name} in {order}"
                )


# ============================================================================
# Graph construction
# ============================================================================


class TestBuildDependencyGraph:
    """Adjacency mapping from constraints."""

    def test_simple_reference(self):
        graph = build_dependency_graph(_tables(_table("Customers"), _table("Orders", "Customers")))
        assert graph == {"Customers": [], "Orders": ["Customers"]}

    def test_self_reference_dropped(self):
        graph = build_dependency_graph(_tables(_table("Employees", "Employees")))
        assert graph == {"Employees": []}

    def test_multiple_columns_to_same_table_deduplicated(self):
        table = _table("Transfers", "Accounts", "Accounts")
        graph = build_dependency_graph(_tables(_table("Accounts"), table))
        assert graph["Transfers"] == ["Accounts"]

    def test_unknown_reference_dropped(self, caplog):
        graph = build_dependency_graph(_tables(_table("Orders", "Ghosts")))
        assert graph == {"Orders": []}
        assert "unknown table Ghosts" in caplog.text

    def test_input_not_mutated(self):
        tables = _tables(_table("Customers"), _table("Orders", "Customers"))
        before = {k: v.model_dump() for k, v in tables.items()}
        build_dependency_graph(tables)
        resolve_load_order(tables)
        assert {k: v.model_dump() for k, v in tables.items()} == before


# ============================================================================
# Load order
# ============================================================================


class TestResolveLoadOrder:
    """Depth-first post-order over the graph."""

    def test_referenced_table_first(self):
        tables = _tables(_table("Orders", "Customers"), _table("Customers"))
        assert resolve_load_order(tables) == ["Customers", "Orders"]

    def test_each_table_once(self):
        tables = _tables(
            _table("LineItems", "Orders", "Products"),
            _table("Orders", "Customers"),
            _table("Products"),
            _table("Customers"),
        )
        order = resolve_load_order(tables)
        assert sorted(order) == sorted(tables)
        assert len(order) == len(set(order))
        _assert_dependencies_first(order, tables)

    def test_diamond(self):
        tables = _tables(
            _table("D", "B", "C"),
            _table("B", "A"),
            _table("C", "A"),
            _table("A"),
        )
        order = resolve_load_order(tables)
        assert order[0] == "A"
        assert order[-1] == "D"
        _assert_dependencies_first(order, tables)

    def test_self_reference_does_not_block(self):
        tables = _tables(_table("Employees", "Employees", "Departments"), _table("Departments"))
        assert resolve_load_order(tables) == ["Departments", "Employees"]

    def test_empty(self):
        assert resolve_load_order({}) == []

    def test_repeatable(self):
        tables = _tables(_table("Orders", "Customers"), _table("Customers"))
        assert resolve_load_order(tables) == resolve_load_order(tables)

    def test_two_table_cycle_raises(self):
        tables = _tables(_table("A", "B"), _table("B", "A"))
        with pytest.raises(CyclicDependencyError) as exc_info:
            resolve_load_order(tables)
        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_longer_cycle_reports_path(self):
        graph = {"X": ["A"], "A": ["B"], "B": ["C"], "C": ["A"]}
        with pytest.raises(CyclicDependencyError) as exc_info:
            topological_order(graph)
        assert exc_info.value.cycle == ["A", "B", "C", "A"]
        assert "A -> B -> C -> A" in str(exc_info.value)

    def test_deep_chain_without_recursion_limit(self):
        depth = 5000
        graph = {
            f"T{i}": [f"T{i - 1}"] if i else [] for i in reversed(range(depth))
        }
        assert topological_order(graph) == [f"T{i}" for i in range(depth)]

    def test_cycle_at_end_of_deep_chain(self):
        depth = 3000
        graph = {f"T{i}": [f"T{i + 1}"] for i in range(depth)}
        graph[f"T{depth}"] = ["T0"]
        with pytest.raises(CyclicDependencyError) as exc_info:
            topological_order(graph)
        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1] == "T0"
        assert len(exc_info.value.cycle) == depth + 2
