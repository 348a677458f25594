"""Foreign-key relationship analysis.

Turns foreign keys into ``Relationship`` edges and runs graph algorithms
over them: cycle detection, population (topological) order and cascade
chains. The graph is keyed by table name; edges are a flat list.

No operation raises on cyclic, disconnected or empty input.

Usage:
    from schema_lens.schema.relationships import RelationshipAnalyzer

    analyzer = RelationshipAnalyzer()
    relationships = analyzer.extract_relationships(schema.tables)
    analyzer.get_population_order(relationships)
    # ['users', 'orders', 'order_items']
"""

import heapq
import logging
from collections import defaultdict
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from schema_lens.schema.models import Relationship, TableInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyEdge:
    """``from_table`` depends on ``to_table`` through ``column``."""

    from_table: str
    to_table: str
    column: str


@dataclass(frozen=True)
class DependencyGraph:
    """Table dependency graph.

    Attributes:
        nodes: Every table named by a relationship, sorted.
        edges: One edge per relationship, duplicates preserved.
    """

    nodes: list[str] = field(default_factory=list)
    edges: list[DependencyEdge] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "nodes": list(self.nodes),
            "edges": [
                {"from": e.from_table, "to": e.to_table, "column": e.column}
                for e in self.edges
            ],
        }


class RelationshipAnalyzer:
    """Stateless relationship and dependency-graph operations."""

    def extract_relationships(self, tables: Sequence[TableInfo]) -> list[Relationship]:
        """Flatten every foreign key of every table, in declaration order."""
        return [
            Relationship.from_foreign_key(fk)
            for table in tables
            for fk in table.foreign_keys
        ]

    def get_relationships_for_table(
        self, table_name: str, relationships: Sequence[Relationship]
    ) -> tuple[list[Relationship], list[Relationship]]:
        """Return ``(outgoing, incoming)`` relationships of *table_name*.

        Outgoing: the table references others. Incoming: others reference it.
        A self-referential relationship appears in both.
        """
        outgoing = [rel for rel in relationships if rel.from_table == table_name]
        incoming = [rel for rel in relationships if rel.to_table == table_name]
        return outgoing, incoming

    def build_dependency_graph(self, relationships: Sequence[Relationship]) -> DependencyGraph:
        nodes: set[str] = set()
        edges: list[DependencyEdge] = []

        for rel in relationships:
            nodes.add(rel.from_table)
            nodes.add(rel.to_table)
            edges.append(DependencyEdge(rel.from_table, rel.to_table, rel.from_column))

        return DependencyGraph(nodes=sorted(nodes), edges=edges)

    def detect_circular_dependencies(self, relationships: Sequence[Relationship]) -> list[list[str]]:
        """Find dependency cycles with a depth-first back-edge search.

        Every unvisited node (in sorted order) starts a DFS. An edge to a
        node still on the current DFS path closes a cycle; the cycle is the
        path from that node's position to the current node, without
        repeating the first node at the end. A self-referential foreign key
        is a one-element cycle. All cycles found are reported.

        Examples:
            >>> rels = [Relationship(from_table="a", from_column="b_id", to_table="b", to_column="id"),
            ...         Relationship(from_table="b", from_column="a_id", to_table="a", to_column="id")]
            >>> RelationshipAnalyzer().detect_circular_dependencies(rels)
            [['a', 'b']]
        """
        graph = self.build_dependency_graph(relationships)
        adjacency: dict[str, list[str]] = defaultdict(list)
        for edge in graph.edges:
            adjacency[edge.from_table].append(edge.to_table)

        visited: set[str] = set()
        on_stack: set[str] = set()
        cycles: list[list[str]] = []

        # Explicit stack of (node, remaining targets); path mirrors it.
        for start in graph.nodes:
            if start in visited:
                continue
            visited.add(start)
            on_stack.add(start)
            path = [start]
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(adjacency[start]))]

            while stack:
                node, targets = stack[-1]
                target = next(targets, None)
                if target is None:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node)
                elif target not in visited:
                    visited.add(target)
                    on_stack.add(target)
                    path.append(target)
                    stack.append((target, iter(adjacency[target])))
                elif target in on_stack:
                    cycles.append(path[path.index(target):])

        return cycles

    def get_cascade_chains(
        self, table_name: str, relationships: Sequence[Relationship]
    ) -> list[list[str]]:
        """Tables deleted transitively when a row of *table_name* is deleted.

        Follows incoming ON DELETE CASCADE relationships depth-first. Each
        chain starts at *table_name* and ends at a table with no further
        cascading children. Trivial single-table chains are not returned,
        and a chain stops when it would revisit a table already on it.
        """
        children_by_parent: dict[str, list[str]] = defaultdict(list)
        for rel in relationships:
            if rel.cascades_on_delete():
                children_by_parent[rel.to_table].append(rel.from_table)

        chains: list[list[str]] = []
        stack: list[tuple[list[str], Iterator[str]]] = []

        def enter(chain: list[str]) -> None:
            on_chain = set(chain)
            children = [child for child in children_by_parent.get(chain[-1], []) if child not in on_chain]
            if children:
                stack.append((chain, iter(children)))
            elif len(chain) > 1:
                chains.append(chain)

        enter([table_name])
        while stack:
            chain, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
            else:
                enter(chain + [child])

        return chains

    def get_self_referential_relationships(
        self, relationships: Sequence[Relationship]
    ) -> list[Relationship]:
        return [rel for rel in relationships if rel.is_self_referential()]

    def get_required_relationships(self, relationships: Sequence[Relationship]) -> list[Relationship]:
        return [rel for rel in relationships if rel.is_required()]

    def get_optional_relationships(self, relationships: Sequence[Relationship]) -> list[Relationship]:
        return [rel for rel in relationships if rel.is_optional()]

    def get_independent_tables(self, tables: Sequence[TableInfo]) -> list[TableInfo]:
        """Tables with no outgoing foreign keys."""
        return [table for table in tables if not table.has_foreign_keys()]

    def get_population_order(self, relationships: Sequence[Relationship]) -> list[str]:
        """Order tables so referenced tables come before referencing ones.

        Kahn's algorithm where a table's counter is the number of tables it
        still waits on. Ready tables are emitted alphabetically, so the
        result is deterministic. Self-references do not block a table (it
        can be seeded with the reference left NULL). Tables in a multi-table
        cycle, and tables that depend on them, never become ready and are
        left out.
        """
        graph = self.build_dependency_graph(relationships)
        waiting_on: dict[str, int] = {node: 0 for node in graph.nodes}
        dependents: dict[str, list[str]] = defaultdict(list)

        for edge in graph.edges:
            if edge.from_table == edge.to_table:
                continue
            waiting_on[edge.from_table] += 1
            dependents[edge.to_table].append(edge.from_table)

        ready = [node for node, count in waiting_on.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []

        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for dependent in dependents[node]:
                waiting_on[dependent] -= 1
                if waiting_on[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) < len(graph.nodes):
            skipped = sorted(set(graph.nodes) - set(order))
            logger.warning(
                f"Population order omits {len(skipped)} table(s) in dependency cycles: "
                f"{', '.join(skipped)}"
            )

        return order
