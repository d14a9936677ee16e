from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from .models import Adjacency, GraphNode, GraphRelationship


@dataclass
class InMemoryGraphStore:
    """Dict-backed graph store for local development and unit tests.

    Relationships are enumerated in insertion order, which makes traversal
    order fully reproducible.
    """

    nodes: dict[int, GraphNode] = field(default_factory=dict)
    relationships: dict[int, GraphRelationship] = field(default_factory=dict)
    _incident: dict[int, list[int]] = field(default_factory=dict, repr=False)

    def add_node(self, node_id: int, labels: Iterable[str] = (), **properties: Any) -> GraphNode:
        node = GraphNode(id=node_id, labels=frozenset(labels), properties=dict(properties))
        self.nodes[node_id] = node
        self._incident.setdefault(node_id, [])
        return node

    def add_relationship(
        self, start_id: int, end_id: int, rel_type: str = "relatedTo", rel_id: int | None = None, **properties: Any
    ) -> GraphRelationship:
        if start_id not in self.nodes or end_id not in self.nodes:
            raise KeyError(f"both endpoints must exist: {start_id} -> {end_id}")
        if rel_id is None:
            rel_id = max(self.relationships, default=-1) + 1
        rel = GraphRelationship(
            id=rel_id, start_id=start_id, end_id=end_id, type=rel_type, properties=dict(properties)
        )
        self.relationships[rel_id] = rel
        self._incident[start_id].append(rel_id)
        if end_id != start_id:
            self._incident[end_id].append(rel_id)
        return rel

    # GraphStore

    @contextlib.contextmanager
    def snapshot(self) -> Iterator["InMemoryGraphStore"]:
        yield self

    def close(self) -> None:
        return None

    # GraphSnapshot

    def iter_nodes(self, labels: Iterable[str] | None = None) -> Iterator[GraphNode]:
        wanted = set(labels) if labels is not None else None
        for node in list(self.nodes.values()):
            if wanted is None or node.labels & wanted:
                yield node

    def get_node(self, node_id: int) -> GraphNode | None:
        return self.nodes.get(node_id)

    def adjacencies(self, node_id: int) -> list[Adjacency]:
        out: list[Adjacency] = []
        for rel_id in self._incident.get(node_id, []):
            rel = self.relationships[rel_id]
            out.append(Adjacency(relationship=rel, other=self.nodes[rel.other_id(node_id)]))
        return out
