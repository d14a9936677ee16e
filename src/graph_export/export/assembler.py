from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..errors import SerializationError
from ..graph.models import GraphNode, GraphRelationship
from ..graph.store import GraphSnapshot

EXTRA_ROOT = "root"
EXTRA_INCOMPLETE = "incomplete"

CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "UTF-8"

# Record keys that node properties may not override.
_RESERVED_KEYS = frozenset({"id", "type", "extra"})


@dataclass
class NodeRecord:
    id: int
    type: str | None
    properties: dict[str, Any] = field(default_factory=dict)
    extra: list[str] = field(default_factory=list)

    def add_extra(self, flag: str) -> None:
        if flag not in self.extra:
            self.extra.append(flag)

    @property
    def root(self) -> bool:
        return EXTRA_ROOT in self.extra

    @property
    def incomplete(self) -> bool:
        return EXTRA_INCOMPLETE in self.extra

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "type": self.type}
        for key, value in self.properties.items():
            if key not in _RESERVED_KEYS:
                out[key] = list(value) if isinstance(value, tuple) else value
        out["extra"] = list(self.extra)
        return out


@dataclass(frozen=True, slots=True)
class RelationshipRecord:
    id: int
    from_id: int
    to_id: int
    type: str

    @classmethod
    def from_relationship(cls, rel: GraphRelationship) -> "RelationshipRecord":
        return cls(id=rel.id, from_id=rel.start_id, to_id=rel.end_id, type=rel.type)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "from": self.from_id, "to": self.to_id, "type": self.type}


@dataclass
class OutputDocument:
    """The exported graph of one root node."""

    root_id: int
    nodes: list[NodeRecord] = field(default_factory=list)
    relationships: list[RelationshipRecord] = field(default_factory=list)

    @property
    def is_exportable(self) -> bool:
        # a root without neighbours carries no relationship value
        return len(self.nodes) > 1

    def node(self, node_id: int) -> NodeRecord | None:
        for record in self.nodes:
            if record.id == node_id:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "relationships": [r.to_dict() for r in self.relationships],
        }

    def to_json(self) -> bytes:
        try:
            text = json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"), allow_nan=False)
            return text.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Unable to serialize graph of node {self.root_id}: {e}") from e


def assemble(root_id: int, node_map: Mapping[int, GraphNode], snapshot: GraphSnapshot) -> OutputDocument:
    """Turn an extracted arena into a self-consistent document.

    A relationship is owned by its start node and emitted once, only when
    both endpoints are in `node_map`. A node with any store relationship whose
    other endpoint is missing is flagged incomplete.
    """
    doc = OutputDocument(root_id=root_id)
    emitted: set[int] = set()

    for node in node_map.values():
        record = NodeRecord(id=node.id, type=node.type, properties=dict(node.properties))
        if node.id == root_id:
            record.add_extra(EXTRA_ROOT)

        for adj in snapshot.adjacencies(node.id):
            rel = adj.relationship
            if rel.start_id == node.id:
                if rel.end_id not in node_map:
                    record.add_extra(EXTRA_INCOMPLETE)
                elif rel.id not in emitted:
                    emitted.add(rel.id)
                    doc.relationships.append(RelationshipRecord.from_relationship(rel))
            elif rel.start_id not in node_map:
                record.add_extra(EXTRA_INCOMPLETE)

        doc.nodes.append(record)

    return doc
