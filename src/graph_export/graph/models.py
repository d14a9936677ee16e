from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ..errors import ConfigurationError

Scalar = Union[str, int, float, bool]
PropertyValue = Union[Scalar, list, tuple]

PROPERTY_TYPE = "type"


class NodeType(str, Enum):
    """Values of the `type` property carried by exportable nodes."""

    DATASET = "dataset"
    GRANT = "grant"
    RESEARCHER = "researcher"
    INSTITUTION = "institution"
    SERVICE = "service"
    PUBLICATION = "publication"
    PATTERN = "pattern"
    VERSION = "version"


class NodeSource(str, Enum):
    """Source labels; a node carries the label of every registry it came from."""

    SYSTEM = "system"
    ANDS = "ands"
    ARC = "arc"
    NHMRC = "nhmrc"
    WEB = "web"
    ORCID = "orcid"
    DRYAD = "dryad"
    CROSSREF = "crossref"
    FIGSHARE = "figshare"
    CERN = "cern"
    DLI = "dli"
    DARA = "dara"
    NCI = "nci"
    GESIS = "gesis"


@dataclass(frozen=True, slots=True)
class GraphNode:
    """Immutable snapshot of a store node.

    `id` is the store's stable integer identity.
    """

    id: int
    labels: frozenset[str] = frozenset()
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str | None:
        value = self.properties.get(PROPERTY_TYPE)
        if isinstance(value, str) and value:
            return value
        return None

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def has_property(self, key: str) -> bool:
        return key in self.properties


@dataclass(frozen=True, slots=True)
class GraphRelationship:
    """A directed, typed edge between two store nodes."""

    id: int
    start_id: int
    end_id: int
    type: str
    properties: dict[str, Any] = field(default_factory=dict)

    def other_id(self, node_id: int) -> int:
        return self.end_id if self.start_id == node_id else self.start_id


@dataclass(frozen=True, slots=True)
class Adjacency:
    """An incident relationship together with its other endpoint."""

    relationship: GraphRelationship
    other: GraphNode


@dataclass(frozen=True, slots=True)
class ExtractionLimits:
    """Traversal caps.

    A zero `max_nodes` or `max_siblings` disables that cap. A zero
    `max_level` keeps only the root.
    """

    max_level: int = 2
    max_nodes: int = 100
    max_siblings: int = 10

    def __post_init__(self) -> None:
        for name in ("max_level", "max_nodes", "max_siblings"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")

    def node_budget_reached(self, size: int) -> bool:
        return self.max_nodes > 0 and size >= self.max_nodes

    def sibling_budget_left(self, admitted: int) -> bool:
        return self.max_siblings == 0 or admitted < self.max_siblings
