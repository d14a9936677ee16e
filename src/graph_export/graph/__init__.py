"""Graph store subsystem.

This module provides:
- Immutable node/relationship snapshots and the closed label enums
- A graph store abstraction + Neo4j implementation
- An in-memory store for development and tests
"""

from .memory_store import InMemoryGraphStore
from .models import (
    Adjacency,
    ExtractionLimits,
    GraphNode,
    GraphRelationship,
    NodeSource,
    NodeType,
)
from .store import GraphSnapshot, GraphStore

__all__ = [
    "Adjacency",
    "ExtractionLimits",
    "GraphNode",
    "GraphRelationship",
    "GraphSnapshot",
    "GraphStore",
    "InMemoryGraphStore",
    "NodeSource",
    "NodeType",
]
