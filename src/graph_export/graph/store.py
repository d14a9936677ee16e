from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, Iterator, Protocol

from .models import Adjacency, GraphNode


class GraphSnapshot(Protocol):
    """Read-only, consistent view of the graph for the duration of one run.

    Implementations must be safe for concurrent reads when the exporter
    runs with more than one worker.
    """

    def iter_nodes(self, labels: Iterable[str] | None = None) -> Iterator[GraphNode]: ...

    def get_node(self, node_id: int) -> GraphNode | None: ...

    def adjacencies(self, node_id: int) -> list[Adjacency]:
        """Incident relationships in both directions, each with its other endpoint.

        The order is the store's enumeration order; sibling-cap truncation
        depends on it.
        """
        ...


class GraphStore(Protocol):
    """Abstraction for the backing graph database."""

    def snapshot(self) -> AbstractContextManager[GraphSnapshot]: ...

    def close(self) -> None: ...
