from __future__ import annotations

import pytest

from graph_export.errors import SinkWriteError
from graph_export.graph import InMemoryGraphStore, NodeSource
from graph_export.settings import SourceConfig

ROOT_ID = 1


class BrokenSink:
    """Sink whose every write fails."""

    name = "broken"

    def put(self, key, payload, *, content_type, encoding):
        raise SinkWriteError(self.name, key, "disk full")


def star_graph(leaves: int, leaf_type: str | None = "dataset") -> InMemoryGraphStore:
    """Root 1 linked to leaves 10, 11, ... in insertion order."""
    store = InMemoryGraphStore()
    store.add_node(ROOT_ID, ["ands"], type="dataset", local_id="root-1")
    for i in range(leaves):
        props = {"local_id": f"leaf-{i}"}
        if leaf_type is not None:
            props["type"] = leaf_type
        store.add_node(10 + i, ["ands"], **props)
        store.add_relationship(ROOT_ID, 10 + i, "relatedTo")
    return store


@pytest.fixture
def ands_sources() -> list[SourceConfig]:
    return [SourceConfig(label=NodeSource.ANDS, key="local_id")]


@pytest.fixture
def star5() -> InMemoryGraphStore:
    return star_graph(5)
