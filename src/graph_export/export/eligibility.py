from __future__ import annotations

from typing import Iterable

from ..graph.models import GraphNode
from ..graph.store import GraphSnapshot
from ..settings import SourceConfig


def has_type(node: GraphNode, source: SourceConfig) -> bool:
    # empty restriction means any type
    if not source.types:
        return True
    return node.type in {t.value for t in source.types}


def has_connection(node: GraphNode, source: SourceConfig, snapshot: GraphSnapshot) -> bool:
    if not source.linked_sources:
        return True
    wanted = {s.value for s in source.linked_sources}
    for adj in snapshot.adjacencies(node.id):
        if adj.other.labels & wanted:
            return True
    return False


def matches(node: GraphNode, source: SourceConfig, snapshot: GraphSnapshot) -> bool:
    # adjacency scan last: it is the only check that reads the store
    return (
        node.has_label(source.label.value)
        and node.has_property(source.key)
        and has_type(node, source)
        and has_connection(node, source, snapshot)
    )


def is_eligible(node: GraphNode, sources: Iterable[SourceConfig], snapshot: GraphSnapshot) -> bool:
    """True when at least one source rule matches the node.

    Conditions are conjunctive within a rule and disjunctive across rules.
    """
    return any(matches(node, source, snapshot) for source in sources)
