"""
Bounded breadth-first neighbourhood extraction.

Starting from a root node the extractor walks the graph wave by wave and
collects an arena (node id -> node) under three independent caps:

- ``max_level``: maximum distance from the root (0 = root only)
- ``max_nodes``: global node budget; extraction stops as soon as the arena
  reaches it
- ``max_siblings``: how many newly discovered children each parent may carry
  into the next wave

Nodes without a ``type`` property and institution nodes are never admitted.
Truncation order follows the store's relationship enumeration order.
"""

from __future__ import annotations

import logging
import time

from ..errors import ExtractionTimeout
from ..graph.models import ExtractionLimits, GraphNode, NodeType
from ..graph.store import GraphSnapshot

logger = logging.getLogger(__name__)


def is_admissible(node: GraphNode) -> bool:
    node_type = node.type
    return node_type is not None and node_type != NodeType.INSTITUTION.value


def extract(
    root: GraphNode,
    snapshot: GraphSnapshot,
    limits: ExtractionLimits,
    *,
    arena: dict[int, GraphNode] | None = None,
    deadline: float | None = None,
) -> dict[int, GraphNode]:
    """Collect the bounded neighbourhood of `root`.

    Args:
        root: Origin of the traversal; always part of the result.
        snapshot: Read-only store view.
        limits: Depth, node and sibling caps.
        arena: Optional mapping to fill; a fresh one is created otherwise.
        deadline: ``time.monotonic()`` value checked at every wave boundary.

    Returns:
        The arena, mapping node id to node, root included.

    Raises:
        ExtractionTimeout: If `deadline` passed before the next wave started.
        StoreUnavailable: Propagated from the snapshot on read failures.
    """
    if arena is None:
        arena = {}
    arena[root.id] = root
    if limits.node_budget_reached(len(arena)):
        return arena

    wave = [root]
    level = 0
    while wave and level < limits.max_level:
        if deadline is not None and time.monotonic() > deadline:
            raise ExtractionTimeout(f"Extraction of node {root.id} timed out at level {level}")

        carry = level + 1 < limits.max_level
        next_wave: list[GraphNode] = []
        for parent in wave:
            admitted = 0
            for adj in snapshot.adjacencies(parent.id):
                other = adj.other
                if other.id in arena or not is_admissible(other):
                    continue

                arena[other.id] = other
                if limits.node_budget_reached(len(arena)):
                    logger.debug("Node budget of %d reached for root %d", limits.max_nodes, root.id)
                    return arena

                if carry and limits.sibling_budget_left(admitted):
                    next_wave.append(other)
                    admitted += 1

        logger.debug("Root %d level %d: %d nodes, %d queued", root.id, level, len(arena), len(next_wave))
        wave = next_wave
        level += 1

    return arena
