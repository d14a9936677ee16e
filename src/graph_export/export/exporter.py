from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from ..errors import ExportError, NodeIneligible, NodeNotFound
from ..graph.models import ExtractionLimits, GraphNode
from ..graph.store import GraphSnapshot, GraphStore
from ..settings import SourceConfig
from .assembler import assemble
from .eligibility import is_eligible
from .extractor import extract
from .naming import generate_names
from .sinks import SinkDispatcher

logger = logging.getLogger(__name__)


class RootStatus(str, Enum):
    EXPORTED = "exported"
    SUPPRESSED = "suppressed"  # singleton graph
    UNNAMED = "unnamed"
    FAILED = "failed"


@dataclass(slots=True)
class RootOutcome:
    node_id: int
    status: RootStatus
    node_count: int = 0
    relationship_count: int = 0
    written: list[str] = field(default_factory=list)
    error: str | None = None


class SingleNodeStatus(str, Enum):
    EXPORTED = "exported"
    NOT_FOUND = "not_found"
    INELIGIBLE = "ineligible"
    FAILED = "failed"


@dataclass(slots=True)
class SingleNodeResult:
    node_id: int
    status: SingleNodeStatus
    outcome: RootOutcome | None = None

    def raise_for_status(self) -> None:
        if self.status is SingleNodeStatus.NOT_FOUND:
            raise NodeNotFound(self.node_id)
        if self.status is SingleNodeStatus.INELIGIBLE:
            raise NodeIneligible(self.node_id)


@dataclass(frozen=True, slots=True)
class RunStats:
    roots_seen: int = 0
    roots_eligible: int = 0
    roots_exported: int = 0
    roots_suppressed: int = 0
    roots_unnamed: int = 0
    failed: int = 0
    documents_written: int = 0
    name_collisions: int = 0
    elapsed_ms: float = 0.0

    @property
    def avg_ms_per_document(self) -> float:
        if not self.documents_written:
            return 0.0
        return self.elapsed_ms / self.documents_written


class Exporter:
    """Exports one JSON graph document per eligible root node.

    Each root is processed independently against a shared read-only
    snapshot; outcomes are folded into a `RunStats` value by the calling
    thread, so workers share no counters.
    """

    def __init__(
        self,
        store: GraphStore,
        dispatcher: SinkDispatcher,
        sources: Iterable[SourceConfig],
        limits: ExtractionLimits,
        *,
        workers: int = 1,
        wave_timeout_s: float | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.sources = list(sources)
        self.limits = limits
        self.workers = max(1, workers)
        self.wave_timeout_s = wave_timeout_s

    @property
    def labels(self) -> list[str]:
        return sorted({s.label.value for s in self.sources})

    def process_node(self, node: GraphNode, snapshot: GraphSnapshot) -> RootOutcome:
        """Extract, assemble, name and write the document of one root."""
        names = generate_names(node, self.sources)
        if not names:
            logger.info("Unable to generate json name for node: %d", node.id)
            return RootOutcome(node.id, RootStatus.UNNAMED)

        deadline = time.monotonic() + self.wave_timeout_s if self.wave_timeout_s else None
        arena = extract(node, snapshot, self.limits, deadline=deadline)
        logger.info("Node %d: found %d unique nodes", node.id, len(arena))

        doc = assemble(node.id, arena, snapshot)
        outcome = RootOutcome(
            node.id,
            RootStatus.SUPPRESSED,
            node_count=len(doc.nodes),
            relationship_count=len(doc.relationships),
        )
        if not doc.is_exportable:
            return outcome

        payload = doc.to_json()
        for name in sorted(names):
            report = self.dispatcher.dispatch(name, payload)
            if report.ok:
                outcome.written.append(name)
        if not outcome.written:
            logger.error("Node %d: no destination accepted any of %d documents", node.id, len(names))
            outcome.status = RootStatus.FAILED
            outcome.error = "no destination accepted the document"
            return outcome
        outcome.status = RootStatus.EXPORTED
        return outcome

    def _safe_process(self, node: GraphNode, snapshot: GraphSnapshot) -> RootOutcome:
        try:
            return self.process_node(node, snapshot)
        except ExportError as e:
            logger.error("Failed to export node %d: %s", node.id, e)
            return RootOutcome(node.id, RootStatus.FAILED, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error while exporting node %d", node.id)
            return RootOutcome(node.id, RootStatus.FAILED, error=repr(e))

    def _outcomes(self, snapshot: GraphSnapshot, roots: Iterator[GraphNode]) -> Iterator[RootOutcome]:
        if self.workers == 1:
            for node in roots:
                yield self._safe_process(node, snapshot)
            return

        # bounded in-flight window keeps memory at roughly `workers` subgraphs
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="export") as pool:
            pending = []
            for node in roots:
                pending.append(pool.submit(self._safe_process, node, snapshot))
                if len(pending) >= self.workers * 2:
                    yield pending.pop(0).result()
            for future in pending:
                yield future.result()

    def run(self) -> RunStats:
        logger.info(
            "Export started: labels=%s max_level=%d max_nodes=%d max_siblings=%d workers=%d",
            ",".join(self.labels),
            self.limits.max_level,
            self.limits.max_nodes,
            self.limits.max_siblings,
            self.workers,
        )
        begin = time.perf_counter()
        roots_seen = 0
        counts = {status: 0 for status in RootStatus}
        documents = 0
        collisions = 0
        owners: dict[str, int] = {}

        with self.store.snapshot() as snapshot:
            def eligible_roots() -> Iterator[GraphNode]:
                nonlocal roots_seen
                for node in snapshot.iter_nodes(self.labels):
                    roots_seen += 1
                    if is_eligible(node, self.sources, snapshot):
                        yield node

            for outcome in self._outcomes(snapshot, eligible_roots()):
                counts[outcome.status] += 1
                documents += len(outcome.written)
                for name in outcome.written:
                    previous = owners.get(name)
                    if previous is not None and previous != outcome.node_id:
                        collisions += 1
                        logger.warning(
                            "Document %s of node %d overwrote the one of node %d",
                            name,
                            outcome.node_id,
                            previous,
                        )
                    owners[name] = outcome.node_id

        stats = RunStats(
            roots_seen=roots_seen,
            roots_eligible=sum(counts.values()),
            roots_exported=counts[RootStatus.EXPORTED],
            roots_suppressed=counts[RootStatus.SUPPRESSED],
            roots_unnamed=counts[RootStatus.UNNAMED],
            failed=counts[RootStatus.FAILED],
            documents_written=documents,
            name_collisions=collisions,
            elapsed_ms=(time.perf_counter() - begin) * 1000.0,
        )
        logger.info(
            "Done. Exported %d documents over %.0f ms. Average %.3f ms per document",
            stats.documents_written,
            stats.elapsed_ms,
            stats.avg_ms_per_document,
        )
        return stats

    def run_test_node(self, node_id: int) -> SingleNodeResult:
        """Export exactly one node; the caller maps the status to an exit code."""
        logger.info("Test node id: %d", node_id)
        with self.store.snapshot() as snapshot:
            node = snapshot.get_node(node_id)
            if node is None:
                logger.error("Test node %d does not exist", node_id)
                return SingleNodeResult(node_id, SingleNodeStatus.NOT_FOUND)
            if not is_eligible(node, self.sources, snapshot):
                logger.error("Test node %d is not valid for exporting", node_id)
                return SingleNodeResult(node_id, SingleNodeStatus.INELIGIBLE)

            outcome = self._safe_process(node, snapshot)

        status = SingleNodeStatus.FAILED if outcome.status is RootStatus.FAILED else SingleNodeStatus.EXPORTED
        return SingleNodeResult(node_id, status, outcome)
