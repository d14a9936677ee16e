from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from neo4j import READ_ACCESS, GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from ..errors import StoreUnavailable
from .models import Adjacency, GraphNode, GraphRelationship

logger = logging.getLogger(__name__)

# Integer ids are the exported node and relationship identity. id() is
# deprecated in Neo4j 5, so the driver is built with deprecation notices off.
_NODE_FIELDS = "id(n) AS id, labels(n) AS labels, properties(n) AS props"

_ITER_NODES = f"""
MATCH (n)
WHERE id(n) > $after AND ($labels IS NULL OR any(l IN labels(n) WHERE l IN $labels))
RETURN {_NODE_FIELDS}
ORDER BY id(n)
LIMIT $batch
"""

_GET_NODE = f"""
MATCH (n)
WHERE id(n) = $id
RETURN {_NODE_FIELDS}
"""

# Ordered so sibling-cap truncation is reproducible for a fixed store.
_ADJACENCIES = """
MATCH (n)-[r]-(m)
WHERE id(n) = $id
RETURN id(r) AS rid, id(startNode(r)) AS start, id(endNode(r)) AS end,
       type(r) AS type, properties(r) AS rprops,
       id(m) AS mid, labels(m) AS mlabels, properties(m) AS mprops
ORDER BY rid, mid
"""


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    # root enumeration page size
    batch_size: int = 500
    connect_attempts: int = 3


def node_from_row(row: dict[str, Any], prefix: str = "") -> GraphNode:
    return GraphNode(
        id=int(row[f"{prefix}id"]),
        labels=frozenset(row[f"{prefix}labels"] or ()),
        properties=dict(row[f"{prefix}props"] or {}),
    )


def adjacency_from_row(row: dict[str, Any]) -> Adjacency:
    rel = GraphRelationship(
        id=int(row["rid"]),
        start_id=int(row["start"]),
        end_id=int(row["end"]),
        type=row["type"],
        properties=dict(row["rprops"] or {}),
    )
    other = node_from_row(row, prefix="m")
    return Adjacency(relationship=rel, other=other)


class Neo4jSnapshot:
    """One read-only explicit transaction shared for a whole run.

    Driver transactions are not thread-safe, so every query takes the lock.
    """

    def __init__(self, tx, batch_size: int):
        self._tx = tx
        self._batch_size = batch_size
        self._lock = threading.Lock()

    def _fetch(self, cypher: str, **params: Any) -> list[dict[str, Any]]:
        try:
            with self._lock:
                result = self._tx.run(cypher, **params)
                return [record.data() for record in result]
        except (Neo4jError, DriverError) as e:
            raise StoreUnavailable(f"Graph read failed: {e}") from e

    def iter_nodes(self, labels: Iterable[str] | None = None) -> Iterator[GraphNode]:
        label_list = sorted(set(labels)) if labels is not None else None
        after = -1
        while True:
            rows = self._fetch(_ITER_NODES, after=after, labels=label_list, batch=self._batch_size)
            for row in rows:
                yield node_from_row(row)
            if len(rows) < self._batch_size:
                return
            after = int(rows[-1]["id"])

    def get_node(self, node_id: int) -> GraphNode | None:
        rows = self._fetch(_GET_NODE, id=node_id)
        return node_from_row(rows[0]) if rows else None

    def adjacencies(self, node_id: int) -> list[Adjacency]:
        out: list[Adjacency] = []
        seen: set[int] = set()
        for row in self._fetch(_ADJACENCIES, id=node_id):
            # an undirected match can return a self-loop once per direction
            if row["rid"] in seen:
                continue
            seen.add(row["rid"])
            out.append(adjacency_from_row(row))
        return out


class Neo4jGraphStore:
    """Neo4j-backed, read-only graph store.

    Dependency: neo4j>=5.
    """

    def __init__(self, cfg: Neo4jConfig):
        self.cfg = cfg
        try:
            self._driver = GraphDatabase.driver(
                cfg.uri,
                auth=(cfg.user, cfg.password),
                notifications_disabled_categories=["DEPRECATION"],
            )
            self._verify()
        except (Neo4jError, DriverError, ValueError) as e:
            raise StoreUnavailable(f"Unable to open Neo4j instance at {cfg.uri}: {e}") from e
        logger.info("Connected to Neo4j at %s (db=%s)", cfg.uri, cfg.database)

    def _verify(self) -> None:
        attempt = retry(
            reraise=True,
            stop=stop_after_attempt(self.cfg.connect_attempts),
            wait=wait_exponential_jitter(initial=0.5, max=10.0),
            retry=retry_if_exception_type(ServiceUnavailable),
        )
        attempt(self._driver.verify_connectivity)()

    def close(self) -> None:
        self._driver.close()

    @contextlib.contextmanager
    def snapshot(self) -> Iterator[Neo4jSnapshot]:
        session = self._driver.session(database=self.cfg.database, default_access_mode=READ_ACCESS)
        try:
            tx = session.begin_transaction()
        except (Neo4jError, DriverError) as e:
            session.close()
            raise StoreUnavailable(f"Unable to open a read transaction: {e}") from e
        try:
            yield Neo4jSnapshot(tx, self.cfg.batch_size)
        finally:
            try:
                tx.close()
            except (Neo4jError, DriverError) as e:
                logger.warning("Failed to close read transaction: %s", e)
            session.close()
