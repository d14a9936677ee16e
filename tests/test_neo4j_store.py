from __future__ import annotations

import pytest
from neo4j.exceptions import ServiceUnavailable

from graph_export.errors import StoreUnavailable
from graph_export.graph import neo4j_store
from graph_export.graph.neo4j_store import Neo4jConfig, Neo4jGraphStore, Neo4jSnapshot


class FakeRecord:
    def __init__(self, data: dict):
        self._data = data

    def data(self) -> dict:
        return dict(self._data)


class FakeTx:
    """Answers the three read queries from plain row lists."""

    def __init__(self, nodes: list[dict], adjacency_rows: list[dict] | None = None, error: Exception | None = None):
        self.nodes = nodes
        self.adjacency_rows = adjacency_rows or []
        self.error = error
        self.calls: list[dict] = []
        self.closed = False

    def run(self, cypher: str, **params):
        if self.error is not None:
            raise self.error
        self.calls.append(params)
        if "LIMIT $batch" in cypher:
            rows = [n for n in self.nodes if n["id"] > params["after"]]
            if params["labels"] is not None:
                rows = [n for n in rows if set(n["labels"]) & set(params["labels"])]
            return [FakeRecord(r) for r in rows[: params["batch"]]]
        if "startNode" in cypher:
            return [FakeRecord(r) for r in self.adjacency_rows]
        return [FakeRecord(n) for n in self.nodes if n["id"] == params["id"]]

    def close(self) -> None:
        self.closed = True


def _node(node_id: int, *labels: str, **props) -> dict:
    return {"id": node_id, "labels": list(labels), "props": props}


def _adjacency(rid: int, start: int, end: int, other: int) -> dict:
    return {
        "rid": rid,
        "start": start,
        "end": end,
        "type": "relatedTo",
        "rprops": {},
        "mid": other,
        "mlabels": ["ands"],
        "mprops": {"type": "dataset"},
    }


def test_iter_nodes_pages_by_id() -> None:
    tx = FakeTx([_node(i, "ands") for i in (3, 5, 8, 13, 21)])
    snapshot = Neo4jSnapshot(tx, batch_size=2)
    assert [n.id for n in snapshot.iter_nodes(["ands"])] == [3, 5, 8, 13, 21]
    assert [c["after"] for c in tx.calls] == [-1, 5, 13]


def test_iter_nodes_filters_labels() -> None:
    tx = FakeTx([_node(1, "ands"), _node(2, "orcid"), _node(3, "web")])
    snapshot = Neo4jSnapshot(tx, batch_size=10)
    assert [n.id for n in snapshot.iter_nodes(["orcid", "ands"])] == [1, 2]
    assert tx.calls[0]["labels"] == ["ands", "orcid"]


def test_get_node() -> None:
    snapshot = Neo4jSnapshot(FakeTx([_node(7, "ands", type="grant", local_id="g")]), batch_size=10)
    node = snapshot.get_node(7)
    assert node.labels == frozenset({"ands"})
    assert node.type == "grant"
    assert snapshot.get_node(8) is None


def test_adjacencies_deduplicate_self_loops() -> None:
    rows = [_adjacency(1, 4, 9, 9), _adjacency(2, 4, 4, 4), _adjacency(2, 4, 4, 4)]
    snapshot = Neo4jSnapshot(FakeTx([], rows), batch_size=10)
    adjacencies = snapshot.adjacencies(4)
    assert [a.relationship.id for a in adjacencies] == [1, 2]
    assert adjacencies[0].other.id == 9
    assert adjacencies[0].relationship.other_id(4) == 9


def test_driver_errors_become_store_unavailable() -> None:
    snapshot = Neo4jSnapshot(FakeTx([], error=ServiceUnavailable("connection lost")), batch_size=10)
    with pytest.raises(StoreUnavailable):
        snapshot.get_node(1)


class FakeSession:
    def __init__(self, tx: FakeTx):
        self.tx = tx
        self.closed = False

    def begin_transaction(self) -> FakeTx:
        return self.tx

    def close(self) -> None:
        self.closed = True


class FakeDriver:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.verified = 0
        self.session_kwargs: dict = {}
        self.tx = FakeTx([_node(1, "ands")])
        self.sessions: list[FakeSession] = []
        self.options: dict = {}

    def verify_connectivity(self) -> None:
        self.verified += 1
        if self.verified <= self.failures:
            raise ServiceUnavailable("not yet")

    def session(self, **kwargs) -> FakeSession:
        self.session_kwargs = kwargs
        session = FakeSession(self.tx)
        self.sessions.append(session)
        return session

    def close(self) -> None:
        pass


def _patch_driver(monkeypatch, driver: FakeDriver) -> None:
    def build(uri, auth, **kwargs):
        driver.options = kwargs
        return driver

    monkeypatch.setattr(neo4j_store.GraphDatabase, "driver", build)


def test_snapshot_uses_one_read_transaction(monkeypatch) -> None:
    driver = FakeDriver()
    _patch_driver(monkeypatch, driver)
    store = Neo4jGraphStore(Neo4jConfig(uri="bolt://x", user="neo4j", password="pw", database="graphs"))
    with store.snapshot() as snapshot:
        assert snapshot.get_node(1).id == 1
    assert driver.session_kwargs == {"database": "graphs", "default_access_mode": neo4j_store.READ_ACCESS}
    assert driver.tx.closed
    assert driver.sessions[0].closed


def test_connectivity_is_retried(monkeypatch) -> None:
    driver = FakeDriver(failures=1)
    _patch_driver(monkeypatch, driver)
    monkeypatch.setattr(neo4j_store, "wait_exponential_jitter", lambda **_kw: lambda _state: 0)
    Neo4jGraphStore(Neo4jConfig(uri="bolt://x", user="neo4j", password="pw", connect_attempts=2))
    assert driver.verified == 2


def test_unreachable_store(monkeypatch) -> None:
    driver = FakeDriver(failures=5)
    _patch_driver(monkeypatch, driver)
    with pytest.raises(StoreUnavailable):
        Neo4jGraphStore(Neo4jConfig(uri="bolt://x", user="neo4j", password="pw", connect_attempts=1))


def test_deprecation_notices_are_disabled(monkeypatch) -> None:
    driver = FakeDriver()
    _patch_driver(monkeypatch, driver)
    Neo4jGraphStore(Neo4jConfig(uri="bolt://x", user="neo4j", password="pw"))
    assert driver.options["notifications_disabled_categories"] == ["DEPRECATION"]
