from __future__ import annotations

from graph_export.export.eligibility import is_eligible
from graph_export.graph import InMemoryGraphStore, NodeSource, NodeType
from graph_export.settings import SourceConfig


def _store() -> InMemoryGraphStore:
    store = InMemoryGraphStore()
    store.add_node(1, ["dryad", "dataset"], type="dataset", doi="10.5061/dryad.1")
    store.add_node(2, ["crossref"], type="publication", doi="10.1000/xyz")
    store.add_node(3, ["dryad"], type="dataset", doi="10.5061/dryad.3")
    store.add_node(4, ["orcid"], type="researcher")
    store.add_relationship(1, 2, "relatedTo")
    store.add_relationship(4, 3, "isAuthorOf")
    return store


def test_label_and_key_are_required() -> None:
    store = _store()
    sources = [SourceConfig(label=NodeSource.ORCID, key="orcid")]
    # carries the label but not the identifying property
    assert not is_eligible(store.get_node(4), sources, store)
    assert not is_eligible(store.get_node(1), sources, store)


def test_type_restriction() -> None:
    store = _store()
    datasets = [SourceConfig(label=NodeSource.DRYAD, key="doi", types=frozenset({NodeType.DATASET}))]
    grants = [SourceConfig(label=NodeSource.DRYAD, key="doi", types=frozenset({NodeType.GRANT}))]
    assert is_eligible(store.get_node(1), datasets, store)
    assert not is_eligible(store.get_node(1), grants, store)


def test_linked_source_restriction() -> None:
    store = _store()
    sources = [SourceConfig(label=NodeSource.DRYAD, key="doi", linked_sources=frozenset({NodeSource.CROSSREF}))]
    assert is_eligible(store.get_node(1), sources, store)
    # linked only to an orcid record
    assert not is_eligible(store.get_node(3), sources, store)


def test_any_matching_source_qualifies() -> None:
    store = _store()
    sources = [
        SourceConfig(label=NodeSource.DRYAD, key="doi", linked_sources=frozenset({NodeSource.CROSSREF})),
        SourceConfig(label=NodeSource.DRYAD, key="doi", linked_sources=frozenset({NodeSource.ORCID})),
    ]
    assert is_eligible(store.get_node(1), sources, store)
    assert is_eligible(store.get_node(3), sources, store)


def test_no_sources_means_nothing_is_eligible() -> None:
    store = _store()
    assert not is_eligible(store.get_node(1), [], store)
