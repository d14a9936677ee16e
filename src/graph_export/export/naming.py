from __future__ import annotations

import logging
from typing import Any, Iterable
from urllib.parse import quote_plus

from ..graph.models import GraphNode
from ..settings import SourceConfig

logger = logging.getLogger(__name__)

NAME_SUFFIX = ".json"


def encode_key(key: Any) -> str | None:
    """URL-encode one identifier; None when it can not be used as a name.

    Form encoding matching the historical document keys: `*` stays literal
    and `~` is escaped.
    """
    if isinstance(key, bool) or not isinstance(key, (str, int, float)):
        return None
    try:
        encoded = quote_plus(str(key), safe="*", encoding="utf-8", errors="strict").replace("~", "%7E")
    except UnicodeEncodeError as e:
        logger.debug("Skipping identifier %r: %s", key, e)
        return None
    return encoded or None


def generate_names(node: GraphNode, sources: Iterable[SourceConfig]) -> set[str]:
    """Document keys for a node, one per identifier value per matching source.

    Keys look like ``<label>/<url-encoded identifier>.json``. An empty set
    means the node can not be exported.
    """
    names: set[str] = set()
    for source in sources:
        label = source.label.value
        if not node.has_label(label) or not node.has_property(source.key):
            continue

        value = node.properties[source.key]
        keys = value if isinstance(value, (list, tuple)) else [value]
        for key in keys:
            encoded = encode_key(key)
            if encoded is not None:
                names.add(f"{label}/{encoded}{NAME_SUFFIX}")
    return names
