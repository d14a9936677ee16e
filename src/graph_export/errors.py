"""
Error taxonomy for the graph exporter.

All exporter errors inherit from ExportError so the CLI can catch them
uniformly and map them to exit codes.
"""

from __future__ import annotations


class ExportError(Exception):
    """Base exception for all exporter errors."""


class ConfigurationError(ExportError):
    """Missing or invalid run parameters. Fatal, raised before any traversal."""


class StoreUnavailable(ExportError):
    """The graph snapshot could not be opened or read."""


class NodeNotFound(ExportError):
    """Test-node mode: the requested node does not exist."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Node {node_id} does not exist")


class NodeIneligible(ExportError):
    """Test-node mode: the requested node is not valid for exporting."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Node {node_id} is not valid for exporting")


class SerializationError(ExportError):
    """A document could not be encoded."""


class SinkWriteError(ExportError):
    """A single destination failed to persist a document."""

    def __init__(self, destination: str, key: str, reason: str):
        self.destination = destination
        self.key = key
        super().__init__(f"[{destination}] failed to write {key}: {reason}")


class ExtractionTimeout(ExportError):
    """The per-root extraction deadline passed at a wave boundary."""
