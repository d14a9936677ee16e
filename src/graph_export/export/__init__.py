"""Bounded subgraph export.

Pipeline per root node: eligibility -> extraction -> assembly -> naming ->
dispatch to sinks.
"""

from .assembler import OutputDocument, assemble
from .eligibility import is_eligible
from .exporter import Exporter, RunStats, SingleNodeResult, SingleNodeStatus
from .extractor import extract
from .naming import generate_names
from .sinks import FileSystemSink, S3Config, S3Sink, SinkDispatcher

__all__ = [
    "Exporter",
    "FileSystemSink",
    "OutputDocument",
    "RunStats",
    "S3Config",
    "S3Sink",
    "SingleNodeResult",
    "SingleNodeStatus",
    "SinkDispatcher",
    "assemble",
    "extract",
    "generate_names",
    "is_eligible",
]
