"""
Pydantic schemas for reference layer artifacts.

Chunks and retrieval results carry provenance fields (doc_name, page)
so every excerpt handed to a downstream model can be traced to its source.
"""

from .chunk import Chunk
from .diagnostics import (
    ConfiguredPath,
    DocScan,
    FileInfo,
    IndexDiagnostics,
    PageScan,
    ScanReport,
    SourceFailure,
)
from .page import PageText
from .retrieval import ContextRequest, ContextSegment, RetrievedContext

__all__ = [
    "PageText",
    "Chunk",
    "ContextRequest",
    "ContextSegment",
    "RetrievedContext",
    "ConfiguredPath",
    "FileInfo",
    "SourceFailure",
    "IndexDiagnostics",
    "PageScan",
    "DocScan",
    "ScanReport",
]
