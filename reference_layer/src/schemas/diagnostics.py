"""
Read-only reporting schemas.

IndexDiagnostics describes the cached index; ScanReport re-derives
per-page extraction statistics without touching the index.
"""

from typing import Optional

from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    """Distinct pages indexed for one document."""

    doc_name: str
    page_count: int = Field(..., ge=0)


class ConfiguredPath(BaseModel):
    """A configured document location and whether it currently exists."""

    path: str
    exists: bool


class SourceFailure(BaseModel):
    """A document that contributed no chunks because loading failed."""

    path: str
    error: str


class IndexDiagnostics(BaseModel):
    """Snapshot of the current index state."""

    total_chunks: int = Field(..., ge=0)
    files: list[FileInfo] = Field(default_factory=list)
    configured_paths: list[ConfiguredPath] = Field(default_factory=list)
    load_errors: list[SourceFailure] = Field(default_factory=list)


class PageScan(BaseModel):
    """Extraction statistics for a single page."""

    page: int = Field(..., ge=0, description="1-indexed page, 0 when the document failed to open")
    extracted_chars: int = Field(default=0, ge=0)
    used_ocr: bool = False
    error: Optional[str] = None


class DocScan(BaseModel):
    """Scan result for one configured document."""

    path: str
    exists: bool
    pages: Optional[list[PageScan]] = None


class ScanReport(BaseModel):
    """Scan results for all configured documents, in configuration order."""

    docs: list[DocScan] = Field(default_factory=list)
