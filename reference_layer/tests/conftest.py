"""Shared fixtures for reference layer tests."""

from pathlib import Path
from typing import Optional

import pytest

from ..src.parse_pdf import DocumentExtractionError
from ..src.schemas.page import PageText


FLOORS_TEXT = "Floors must be swept daily. Trash bins emptied nightly."


class FakeProvider:
    """In-memory page text provider keyed by file name."""

    def __init__(self, documents: dict[str, list[PageText]], broken: Optional[set[str]] = None):
        self.documents = documents
        self.broken = broken or set()
        self.calls: list[str] = []

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        path = Path(path)
        self.calls.append(path.name)
        if path.name in self.broken:
            raise DocumentExtractionError(path, "corrupt document")
        pages = self.documents.get(path.name, [])
        return pages if max_pages is None else pages[:max_pages]


@pytest.fixture
def make_docs(tmp_path):
    """Create placeholder files so configured paths exist on disk."""

    def _make(*names: str) -> list[Path]:
        paths = []
        for name in names:
            path = tmp_path / name
            path.write_bytes(b"")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def floors_provider():
    """Single document, single page: the floors/trash example."""
    return FakeProvider({"custodial.pdf": [PageText(page=1, text=FLOORS_TEXT)]})
