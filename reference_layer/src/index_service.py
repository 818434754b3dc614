"""
Index lifecycle: lazy, single-flight build with explicit reset.

IndexService owns one TF-IDF index over an ordered list of documents.
The first ensure_index() call starts a build task; concurrent callers
await that same task, and later callers get the cached index until
reset_index() is called.

Document loading is best-effort: every configured path yields a
DocumentLoad, and a missing or unreadable document contributes zero
chunks instead of failing the build.
"""

import asyncio
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Optional, Sequence, Union

from .build_tfidf import TfidfIndex, build_tfidf_index
from .chunk_text import DEFAULT_CHUNK_CHARS, chunk_document
from .config.settings import get_settings
from .parse_pdf import DocumentExtractionError, PageTextProvider, get_page_provider
from .retrieval import retrieve
from .scan import DEFAULT_SCAN_PAGES, scan_documents
from .schemas.chunk import Chunk
from .schemas.diagnostics import (
    ConfiguredPath,
    FileInfo,
    IndexDiagnostics,
    ScanReport,
    SourceFailure,
)
from .schemas.retrieval import ContextRequest, RetrievedContext

logger = logging.getLogger(__name__)


class DocumentLoad:
    """Outcome of loading one configured document."""

    def __init__(
        self,
        path: Path,
        chunks: Optional[list[Chunk]] = None,
        error: Optional[str] = None,
    ):
        self.path = path
        self.chunks = chunks or []
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        if self.ok:
            return f"DocumentLoad(path={str(self.path)!r}, chunks={len(self.chunks)})"
        return f"DocumentLoad(path={str(self.path)!r}, error={self.error!r})"


def display_names(paths: Sequence[Path]) -> dict[Path, str]:
    """
    Unique display name per document path.

    File names are used as-is; names shared by several paths get their
    parent folder prepended, and a numeric suffix if that still collides.
    """
    name_counts = Counter(p.name for p in paths)
    names: dict[Path, str] = {}
    taken: set[str] = set()

    for path in paths:
        name = path.name if name_counts[path.name] == 1 else f"{path.parent.name}/{path.name}"
        candidate, suffix = name, 2
        while candidate in taken:
            candidate = f"{name}#{suffix}"
            suffix += 1
        taken.add(candidate)
        names[path] = candidate

    return names


def load_document(
    path: Path,
    provider: PageTextProvider,
    chunk_chars: int = DEFAULT_CHUNK_CHARS,
    doc_name: Optional[str] = None,
) -> DocumentLoad:
    """Extract and chunk one document (blocking). Never raises for bad sources."""
    path = Path(path)
    doc_name = doc_name or path.name
    if not path.exists():
        return DocumentLoad(path, error="file not found")

    try:
        pages = provider.extract_pages(path)
    except DocumentExtractionError as e:
        return DocumentLoad(path, error=e.reason)
    except Exception as e:
        return DocumentLoad(path, error=str(e) or type(e).__name__)

    return DocumentLoad(path, chunks=chunk_document(path, doc_name, pages, chunk_chars))


class IndexService:
    """
    Owner of a process-wide TF-IDF index.

    Instances are independent, so tests (or multiple corpora) can each
    hold their own index.
    """

    def __init__(
        self,
        doc_paths: Optional[Sequence[Union[str, Path]]] = None,
        provider: Optional[PageTextProvider] = None,
        chunk_chars: int = DEFAULT_CHUNK_CHARS,
    ):
        if chunk_chars <= 0:
            raise ValueError(f"chunk_chars must be positive, got {chunk_chars}")

        if doc_paths is None:
            doc_paths = get_settings().configured_doc_paths()
        elif not doc_paths:
            doc_paths = [get_settings().default_doc_path]

        # The same document configured twice is indexed once
        resolved = [Path(p).expanduser().absolute() for p in doc_paths]
        self.doc_paths: list[Path] = list(dict.fromkeys(resolved))
        self.doc_names = display_names(self.doc_paths)
        self.provider = provider or get_page_provider()
        self.chunk_chars = chunk_chars

        self._index: Optional[TfidfIndex] = None
        self._build_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, provider: Optional[PageTextProvider] = None) -> "IndexService":
        """Create a service from environment configuration."""
        settings = get_settings()
        return cls(
            doc_paths=settings.configured_doc_paths(),
            provider=provider,
            chunk_chars=settings.chunk_chars,
        )

    @property
    def is_built(self) -> bool:
        return self._index is not None

    async def ensure_index(self) -> TfidfIndex:
        """
        Return the current index, building it if absent.

        Concurrent callers share one in-flight build. Cancelling a caller
        does not cancel the build.
        """
        if self._index is not None:
            return self._index

        if self._build_task is None:
            self._build_task = asyncio.create_task(self._build_index())
            self._build_task.add_done_callback(self._on_build_done)
        task = self._build_task

        try:
            index = await asyncio.shield(task)
        except Exception:
            # Let the next caller retry instead of re-raising a stale failure
            if self._build_task is task:
                self._build_task = None
            raise

        # A reset during the build means this result must not be cached
        if self._build_task is task:
            self._index = index
            self._build_task = None
        return index

    def _on_build_done(self, task: asyncio.Task) -> None:
        # Retrieve the exception even when every awaiting caller was cancelled
        if task.cancelled() or task.exception() is not None:
            if self._build_task is task:
                self._build_task = None

    def reset_index(self) -> None:
        """Drop the cached index and any in-flight build."""
        self._index = None
        self._build_task = None
        logger.info("Reference index reset; next access rebuilds")

    async def _build_index(self) -> TfidfIndex:
        start = time.time()
        logger.info(f"Building reference index from {len(self.doc_paths)} document(s)")

        loop = asyncio.get_running_loop()
        loads: list[DocumentLoad] = await asyncio.gather(*[
            loop.run_in_executor(
                None, load_document, path, self.provider, self.chunk_chars, self.doc_names[path]
            )
            for path in self.doc_paths
        ])

        chunks: list[Chunk] = []
        failures: list[SourceFailure] = []
        for load in loads:
            if load.ok:
                chunks.extend(load.chunks)
            else:
                logger.warning(f"Failed to index {load.path}: {load.error}")
                failures.append(SourceFailure(path=str(load.path), error=load.error))

        index = build_tfidf_index(chunks, load_errors=failures)
        elapsed = time.time() - start
        logger.info(
            f"Reference index ready: {index.total_chunks} chunks, "
            f"{len(index.doc_freq)} terms, {len(failures)} failed document(s) "
            f"in {elapsed:.2f}s"
        )
        return index

    async def retrieve(
        self,
        query: str,
        char_budget: int = 4000,
        top_k: int = 8,
    ) -> Optional[RetrievedContext]:
        """
        Relevant excerpts for a query; None when there is no usable context.

        Parameters are validated before the index is touched.
        """
        request = ContextRequest(query=query, char_budget=char_budget, top_k=top_k)
        index = await self.ensure_index()
        return retrieve(index, request.query, request.char_budget, request.top_k)

    async def diagnostics(self) -> IndexDiagnostics:
        """Chunk and page counts of the cached index, plus configured path status."""
        index = await self.ensure_index()

        pages_by_doc: dict[str, set[int]] = {}
        for chunk in index.chunks:
            pages_by_doc.setdefault(chunk.doc_name, set()).add(chunk.page)

        return IndexDiagnostics(
            total_chunks=index.total_chunks,
            files=[
                FileInfo(doc_name=name, page_count=len(pages))
                for name, pages in pages_by_doc.items()
            ],
            configured_paths=[
                ConfiguredPath(path=str(path), exists=path.exists())
                for path in self.doc_paths
            ],
            load_errors=list(index.load_errors),
        )

    async def scan(self, max_pages_per_doc: int = DEFAULT_SCAN_PAGES) -> ScanReport:
        """Per-page extraction report; independent of the cached index."""
        return await scan_documents(self.doc_paths, self.provider, max_pages_per_doc)
