"""
Character-window chunking.

Each page is whitespace-normalized and sliced into consecutive,
non-overlapping windows of DEFAULT_CHUNK_CHARS characters. Chunks never
span pages, so every excerpt cites exactly one page.
"""

import logging
from pathlib import Path
from typing import Iterable, Union

from .schemas.chunk import Chunk
from .schemas.page import PageText
from .tokenizers import normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_CHARS = 900


def make_chunk_id(doc_name: str, page: int, offset: int) -> str:
    """Deterministic chunk ID: unique per (document, page, window offset)."""
    return f"{doc_name}-p{page}-{offset}"


def chunk_page(
    doc_path: str,
    doc_name: str,
    page: int,
    text: str,
    chunk_chars: int = DEFAULT_CHUNK_CHARS,
) -> list[Chunk]:
    """Slice one page's normalized text into fixed-size chunks."""
    normalized = normalize_whitespace(text)
    chunks: list[Chunk] = []

    for offset in range(0, len(normalized), chunk_chars):
        chunks.append(
            Chunk(
                chunk_id=make_chunk_id(doc_name, page, offset),
                doc_path=doc_path,
                doc_name=doc_name,
                page=page,
                text=normalized[offset : offset + chunk_chars],
            )
        )

    return chunks


def chunk_document(
    doc_path: Union[str, Path],
    doc_name: str,
    pages: Union[Iterable[PageText], str],
    chunk_chars: int = DEFAULT_CHUNK_CHARS,
) -> list[Chunk]:
    """
    Chunk a whole document, page by page.

    Args:
        doc_path: Location of the source document
        doc_name: Display name used in chunk IDs and headers
        pages: Extracted pages, or a single string when the document has
            no page structure (treated as page 1)
        chunk_chars: Window size in characters

    Returns:
        Chunks in page order, then offset order
    """
    if chunk_chars <= 0:
        raise ValueError(f"chunk_chars must be positive, got {chunk_chars}")

    if isinstance(pages, str):
        pages = [PageText(page=1, text=pages)]

    doc_path = str(doc_path)
    chunks: list[Chunk] = []

    for page in sorted(pages, key=lambda p: p.page):
        if page.failed:
            logger.debug(f"Skipping {doc_name} p.{page.page}: {page.error}")
            continue
        chunks.extend(chunk_page(doc_path, doc_name, page.page, page.text, chunk_chars))

    return chunks
