"""
Ranking and budgeted context assembly.

retrieve() scores every chunk, keeps the positive-scoring ones up to
top_k (or the first top_k chunks when nothing matches), then greedily
packs "[doc p.N]" blocks into the character budget in rank order.
"""

import logging
from typing import Optional

from .build_tfidf import TfidfIndex
from .schemas.chunk import Chunk
from .schemas.retrieval import ContextRequest, ContextSegment, RetrievedContext
from .tokenizers import normalize_whitespace, tokenize

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "Relevant document excerpts (use for reference; cite when useful):\n\n"
BLOCK_SEPARATOR = "\n\n---\n\n"

# Fixed per-block allowance added to each block's length when checking the budget
BLOCK_OVERHEAD = 4


def rank_chunks(index: TfidfIndex, query: str) -> list[tuple[Chunk, float]]:
    """
    Score all chunks and sort by descending score.

    The sort is stable, so ties keep natural index order.
    """
    query_tokens = tokenize(query)
    scored = [
        (chunk, index.score(query_tokens, position))
        for position, chunk in enumerate(index.chunks)
    ]
    return sorted(scored, key=lambda item: item[1], reverse=True)


def select_chunks(ranked: list[tuple[Chunk, float]], top_k: int) -> list[Chunk]:
    """
    Pick up to top_k positive-scoring chunks.

    Falls back to the first top_k chunks in natural order when no chunk
    scores above zero.
    """
    picked = [chunk for chunk, score in ranked if score > 0][:top_k]
    if picked:
        return picked

    # All scores are zero, so the stable sort left natural order intact
    return [chunk for chunk, _ in ranked[:top_k]]


def format_block(chunk: Chunk) -> str:
    """Header line naming document and page, followed by the chunk text."""
    header = f"[{chunk.doc_name} p.{chunk.page}]\n"
    return header + normalize_whitespace(chunk.text)


def assemble_context(chunks: list[Chunk], char_budget: int) -> Optional[RetrievedContext]:
    """
    Greedily pack blocks in order until the next one would exceed the budget.

    Returns None when not even the first block fits.
    """
    blocks: list[str] = []
    segments: list[ContextSegment] = []
    used = 0

    for chunk in chunks:
        block = format_block(chunk)
        if used + len(block) + BLOCK_OVERHEAD > char_budget:
            break
        blocks.append(block)
        segments.append(
            ContextSegment(doc_name=chunk.doc_name, page=chunk.page, char_count=len(block))
        )
        used += len(block) + BLOCK_OVERHEAD

    if not blocks:
        return None

    return RetrievedContext(
        text=CONTEXT_HEADER + BLOCK_SEPARATOR.join(blocks),
        segments=segments,
    )


def retrieve(
    index: TfidfIndex,
    query: str,
    char_budget: int = 4000,
    top_k: int = 8,
) -> Optional[RetrievedContext]:
    """
    Relevant excerpts for a query, within a character budget.

    Args:
        index: Built TF-IDF index
        query: Free-text query; empty queries use the fallback selection
        char_budget: Maximum characters of block content (> 0)
        top_k: Maximum number of chunks (> 0)

    Returns:
        RetrievedContext, or None when the index is empty or no block fits

    Raises:
        pydantic.ValidationError: If char_budget or top_k is not positive
    """
    request = ContextRequest(query=query, char_budget=char_budget, top_k=top_k)

    if index.is_empty():
        return None

    ranked = rank_chunks(index, request.query)
    selected = select_chunks(ranked, request.top_k)
    result = assemble_context(selected, request.char_budget)

    if result is None:
        logger.debug(f"No excerpt fits in a {request.char_budget}-char budget")
    return result
