"""
TF-IDF index construction and scoring.

The index is a snapshot: chunks in natural order (configuration order,
then page, then offset) plus a document-frequency table computed from
them in full. It is never patched; a changed corpus means a new index.

Scoring per chunk:
    score = Σ tf(t) * ln((N + 1) / (df(t) + 1))   for distinct query tokens t in the chunk
"""

import math
from collections import Counter
from typing import Iterable, Mapping, Optional, Sequence

from .schemas.chunk import Chunk
from .schemas.diagnostics import SourceFailure
from .tokenizers import tokenize


class TfidfIndex:
    """
    Immutable TF-IDF index over a chunk collection.

    Keeps per-chunk term counts so queries do not re-tokenize the corpus.
    """

    def __init__(
        self,
        chunks: Sequence[Chunk],
        doc_freq: Mapping[str, int],
        term_counts: Sequence[Counter],
        load_errors: Optional[Sequence[SourceFailure]] = None,
    ):
        self.chunks: tuple[Chunk, ...] = tuple(chunks)
        self.doc_freq: dict[str, int] = dict(doc_freq)
        self.term_counts: tuple[Counter, ...] = tuple(term_counts)
        self.load_errors: tuple[SourceFailure, ...] = tuple(load_errors or ())

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def is_empty(self) -> bool:
        return not self.chunks

    def score(self, query_tokens: Sequence[str], position: int) -> float:
        """Score the chunk at ``position`` using its cached term counts."""
        return score_term_counts(
            query_tokens,
            self.term_counts[position],
            self.doc_freq,
            self.total_chunks,
        )

    def __repr__(self) -> str:
        return (
            f"TfidfIndex(chunks={self.total_chunks}, "
            f"terms={len(self.doc_freq)}, "
            f"load_errors={len(self.load_errors)})"
        )


def compute_document_frequency(token_sets: Iterable[Iterable[str]]) -> dict[str, int]:
    """
    Count, per token, how many chunks contain it.

    A token repeated within one chunk still counts once for that chunk.
    """
    doc_freq: Counter = Counter()
    for tokens in token_sets:
        doc_freq.update(set(tokens))
    return dict(doc_freq)


def build_tfidf_index(
    chunks: Sequence[Chunk],
    load_errors: Optional[Sequence[SourceFailure]] = None,
) -> TfidfIndex:
    """
    Build a TF-IDF index from chunks.

    Args:
        chunks: Chunks in natural order
        load_errors: Documents that failed to load (kept for diagnostics)

    Returns:
        TfidfIndex ready for scoring; may be empty
    """
    term_counts = [Counter(tokenize(chunk.text)) for chunk in chunks]
    doc_freq = compute_document_frequency(term_counts)

    return TfidfIndex(
        chunks=chunks,
        doc_freq=doc_freq,
        term_counts=term_counts,
        load_errors=load_errors,
    )


def _distinct(tokens: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(tokens))


def score_term_counts(
    query_tokens: Sequence[str],
    term_counts: Mapping[str, int],
    doc_freq: Mapping[str, int],
    total_chunks: int,
) -> float:
    """TF-IDF score of precomputed chunk term counts against query tokens."""
    score = 0.0
    for token in _distinct(query_tokens):
        tf = term_counts.get(token, 0)
        if tf == 0:
            continue
        # Unseen tokens default to df=1 to keep the log argument finite
        df = doc_freq.get(token) or 1
        # Clamped at 0 for df > total_chunks, which only a mismatched table produces
        idf = max(math.log((total_chunks + 1) / (df + 1)), 0.0)
        score += tf * idf
    return score


def score_chunk(
    query_tokens: Sequence[str],
    chunk: Chunk,
    doc_freq: Mapping[str, int],
    total_chunks: int,
) -> float:
    """
    TF-IDF relevance of a chunk for a tokenized query.

    Returns 0.0 for an empty query or one with no tokens in the chunk;
    never negative.
    """
    return score_term_counts(
        query_tokens,
        Counter(tokenize(chunk.text)),
        doc_freq,
        total_chunks,
    )
