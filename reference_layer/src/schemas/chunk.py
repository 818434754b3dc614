"""
Chunk schema for retrieval units.

Chunks are fixed-size, non-overlapping slices of a page's
whitespace-normalized text. They are created once per index build and
never mutated, so the model is frozen.
"""

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """
    A retrieval unit for TF-IDF scoring.

    Provenance (doc_path, doc_name, page) lets every excerpt be cited.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(
        ...,
        description="Unique identifier: {doc_name}-p{page}-{offset}",
        examples=["spec.pdf-p1-0", "spec.pdf-p4-1800"],
    )
    doc_path: str = Field(..., description="Absolute location of the source document")
    doc_name: str = Field(..., description="Display name of the source document")
    page: int = Field(..., ge=1, description="1-indexed page number")
    text: str = Field(..., min_length=1, description="Normalized chunk text")
