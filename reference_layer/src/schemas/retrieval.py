"""
Retrieval request and result schemas.

RetrievedContext is what a request handler prepends to a model prompt;
its segments list which excerpts were included, in order.
"""

from pydantic import BaseModel, Field


class ContextRequest(BaseModel):
    """Validated retrieval parameters."""

    query: str = Field(default="", description="Free-text query (may be empty)")
    char_budget: int = Field(
        default=4000,
        ge=1,
        description="Maximum characters of assembled block content",
    )
    top_k: int = Field(
        default=8,
        ge=1,
        description="Maximum number of chunks to include",
    )


class ContextSegment(BaseModel):
    """Provenance for one included excerpt block."""

    doc_name: str = Field(..., description="Source document display name")
    page: int = Field(..., ge=1, description="1-indexed page number")
    char_count: int = Field(..., ge=0, description="Length of the block (header + text)")


class RetrievedContext(BaseModel):
    """Formatted context text plus per-block provenance."""

    text: str = Field(..., description="Instructional header followed by excerpt blocks")
    segments: list[ContextSegment] = Field(
        default_factory=list,
        description="Included blocks, in the order they appear in text",
    )
