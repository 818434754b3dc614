"""
Page text schema.

The unit handed over by page text providers: one page of plain text,
whether OCR produced it, and the error if that page could not be read.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PageText(BaseModel):
    """Raw text of a single document page."""

    page: int = Field(..., ge=1, description="1-indexed page number")
    text: str = Field(default="", description="Extracted text, not yet normalized")
    used_ocr: bool = Field(
        default=False,
        description="True when the text came from an OCR fallback instead of the text layer",
    )
    error: Optional[str] = Field(
        None,
        description="Extraction error for this page, if any",
    )

    @property
    def failed(self) -> bool:
        return self.error is not None
