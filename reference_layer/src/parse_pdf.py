"""
Document → page text extraction.

Uses pdfplumber for PDFs and reads everything else as UTF-8 text.
Providers return raw (unnormalized) page text; normalization and
chunking happen downstream in chunk_text.py.

A page that fails to extract is returned with its error set so callers
can skip it (index build) or report it (scan). A document that cannot be
opened at all raises DocumentExtractionError.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol, runtime_checkable

import pdfplumber

from .schemas.page import PageText

logger = logging.getLogger(__name__)

# Form feed separates pages in plain-text exports (e.g. pdftotext output)
PAGE_BREAK = "\f"


class DocumentExtractionError(Exception):
    """Raised when a document cannot be opened or parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to extract {self.path}: {reason}")


@runtime_checkable
class PageTextProvider(Protocol):
    """
    Protocol for page text sources.

    Implementations return pages in ascending page order. ``max_pages``
    bounds how many pages are read (None reads all of them).
    """

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        """Return page-indexed text for the document at ``path``."""
        ...


class PdfPlumberProvider:
    """
    Page text from a PDF's text layer.

    Scanned pages have no text layer. If an ``ocr`` callable is supplied it
    is invoked for those pages with the pdfplumber page and its result is
    flagged with ``used_ocr=True``.
    """

    def __init__(self, ocr: Optional[Callable[[pdfplumber.page.Page], str]] = None):
        self.ocr = ocr

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        path = Path(path)
        pages: list[PageText] = []

        try:
            pdf = pdfplumber.open(path)
        except Exception as e:
            raise DocumentExtractionError(path, str(e) or type(e).__name__) from e

        with pdf:
            page_list = pdf.pages if max_pages is None else pdf.pages[:max_pages]
            for page_num, page in enumerate(page_list, start=1):
                pages.append(self._extract_page(page, page_num))

        return pages

    def _extract_page(self, page: pdfplumber.page.Page, page_num: int) -> PageText:
        try:
            text = page.extract_text() or ""
        except Exception as e:
            logger.debug(f"Page {page_num} text extraction failed: {e}")
            return PageText(page=page_num, error=str(e) or type(e).__name__)

        if text.strip() or self.ocr is None:
            return PageText(page=page_num, text=text)

        try:
            return PageText(page=page_num, text=self.ocr(page) or "", used_ocr=True)
        except Exception as e:
            logger.debug(f"Page {page_num} OCR fallback failed: {e}")
            return PageText(page=page_num, used_ocr=True, error=str(e) or type(e).__name__)


class PlainTextProvider:
    """
    Page text from a UTF-8 text file.

    Form feeds split pages; a file without any is a single page numbered 1.
    """

    encoding = "utf-8"

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        path = Path(path)
        try:
            content = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentExtractionError(path, str(e)) from e

        raw_pages = content.split(PAGE_BREAK) if PAGE_BREAK in content else [content]
        if max_pages is not None:
            raw_pages = raw_pages[:max_pages]

        return [PageText(page=i, text=text) for i, text in enumerate(raw_pages, start=1)]


class SuffixProvider:
    """Dispatch to a provider by file suffix (.pdf → pdfplumber, else plain text)."""

    def __init__(
        self,
        pdf: Optional[PageTextProvider] = None,
        text: Optional[PageTextProvider] = None,
    ):
        self.pdf = pdf or PdfPlumberProvider()
        self.text = text or PlainTextProvider()

    def provider_for(self, path: Path) -> PageTextProvider:
        return self.pdf if Path(path).suffix.lower() == ".pdf" else self.text

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        return self.provider_for(path).extract_pages(path, max_pages=max_pages)


def get_page_provider() -> PageTextProvider:
    """Default provider used when none is injected."""
    return SuffixProvider()
