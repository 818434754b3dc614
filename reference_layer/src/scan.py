"""
Per-page extraction diagnostics.

Re-reads configured documents independently of the index cache and
reports, for the first few pages of each, how many characters were
extracted, whether OCR was used, and any error. One bad page or document
never stops the scan.
"""

import asyncio
import logging
from pathlib import Path
from typing import Sequence, Union

from .parse_pdf import DocumentExtractionError, PageTextProvider
from .schemas.diagnostics import DocScan, PageScan, ScanReport
from .tokenizers import normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_SCAN_PAGES = 5


def scan_document(path: Path, provider: PageTextProvider, max_pages: int) -> DocScan:
    """Scan a single document (blocking)."""
    path = Path(path)
    if not path.exists():
        return DocScan(path=str(path), exists=False)

    try:
        pages = provider.extract_pages(path, max_pages=max_pages)
    except Exception as e:
        reason = e.reason if isinstance(e, DocumentExtractionError) else (str(e) or type(e).__name__)
        logger.warning(f"Scan could not open {path}: {reason}")
        return DocScan(
            path=str(path),
            exists=True,
            pages=[PageScan(page=0, error=reason)],
        )

    return DocScan(
        path=str(path),
        exists=True,
        pages=[
            PageScan(
                page=page.page,
                extracted_chars=len(normalize_whitespace(page.text)),
                used_ocr=page.used_ocr,
                error=page.error,
            )
            for page in pages[:max_pages]
        ],
    )


async def scan_documents(
    doc_paths: Sequence[Union[str, Path]],
    provider: PageTextProvider,
    max_pages: int = DEFAULT_SCAN_PAGES,
) -> ScanReport:
    """
    Scan configured documents, keeping configuration order.

    Args:
        doc_paths: Document locations
        provider: Page text provider
        max_pages: Pages to inspect per document (> 0)

    Returns:
        ScanReport with one DocScan per path
    """
    if max_pages <= 0:
        raise ValueError(f"max_pages must be positive, got {max_pages}")

    loop = asyncio.get_running_loop()
    docs = await asyncio.gather(*[
        loop.run_in_executor(None, scan_document, Path(p), provider, max_pages)
        for p in doc_paths
    ])
    return ScanReport(docs=list(docs))
