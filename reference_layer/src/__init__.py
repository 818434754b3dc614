"""
Reference Layer source modules.

Pipeline:
    parse_pdf.py      - Document → page text (pdfplumber / plain text)
    chunk_text.py     - Page text → fixed-size chunks
    tokenizers.py     - Lowercase alphanumeric tokenization
    build_tfidf.py    - Chunks → document-frequency index + scoring
    retrieval.py      - Ranking and budgeted context assembly
    index_service.py  - Lazy, single-flight index lifecycle
    scan.py           - Per-page extraction diagnostics
"""
