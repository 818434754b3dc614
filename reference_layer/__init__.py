"""
Basis Reference Layer

Turns a fixed corpus of reference documents (specifications, standards)
into TF-IDF ranked excerpts that ground image-analysis requests.

Each retrieval returns a character-budgeted context block plus
provenance segments (document, page, excerpt length).
"""

__version__ = "0.1.0"
