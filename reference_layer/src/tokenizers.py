"""
Tokenization for TF-IDF scoring.

Reference documents are English specifications, so a deliberately plain
scheme is used:
- Case-fold everything to lowercase
- Anything other than a-z, 0-9 or whitespace becomes a separator
- Empty tokens are dropped

Examples:
    "Floors must be swept daily." → ["floors", "must", "be", "swept", "daily"]
    "Restroom (Type-B) 2x/day" → ["restroom", "type", "b", "2x", "day"]
"""

import re

_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RUN = re.compile(r"\s+")


def tokenize(text: str) -> list[str]:
    """
    Split text into lowercase alphanumeric tokens.

    Never fails; empty or punctuation-only text yields an empty list.

    Examples:
        >>> tokenize("Trash bins emptied nightly.")
        ['trash', 'bins', 'emptied', 'nightly']

        >>> tokenize("   ---   ")
        []
    """
    cleaned = _NON_TOKEN_CHARS.sub(" ", text.lower())
    return [token for token in cleaned.split() if token]


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim the ends."""
    return _WHITESPACE_RUN.sub(" ", text).strip()
