"""
Text utilities for matching catalog records.

Barcodes and names arrive from hand-typed forms and spreadsheets, so they are
canonicalized before any comparison against the catalog.
"""

import re
from typing import Any, Optional

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def _as_text(value: Any) -> str:
    """Coerce arbitrary input to a string, mapping None to ''."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_barcode(value: Any) -> str:
    """
    Normalize a barcode for comparison.

    Drops everything that is not an ASCII letter or digit, then lower-cases:
    - "123-456" → "123456"
    - " AB 12/x " → "ab12x"

    Args:
        value: Raw barcode (any type, coerced with str())

    Returns:
        Normalized barcode; '' means "no barcode"
    """
    return _NON_ALNUM.sub("", _as_text(value)).lower()


def normalize_name(value: Any) -> str:
    """
    Normalize a product name for comparison.

    Only surrounding whitespace and case are ignored; inner spacing and
    punctuation still distinguish names.

    Args:
        value: Raw product name (any type, coerced with str())

    Returns:
        Normalized name; '' is not a valid match key
    """
    return _as_text(value).strip().lower()


def clean_text(value: Any, max_length: int = 255) -> Optional[str]:
    """
    Clean a free-text field for storage.

    - Strips whitespace
    - Truncates to max length
    - Returns None for empty/whitespace-only strings

    Args:
        value: Raw text from a form or spreadsheet cell
        max_length: Maximum characters to store

    Returns:
        Cleaned text or None
    """
    text = _as_text(value).strip()

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length]

    return text
