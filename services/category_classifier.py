"""
Keyword-based category classification.

Only used to pick an identifier prefix when an incoming record carries no
explicit category.
"""

from typing import Any, Optional

from config.catalog_rules import CATEGORY_KEYWORDS


def classify(
    name: Any,
    barcode: Any = "",
    keyword_sets: Optional[list[tuple[str, tuple[str, ...]]]] = None,
) -> str:
    """
    Map free text to a coarse category label.

    Keyword sets are checked in order; the first set with any keyword
    contained in "<name> <barcode>" wins.

    Args:
        name: Product name
        barcode: Barcode / description text
        keyword_sets: Override for CATEGORY_KEYWORDS (tests, tenants)

    Returns:
        Category label, or '' if nothing matched
    """
    text = f"{name or ''} {barcode or ''}".lower()

    for label, keywords in keyword_sets or CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return label

    return ""
