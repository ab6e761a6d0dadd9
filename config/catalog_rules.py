"""
Catalog classification and identifier rules.

Plain data consumed by the category classifier and the identifier generator.
Extend the tables here; the matching code never hard-codes a keyword.
"""

# =============================================================================
# CATEGORY KEYWORDS
# =============================================================================
# Checked in order against "<name> <barcode>" (lower-cased).
# The first category with any keyword present wins, so kitchen beats bathroom.

CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    (
        "Naaman",
        (
            "cookware", "kitchen ware", "kitchenware", "kitchen utensil",
            "utensil", "kitchen supplies", "serving items", "serving",
            "dishes", "plates", "trays", "carafes", "cups", "knives",
            "storage items for kitchen", "kitchen storage", "kitchen",
            "tableware",
        ),
    ),
    (
        "Vardinon",
        (
            "toilet", "shower", "bathroom", "bath", "soap dispenser",
            "toothbrush", "towel", "bath mat", "bathroom supplies",
            "shower curtain",
        ),
    ),
]


# =============================================================================
# IDENTIFIER PREFIXES
# =============================================================================
# Keys are lower-case category names. Lookup tries an exact key first, then
# any key contained in the category string.

CATEGORY_PREFIXES: dict[str, str] = {
    "naaman": "NAAM",
    "vardinon": "VARD",
    "kitchen": "KTCH",
    "kitchenware": "KTCH",
    "tableware": "TBLW",
    "bathroom": "BATH",
    "bath": "BATH",
    "textiles": "TEXT",
    "home decor": "DECO",
    "cleaning": "CLNG",
}

# Prefix used when no category is known at all
DEFAULT_PREFIX = "ITEM"

# Padding character for short fallback prefixes ("Tea" -> "TEAX")
PREFIX_PAD_CHAR = "X"

PREFIX_LENGTH = 4


# =============================================================================
# IDENTIFIER SEGMENTS
# =============================================================================

# Sequence segment is always this many digits (sequence numbers wrap)
SEQUENCE_DIGITS = 3
SEQUENCE_MODULUS = 10 ** SEQUENCE_DIGITS

# Prices below this use 2 digits in the identifier, otherwise 3
THREE_DIGIT_PRICE_THRESHOLD = 100
