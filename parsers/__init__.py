"""
Spreadsheet parsers module.
"""

from parsers.catalog_sheet_parser import (
    parse_catalog_sheet,
    SheetParseResult,
)

__all__ = [
    "parse_catalog_sheet",
    "SheetParseResult",
]
