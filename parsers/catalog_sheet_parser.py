"""
Spreadsheet parser for bulk catalog imports.

Reads the first sheet of an .xlsx workbook (or a .csv file) and turns
every non-empty row into an ImportRow. Column headers vary between
suppliers, so each logical field accepts a list of English and Hebrew header
variants; for every row the first variant with a non-empty value wins.

Row numbers are spreadsheet rows: the header is row 1, data starts at row 2.
"""

import math
import re
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union
import structlog

import pandas as pd

from models.catalog import ImportRow, IncomingRecord
from exceptions import SpreadsheetParseError

logger = structlog.get_logger(__name__)


# ===================
# HEADER VARIANTS
# ===================

# Name prefers the description column, then falls back to a name column
NAME_HEADERS = [
    "Product Description", "ProductDescription", "Description",
    "תיאור פריט", "תיאור",
]
NAME_FALLBACK_HEADERS = [
    "Product Name", "ProductName", "Name", "Product",
    "שם מוצר",
]
BARCODE_HEADERS = [
    "Product Barcode", "ProductBarcode", "Barcode",
    "ברקוד",
]
QUANTITY_HEADERS = [
    "Quantity", "Qty", "Stock", "Stock Quantity",
    "כמות",
]
COST_HEADERS = [
    "Cost Price", "CostPrice", "Cost", "Purchase Price",
    "מחיר עלות", "עלות",
]
FINAL_PRICE_HEADERS = [
    "Final Price", "FinalPrice", "Price", "Selling Price",
    "מחיר סופי", "מחיר", "מחיר לאחר הנחה",
]

FIELD_HEADERS = {
    "name": NAME_HEADERS,
    "name_fallback": NAME_FALLBACK_HEADERS,
    "barcode": BARCODE_HEADERS,
    "quantity": QUANTITY_HEADERS,
    "cost_price": COST_HEADERS,
    "final_price": FINAL_PRICE_HEADERS,
}

FIRST_DATA_ROW = 2

_CURRENCY = re.compile(r"[₪$€£,\s]")


class CellValueError(ValueError):
    """A numeric cell could not be parsed."""

    def __init__(self, header: str, value: Any):
        self.header = header
        self.value = value
        super().__init__(f"Invalid number in column '{header}': {value}")


@dataclass
class SheetParseResult:
    """Result of parsing a catalog spreadsheet."""
    sheet_name: str
    rows: list[ImportRow] = field(default_factory=list)
    matched_headers: dict[str, list[str]] = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def parse_error_count(self) -> int:
        return sum(1 for r in self.rows if r.parse_error)


def parse_catalog_sheet(
    file: Union[str, Path, bytes, BytesIO],
    filename: Optional[str] = None,
) -> SheetParseResult:
    """
    Parse a catalog import spreadsheet.

    Args:
        file: File path, raw bytes, or file-like object
        filename: Original upload name, used to detect CSV files

    Returns:
        SheetParseResult with one ImportRow per non-empty data row

    Raises:
        SpreadsheetParseError: If the file cannot be read or has no
            product name column
    """
    name_hint = filename or (str(file) if isinstance(file, (str, Path)) else "")
    is_csv = name_hint.lower().endswith(".csv")

    logger.info("parsing_catalog_sheet", filename=filename, csv=is_csv)

    df, sheet_name = _read_frame(file, is_csv)

    headers = {str(col).strip().lower(): col for col in df.columns}
    matched = {
        key: [v for v in variants if v.lower() in headers]
        for key, variants in FIELD_HEADERS.items()
    }

    if not matched["name"] and not matched["name_fallback"]:
        raise SpreadsheetParseError(
            message="No product name column found",
            details={
                "columns": [str(c) for c in df.columns],
                "expected_any_of": NAME_HEADERS + NAME_FALLBACK_HEADERS,
            }
        )

    result = SheetParseResult(sheet_name=sheet_name, matched_headers=matched)

    for idx, row in enumerate(df.to_dict(orient="records")):
        if all(_is_blank(v) for v in row.values()):
            continue

        result.rows.append(
            _parse_row(row, headers, matched, row_number=idx + FIRST_DATA_ROW)
        )

    logger.info(
        "catalog_sheet_parsed",
        sheet=sheet_name,
        rows=result.row_count,
        parse_errors=result.parse_error_count,
        columns={k: v[0] for k, v in matched.items() if v}
    )

    return result


# ===================
# HELPER FUNCTIONS
# ===================

def _read_frame(file, is_csv: bool) -> tuple[pd.DataFrame, str]:
    if isinstance(file, bytes):
        file = BytesIO(file)

    try:
        if is_csv:
            return pd.read_csv(file, dtype=object, keep_default_na=False), "csv"

        excel = pd.ExcelFile(file)
        sheet_name = excel.sheet_names[0]
        return excel.parse(sheet_name, dtype=object), sheet_name
    except Exception as e:
        logger.error("catalog_sheet_read_failed", error=str(e))
        raise SpreadsheetParseError(
            message="Failed to read spreadsheet",
            details={"original_error": str(e)}
        )


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _cell_text(value: Any) -> str:
    """Render a cell as text; whole floats lose their '.0'."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _first_value(row: dict, headers: dict, variants: list[str]) -> tuple[Optional[str], Any]:
    """First (header, value) among the variants with a non-empty cell."""
    for variant in variants:
        column = headers[variant.lower()]
        value = row.get(column)
        if not _is_blank(value):
            return variant, value
    return None, None


def _parse_number(header: Optional[str], value: Any) -> Optional[float]:
    if header is None or _is_blank(value):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        raw = value
    else:
        raw = _CURRENCY.sub("", str(value))
        if raw == "":
            return None
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        raise CellValueError(header, value)
    # "nan", "inf" and overflowing literals parse as floats
    if not math.isfinite(number):
        raise CellValueError(header, value)
    return number


def _parse_row(row: dict, headers: dict, matched: dict, row_number: int) -> ImportRow:
    snapshot = {str(k): _cell_text(v) for k, v in row.items() if not _is_blank(v)}

    _, name = _first_value(row, headers, matched["name"])
    if _is_blank(name):
        _, name = _first_value(row, headers, matched["name_fallback"])
    _, barcode = _first_value(row, headers, matched["barcode"])

    try:
        quantity = _parse_number(*_first_value(row, headers, matched["quantity"]))
        cost = _parse_number(*_first_value(row, headers, matched["cost_price"]))
        final_price = _parse_number(*_first_value(row, headers, matched["final_price"]))
    except CellValueError as e:
        return ImportRow(row_number=row_number, snapshot=snapshot, parse_error=str(e))

    record = IncomingRecord(
        name=_cell_text(name),
        barcode=_cell_text(barcode),
        quantity=int(quantity) if quantity is not None else 0,
        cost_price=cost if cost is not None else 0,
        selling_price=final_price,
    )

    return ImportRow(row_number=row_number, record=record, snapshot=snapshot)
