"""
Custom exceptions module.

Import from here rather than from exceptions.errors.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    StoreError,

    # Catalog
    CatalogItemNotFoundError,
    MissingNameError,
    InvalidQuantityError,
    InvalidPriceError,
    IdentifierCollisionError,
    IdentifierExhaustedError,

    # Spreadsheet import
    SpreadsheetParseError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "StoreError",

    # Catalog
    "CatalogItemNotFoundError",
    "MissingNameError",
    "InvalidQuantityError",
    "InvalidPriceError",
    "IdentifierCollisionError",
    "IdentifierExhaustedError",

    # Spreadsheet import
    "SpreadsheetParseError",
]
