"""
Custom exception classes for the application.

Every error carries a code, an HTTP status and a details dict so that routes
can serialize it directly and the bulk importer can turn it into a report row.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CATALOG_ITEM_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class StoreError(AppError):
    """Catalog store lookup or mutation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="STORE_ERROR",
            message=f"Store {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CATALOG ERRORS
# ===================

class CatalogItemNotFoundError(NotFoundError):
    """Catalog item not found."""

    def __init__(self, item_id: str):
        super().__init__(
            resource="Catalog item",
            identifier=item_id,
            code="CATALOG_ITEM_NOT_FOUND"
        )


class MissingNameError(ValidationError):
    """Incoming record has no product name."""

    def __init__(self, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_MISSING_NAME",
            message="Missing product name",
            details=details
        )


class InvalidQuantityError(ValidationError):
    """Incoming quantity would decrement stock."""

    def __init__(self, quantity: int, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_INVALID_QUANTITY",
            message=f"Quantity must be zero or positive, got {quantity}",
            details={"quantity": quantity, **(details or {})}
        )


class InvalidPriceError(ValidationError):
    """Incoming cost or selling price is negative."""

    def __init__(self, field: str, value: float, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_INVALID_PRICE",
            message=f"{field} cannot be negative, got {value}",
            details={field: value, **(details or {})}
        )


class IdentifierCollisionError(ConflictError):
    """Generated SKU already belongs to another item. Recovered by retrying."""

    def __init__(self, sku: str):
        super().__init__(
            code="IDENTIFIER_COLLISION",
            message=f"Identifier {sku} already exists",
            details={"sku": sku}
        )


class IdentifierExhaustedError(ConflictError):
    """Every identifier attempt collided. Terminal for the record."""

    def __init__(self, attempts: list[str], details: Optional[dict] = None):
        super().__init__(
            code="IDENTIFIER_EXHAUSTED",
            message=f"Failed to assign a unique identifier after {len(attempts)} attempts",
            details={"attempted_skus": attempts, **(details or {})}
        )


# ===================
# SPREADSHEET ERRORS
# ===================

class SpreadsheetParseError(ValidationError):
    """Uploaded spreadsheet could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )
