"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.catalog import (
    ReconcileAction,
    CatalogItemResponse,
    CatalogListResponse,
    IncomingRecord,
    CatalogItemCreate,
    ReconcileResult,
    CatalogItemCreateResponse,
    CatalogItemUpdate,
    CatalogItemUpdateResponse,
    ImportRow,
    ImportRowFailure,
    ImportReport,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Catalog
    "ReconcileAction",
    "CatalogItemResponse",
    "CatalogListResponse",
    "IncomingRecord",
    "CatalogItemCreate",
    "ReconcileResult",
    "CatalogItemCreateResponse",
    "CatalogItemUpdate",
    "CatalogItemUpdateResponse",

    # Bulk import
    "ImportRow",
    "ImportRowFailure",
    "ImportReport",
]
