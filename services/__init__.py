"""
Business logic services.

Each service handles one step of catalog reconciliation.
"""

from services.catalog_store import CatalogStore, WriteAttempt, get_catalog_store
from services.category_classifier import classify
from services.identifier_service import IdentifierGenerator, get_identifier_generator
from services.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)
from services.catalog_edit_service import (
    CatalogEditService,
    get_catalog_edit_service,
)
from services.bulk_import_service import (
    BulkImportService,
    get_bulk_import_service,
    group_rows_by_match_key,
)

__all__ = [
    "CatalogStore",
    "WriteAttempt",
    "get_catalog_store",
    "classify",
    "IdentifierGenerator",
    "get_identifier_generator",
    "ReconciliationService",
    "get_reconciliation_service",
    "BulkImportService",
    "get_bulk_import_service",
    "group_rows_by_match_key",
    "CatalogEditService",
    "get_catalog_edit_service",
]
