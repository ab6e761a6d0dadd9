"""
Catalog API routes.

Manual entry and spreadsheet import both go through reconciliation: a
record matching an existing item (by barcode, then by name) restocks it,
anything else becomes a new item.
"""

from fastapi import APIRouter, Query, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.catalog import (
    CatalogItemCreate,
    CatalogItemCreateResponse,
    CatalogItemResponse,
    CatalogItemUpdate,
    CatalogItemUpdateResponse,
    CatalogListResponse,
    ImportReport,
)
from services.catalog_store import get_catalog_store
from services.reconciliation_service import get_reconciliation_service
from services.bulk_import_service import get_bulk_import_service
from services.catalog_edit_service import get_catalog_edit_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=CatalogListResponse)
async def list_catalog_items(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search name, barcode or SKU")
):
    """
    List catalog items, newest first.

    Returns paginated list of items.
    """
    try:
        store = get_catalog_store()
        items, total = store.get_all(page=page, page_size=page_size, search=search)

        total_pages = (total + page_size - 1) // page_size

        return CatalogListResponse(
            data=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages
        )

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=CatalogItemCreateResponse)
async def create_catalog_item(data: CatalogItemCreate):
    """
    Add one product to the catalog.

    Restocks the matching item when the barcode or name is already known,
    otherwise creates a new item with a generated identifier.

    Raises:
        409: No unique identifier could be assigned
        422: Missing name, negative quantity or price
    """
    try:
        service = get_reconciliation_service()
        return service.create_item(data)

    except Exception as e:
        return handle_error(e)


@router.post("/import", response_model=ImportReport)
async def import_catalog(file: UploadFile = File(..., description="Spreadsheet (.xlsx or .csv)")):
    """
    Import products from a spreadsheet.

    Every row is reconciled on its own. The response is 200 even if rows
    failed; inspect success_count and errors.

    Raises:
        422: File could not be read
    """
    try:
        contents = await file.read()
        service = get_bulk_import_service()
        return await run_in_threadpool(
            service.import_spreadsheet, contents, filename=file.filename
        )

    except Exception as e:
        return handle_error(e)


# ===================
# UTILITY ROUTES
# ===================

@router.get("/alerts/low-stock", response_model=list[CatalogItemResponse])
async def get_low_stock_items():
    """Items at or below their minimum stock level."""
    try:
        store = get_catalog_store()
        return store.get_low_stock()

    except Exception as e:
        return handle_error(e)


@router.get("/count/total")
async def count_catalog_items():
    """Get total item count."""
    try:
        store = get_catalog_store()
        return {"count": store.count()}

    except Exception as e:
        return handle_error(e)


@router.get("/{item_id}", response_model=CatalogItemResponse)
async def get_catalog_item(item_id: str):
    """
    Get a single catalog item by ID.

    Raises:
        404: Item not found
    """
    try:
        store = get_catalog_store()
        return store.get_by_id(item_id)

    except Exception as e:
        return handle_error(e)


@router.put("/{item_id}", response_model=CatalogItemUpdateResponse)
async def update_catalog_item(item_id: str, data: CatalogItemUpdate):
    """
    Edit a catalog item.

    Only fields in the request body are changed. A SKU already used by
    another item is suffixed until it is free.

    Raises:
        404: Item not found
        409: No free SKU within the retry budget
        422: Empty name, negative stock or price
    """
    try:
        service = get_catalog_edit_service()
        return service.update_item(item_id, data)

    except Exception as e:
        return handle_error(e)


@router.delete("/{item_id}")
async def delete_catalog_item(item_id: str):
    """
    Delete a catalog item permanently.

    Raises:
        404: Item not found
    """
    try:
        service = get_catalog_edit_service()
        item = service.delete_item(item_id)
        return {"id": item.id, "message": "Product deleted successfully"}

    except Exception as e:
        return handle_error(e)
