"""
Catalog edits and removals.

Edits bypass reconciliation: the caller names the item. Stored match keys
are recomputed when the name or barcode changes, and a requested SKU that
belongs to another item is suffixed and retried like a generated one.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import settings
from models.catalog import (
    CatalogItemResponse,
    CatalogItemUpdate,
    CatalogItemUpdateResponse,
)
from exceptions import (
    IdentifierExhaustedError,
    InvalidPriceError,
    InvalidQuantityError,
    MissingNameError,
)
from services.catalog_store import CatalogStore, get_catalog_store
from services.identifier_service import IdentifierGenerator, get_identifier_generator
from utils.text_utils import clean_text, normalize_barcode, normalize_name

logger = structlog.get_logger(__name__)

# Numeric columns are NOT NULL; an explicit null leaves them unchanged
_NUMERIC_FIELDS = ("price", "cost", "stock_quantity", "min_stock_level")


class CatalogEditService:
    """Edit and delete catalog items by ID."""

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        generator: Optional[IdentifierGenerator] = None,
        max_retries: Optional[int] = None,
    ):
        self.store = store or get_catalog_store()
        self.generator = generator or get_identifier_generator()
        self.max_retries = (
            settings.identifier_max_retries if max_retries is None else max_retries
        )

    def update_item(self, item_id: str, data: CatalogItemUpdate) -> CatalogItemUpdateResponse:
        """
        Apply the fields present in data to an item.

        Args:
            item_id: Item ID
            data: Fields to change

        Returns:
            CatalogItemUpdateResponse with the stored item and final SKU

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
            ValidationError: Empty name, negative stock or price
            IdentifierExhaustedError: Requested SKU and every suffixed
                variant belong to other items
        """
        fields = data.model_dump(exclude_unset=True)
        context = {"id": item_id, **fields}

        logger.info("updating_catalog_item", item_id=item_id, fields=sorted(fields))

        self._validate(fields, context)
        existing = self.store.get_by_id(item_id)

        changes = self._build_changes(fields)
        if not changes:
            return self._response(existing, requested_sku=existing.sku)

        changes["updated_at"] = datetime.utcnow().isoformat()

        requested_sku = None
        if "sku" in fields:
            requested_sku = clean_text(fields["sku"], max_length=64)

        attempted: list[str] = []

        for attempt in range(self.max_retries + 1):
            if "sku" in fields:
                sku = requested_sku
                if attempt > 0:
                    sku = self.generator.disambiguate(requested_sku)
                changes["sku"] = sku
                if sku:
                    attempted.append(sku)

            outcome = self.store.update_item(item_id, changes)

            if outcome.written:
                logger.info(
                    "catalog_item_updated",
                    item_id=item_id,
                    sku=outcome.item.sku,
                    attempts=attempt + 1
                )
                return self._response(
                    outcome.item,
                    requested_sku=requested_sku if "sku" in fields else outcome.item.sku
                )

            logger.info(
                "edit_sku_collision_retrying",
                item_id=item_id,
                sku=changes.get("sku"),
                attempt=attempt + 1,
                max_retries=self.max_retries
            )

        logger.error("edit_identifier_exhausted", item_id=item_id, attempted=attempted)
        raise IdentifierExhaustedError(attempted, details=context)

    def delete_item(self, item_id: str) -> CatalogItemResponse:
        """
        Remove an item permanently.

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
        """
        logger.info("deleting_catalog_item", item_id=item_id)
        return self.store.delete_item(item_id)

    # ===================
    # HELPERS
    # ===================

    @staticmethod
    def _validate(fields: dict, context: dict) -> None:
        if "name" in fields and not (fields["name"] or "").strip():
            raise MissingNameError(details=context)
        stock = fields.get("stock_quantity")
        if stock is not None and stock < 0:
            raise InvalidQuantityError(stock, details=context)
        for field in ("price", "cost"):
            value = fields.get(field)
            if value is not None and value < 0:
                raise InvalidPriceError(field, value, details=context)

    @staticmethod
    def _build_changes(fields: dict) -> dict:
        changes = {}

        if "name" in fields:
            changes["name"] = clean_text(fields["name"])
            changes["name_key"] = normalize_name(fields["name"])
        if "description" in fields:
            changes["description"] = clean_text(fields["description"]) or ""
            changes["barcode_key"] = normalize_barcode(fields["description"])
        if "category" in fields:
            changes["category"] = clean_text(fields["category"]) or ""
        if "sku" in fields:
            changes["sku"] = clean_text(fields["sku"], max_length=64)

        for field in _NUMERIC_FIELDS:
            if fields.get(field) is not None:
                changes[field] = fields[field]

        return changes

    @staticmethod
    def _response(item: CatalogItemResponse, requested_sku: Optional[str]) -> CatalogItemUpdateResponse:
        return CatalogItemUpdateResponse(
            id=item.id,
            identifier=item.sku,
            identifier_adjusted=item.sku != requested_sku,
            message="Product updated successfully",
            item=item,
        )


# Singleton instance for convenience
_catalog_edit_service: Optional[CatalogEditService] = None

def get_catalog_edit_service() -> CatalogEditService:
    """Get or create CatalogEditService instance."""
    global _catalog_edit_service
    if _catalog_edit_service is None:
        _catalog_edit_service = CatalogEditService()
    return _catalog_edit_service
