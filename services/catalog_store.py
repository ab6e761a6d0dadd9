"""
Catalog store backed by the Supabase products table.

Indexed lookups by match key, inserts that report SKU collisions as a value
instead of raising, and compare-and-swap stock updates. Every other store
failure is raised as StoreError.
"""

from dataclasses import dataclass
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.catalog import CatalogItemResponse
from exceptions import (
    CatalogItemNotFoundError,
    IdentifierCollisionError,
    StoreError
)
from services.identifier_service import IdentifierGenerator

logger = structlog.get_logger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION_CODE = "23505"


def _is_sku_conflict(error: Exception) -> bool:
    """True if the store rejected an insert because the SKU already exists."""
    code = getattr(error, "code", None)
    text = str(getattr(error, "message", None) or error).lower()
    if code == UNIQUE_VIOLATION_CODE or "duplicate key" in text or "unique constraint" in text:
        return "sku" in text
    return False


@dataclass
class WriteAttempt:
    """Outcome of one insert or edit: the written item, or the SKU collision that stopped it."""
    sku: Optional[str]
    item: Optional[CatalogItemResponse] = None
    collision: Optional[IdentifierCollisionError] = None

    @property
    def written(self) -> bool:
        return self.item is not None


class CatalogStore:
    """
    Catalog persistence.

    Lookups return the oldest matching item (created_at, then id) so that
    duplicate names resolve the same way on every call.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.catalog_table

    # ===================
    # LOOKUPS
    # ===================

    def _find_oldest(self, column: str, value: str) -> Optional[CatalogItemResponse]:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq(column, value)
                .order("created_at")
                .order("id")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(
                "catalog_lookup_failed",
                column=column,
                error=str(e)
            )
            raise StoreError("select", str(e), {"column": column, "value": value})

        if not result.data:
            return None

        return CatalogItemResponse(**result.data[0])

    def find_by_barcode(self, barcode_key: str) -> Optional[CatalogItemResponse]:
        """Find an item by normalized barcode. Empty keys never match."""
        if not barcode_key:
            return None
        return self._find_oldest("barcode_key", barcode_key)

    def find_by_name(self, name_key: str) -> Optional[CatalogItemResponse]:
        """Find an item by exact normalized name."""
        if not name_key:
            return None
        return self._find_oldest("name_key", name_key)

    def get_by_id(self, item_id: str) -> CatalogItemResponse:
        """
        Get a single item by ID.

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", item_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_catalog_item_failed", item_id=item_id, error=str(e))
            raise StoreError("select", str(e), {"id": item_id})

        if not result.data:
            raise CatalogItemNotFoundError(item_id)

        return CatalogItemResponse(**result.data[0])

    def get_all(
        self,
        page: int = 1,
        page_size: int = 20,
        search: Optional[str] = None
    ) -> tuple[list[CatalogItemResponse], int]:
        """
        Get catalog items, newest first.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            search: Case-insensitive substring of name, barcode or SKU

        Returns:
            Tuple of (items list, total count)
        """
        try:
            query = self.db.table(self.table).select("*", count="exact")

            if search:
                term = search.replace(",", " ").strip()
                query = query.or_(
                    f"name.ilike.%{term}%,description.ilike.%{term}%,sku.ilike.%{term}%"
                )

            offset = (page - 1) * page_size
            result = (
                query.order("created_at", desc=True)
                .range(offset, offset + page_size - 1)
                .execute()
            )
        except Exception as e:
            logger.error("get_catalog_items_failed", error=str(e))
            raise StoreError("select", str(e))

        items = [CatalogItemResponse(**row) for row in result.data]
        return items, result.count or 0

    def get_low_stock(self) -> list[CatalogItemResponse]:
        """Items at or below their minimum stock level."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("stock_quantity")
                .execute()
            )
        except Exception as e:
            logger.error("get_low_stock_failed", error=str(e))
            raise StoreError("select", str(e))

        # PostgREST cannot compare two columns, so filter here
        items = [CatalogItemResponse(**row) for row in result.data]
        return [i for i in items if i.stock_quantity <= i.min_stock_level]

    def next_sequence_number(self, prefix: str) -> int:
        """
        Next sequence number for identifiers with this prefix.

        Highest existing sequence + 1, wrapping back to 1 after 999.
        """
        try:
            result = (
                self.db.table(self.table)
                .select("sku")
                .like("sku", f"{prefix}%")
                .order("sku", desc=True)
                .limit(50)
                .execute()
            )
        except Exception as e:
            logger.error("next_sequence_lookup_failed", prefix=prefix, error=str(e))
            raise StoreError("select", str(e), {"prefix": prefix})

        sequences = [
            IdentifierGenerator.parse_sequence(row.get("sku"), prefix)
            for row in result.data
        ]
        sequences = [s for s in sequences if s is not None]

        if not sequences:
            return 1

        next_number = max(sequences) + 1
        return next_number if next_number < 1000 else 1

    # ===================
    # MUTATIONS
    # ===================

    def insert_item(self, payload: dict) -> WriteAttempt:
        """
        Insert a new item.

        A SKU uniqueness violation is returned as a collision so the caller
        can regenerate and retry; nothing is written in that case.

        Raises:
            StoreError: Any other insert failure
        """
        sku = payload.get("sku")

        try:
            result = self.db.table(self.table).insert(payload).execute()
        except Exception as e:
            if sku and _is_sku_conflict(e):
                logger.info("catalog_sku_collision", sku=sku)
                return WriteAttempt(sku=sku, collision=IdentifierCollisionError(sku))
            logger.error(
                "catalog_insert_failed",
                sku=sku,
                name=payload.get("name"),
                error=str(e)
            )
            raise StoreError("insert", str(e), {"sku": sku, "name": payload.get("name")})

        if not result.data:
            raise StoreError("insert", "no row returned", {"sku": sku})

        return WriteAttempt(sku=sku, item=CatalogItemResponse(**result.data[0]))

    def update_if_stock_matches(
        self,
        item_id: str,
        expected_stock: int,
        changes: dict
    ) -> Optional[CatalogItemResponse]:
        """
        Compare-and-swap update keyed on the stock level read earlier.

        Returns:
            Updated item, or None if another writer changed the stock first
        """
        try:
            result = (
                self.db.table(self.table)
                .update(changes)
                .eq("id", item_id)
                .eq("stock_quantity", expected_stock)
                .execute()
            )
        except Exception as e:
            logger.error("catalog_update_failed", item_id=item_id, error=str(e))
            raise StoreError("update", str(e), {"id": item_id})

        if not result.data:
            return None

        return CatalogItemResponse(**result.data[0])

    def update_item(self, item_id: str, changes: dict) -> WriteAttempt:
        """
        Edit an item's stored fields.

        Like insert_item(), a SKU uniqueness violation is returned as a
        collision and leaves the row unchanged.

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
            StoreError: Any other update failure
        """
        sku = changes.get("sku")

        try:
            result = (
                self.db.table(self.table)
                .update(changes)
                .eq("id", item_id)
                .execute()
            )
        except Exception as e:
            if sku and _is_sku_conflict(e):
                logger.info("catalog_sku_collision", sku=sku, item_id=item_id)
                return WriteAttempt(sku=sku, collision=IdentifierCollisionError(sku))
            logger.error("catalog_edit_failed", item_id=item_id, error=str(e))
            raise StoreError("update", str(e), {"id": item_id, "sku": sku})

        if not result.data:
            raise CatalogItemNotFoundError(item_id)

        item = CatalogItemResponse(**result.data[0])
        return WriteAttempt(sku=item.sku, item=item)

    def delete_item(self, item_id: str) -> CatalogItemResponse:
        """
        Remove an item.

        Returns:
            The deleted item

        Raises:
            CatalogItemNotFoundError: If the item doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .delete()
                .eq("id", item_id)
                .execute()
            )
        except Exception as e:
            logger.error("catalog_delete_failed", item_id=item_id, error=str(e))
            raise StoreError("delete", str(e), {"id": item_id})

        if not result.data:
            raise CatalogItemNotFoundError(item_id)

        logger.info("catalog_item_deleted", item_id=item_id)
        return CatalogItemResponse(**result.data[0])

    def count(self) -> int:
        """Count catalog items."""
        try:
            result = self.db.table(self.table).select("id", count="exact").execute()
            return result.count or 0
        except Exception as e:
            logger.error("count_catalog_items_failed", error=str(e))
            raise StoreError("count", str(e))


# Singleton instance for convenience
_catalog_store: Optional[CatalogStore] = None

def get_catalog_store() -> CatalogStore:
    """Get or create CatalogStore instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = CatalogStore()
    return _catalog_store
