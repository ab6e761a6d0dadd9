"""
Catalog reconciliation: decide merge vs. insert for one incoming record.

Per record:

    LOOKUP_BY_BARCODE --found--> MERGE
        | not found (or no barcode)
    LOOKUP_BY_NAME ----found--> MERGE
        | not found
    GENERATE_ID -> INSERT --collision--> GENERATE_ID (random sequence)
                     |                   ... up to identifier_max_retries
                     +--> IdentifierExhaustedError

Exactly one store mutation happens per successful call, none on a
validation failure.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import settings
from models.catalog import (
    CatalogItemCreate,
    CatalogItemCreateResponse,
    CatalogItemResponse,
    IncomingRecord,
    ReconcileAction,
    ReconcileResult,
)
from exceptions import (
    IdentifierExhaustedError,
    InvalidPriceError,
    InvalidQuantityError,
    MissingNameError,
    StoreError,
)
from services.catalog_store import CatalogStore, get_catalog_store
from services.category_classifier import classify
from services.identifier_service import IdentifierGenerator, get_identifier_generator
from utils.text_utils import clean_text, normalize_barcode, normalize_name

logger = structlog.get_logger(__name__)


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


class ReconciliationService:
    """
    Reconciliation core.

    Shared by manual entry (create_item) and the bulk importer (reconcile).
    """

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        generator: Optional[IdentifierGenerator] = None,
        max_retries: Optional[int] = None,
        merge_max_attempts: Optional[int] = None,
    ):
        self.store = store or get_catalog_store()
        self.generator = generator or get_identifier_generator()
        self.max_retries = (
            settings.identifier_max_retries if max_retries is None else max_retries
        )
        self.merge_max_attempts = merge_max_attempts or settings.merge_max_attempts

    # ===================
    # ENTRY POINTS
    # ===================

    def reconcile(
        self,
        record: IncomingRecord,
        row_number: Optional[int] = None,
        use_store_sequence: bool = False,
    ) -> ReconcileResult:
        """
        Merge the record into a matching item or insert it as a new one.

        Args:
            record: Incoming product record
            row_number: Spreadsheet row, included in error details
            use_store_sequence: Number new identifiers from the store's
                highest sequence instead of the clock

        Returns:
            ReconcileResult describing the merge or insert

        Raises:
            ValidationError: Missing name, negative quantity or price
            IdentifierExhaustedError: Every identifier attempt collided
            StoreError: Lookup or mutation failed
        """
        context = record.snapshot()
        if row_number is not None:
            context["row_number"] = row_number

        self._validate(record, context)

        barcode_key = normalize_barcode(record.barcode)
        name_key = normalize_name(record.name)

        existing = None
        if barcode_key:
            existing = self.store.find_by_barcode(barcode_key)
            if existing:
                logger.debug("matched_by_barcode", item_id=existing.id, row_number=row_number)

        if existing is None:
            existing = self.store.find_by_name(name_key)
            if existing:
                logger.debug("matched_by_name", item_id=existing.id, row_number=row_number)

        if existing is not None:
            return self._merge(existing, record, context)

        return self._insert(record, barcode_key, name_key, use_store_sequence, context)

    def create_item(self, data: CatalogItemCreate) -> CatalogItemCreateResponse:
        """
        Manual entry: reconcile one form submission.

        Raises:
            Same as reconcile()
        """
        logger.info("creating_catalog_item", name=data.name, barcode=data.description)

        record = data.to_record()
        result = self.reconcile(record, use_store_sequence=True)
        item = result.item

        if result.merged:
            message = (
                f"Product quantity updated. Added {record.quantity}, "
                f"new total: {item.stock_quantity}"
            )
        else:
            message = "Product created successfully"

        return CatalogItemCreateResponse(
            id=item.id,
            merged=result.merged,
            identifier=item.sku,
            recommended_final_price=result.recommended_final_price,
            selling_price=item.price,
            stock_quantity=item.stock_quantity,
            message=message,
        )

    # ===================
    # STATES
    # ===================

    @staticmethod
    def _validate(record: IncomingRecord, context: dict) -> None:
        if not record.name.strip():
            raise MissingNameError(details=context)
        if record.quantity < 0:
            raise InvalidQuantityError(record.quantity, details=context)
        if record.cost_price is not None and record.cost_price < 0:
            raise InvalidPriceError("cost_price", record.cost_price, details=context)
        if record.selling_price is not None and record.selling_price < 0:
            raise InvalidPriceError("selling_price", record.selling_price, details=context)

    def _merge(
        self,
        existing: CatalogItemResponse,
        record: IncomingRecord,
        context: dict
    ) -> ReconcileResult:
        """
        Add the incoming quantity to an existing item.

        Prices are only overwritten by positive incoming values. The update
        is conditional on the stock level just read; if another writer got
        there first the item is re-read and the merge re-applied.
        """
        current = existing

        for attempt in range(1, self.merge_max_attempts + 1):
            changes = {
                "stock_quantity": current.stock_quantity + record.quantity,
                "updated_at": datetime.utcnow().isoformat(),
            }
            if _positive(record.selling_price):
                changes["price"] = record.selling_price
            if _positive(record.cost_price):
                changes["cost"] = record.cost_price

            updated = self.store.update_if_stock_matches(
                current.id,
                current.stock_quantity,
                changes
            )

            if updated is not None:
                logger.info(
                    "catalog_item_merged",
                    item_id=updated.id,
                    added=record.quantity,
                    stock_quantity=updated.stock_quantity,
                    row_number=context.get("row_number"),
                    attempt=attempt
                )
                return ReconcileResult(
                    action=ReconcileAction.MERGED,
                    item_id=updated.id,
                    identifier=updated.sku,
                    recommended_final_price=self.generator.recommended_final_price(updated.cost),
                    item=updated,
                )

            logger.warning(
                "merge_stock_changed_concurrently",
                item_id=current.id,
                expected_stock=current.stock_quantity,
                attempt=attempt
            )
            current = self.store.get_by_id(current.id)

        raise StoreError(
            "update",
            f"stock of item {existing.id} kept changing during merge",
            {"id": existing.id, "attempts": self.merge_max_attempts, **context}
        )

    def _insert(
        self,
        record: IncomingRecord,
        barcode_key: str,
        name_key: str,
        use_store_sequence: bool,
        context: dict
    ) -> ReconcileResult:
        """Insert a new item, regenerating the identifier on collisions."""
        category = record.category or classify(record.name, record.barcode)
        selling_price = record.selling_price if _positive(record.selling_price) else None
        cost_price = record.cost_price or 0
        recommended = self.generator.recommended_final_price(cost_price)

        payload = {
            "name": clean_text(record.name),
            "description": clean_text(record.barcode) or "",
            "category": category,
            "price": selling_price if selling_price is not None else recommended,
            "cost": cost_price,
            "stock_quantity": record.quantity,
            "min_stock_level": (
                record.min_stock_level
                if record.min_stock_level is not None
                else settings.default_min_stock_level
            ),
            "barcode_key": barcode_key,
            "name_key": name_key,
            "updated_at": datetime.utcnow().isoformat(),
        }

        if record.identifier:
            sku = record.identifier
        else:
            sequence_number = None
            if use_store_sequence:
                prefix = self.generator.resolve_prefix(category)
                sequence_number = self.store.next_sequence_number(prefix)
            sku = self.generator.generate(
                category,
                cost_price,
                sequence_number=sequence_number,
                final_price_override=selling_price
            )

        attempted: list[str] = []

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                sku = self.generator.generate_with_disambiguator(
                    category,
                    cost_price,
                    final_price_override=selling_price
                )
            attempted.append(sku)

            outcome = self.store.insert_item({**payload, "sku": sku})

            if outcome.written:
                item = outcome.item
                logger.info(
                    "catalog_item_created",
                    item_id=item.id,
                    sku=item.sku,
                    stock_quantity=item.stock_quantity,
                    row_number=context.get("row_number"),
                    attempts=attempt + 1
                )
                return ReconcileResult(
                    action=ReconcileAction.CREATED,
                    item_id=item.id,
                    identifier=item.sku,
                    recommended_final_price=recommended,
                    item=item,
                )

            logger.info(
                "identifier_collision_retrying",
                sku=sku,
                attempt=attempt + 1,
                max_retries=self.max_retries,
                row_number=context.get("row_number")
            )

        logger.error(
            "identifier_exhausted",
            attempted=attempted,
            row_number=context.get("row_number")
        )
        raise IdentifierExhaustedError(attempted, details=context)


# Singleton instance for convenience
_reconciliation_service: Optional[ReconciliationService] = None

def get_reconciliation_service() -> ReconciliationService:
    """Get or create ReconciliationService instance."""
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = ReconciliationService()
    return _reconciliation_service
