"""
Catalog schemas for validation and serialization.

The persisted column names (description, sku, price, cost) are kept as-is in
response models; incoming records use the reconciliation vocabulary
(barcode, identifier, selling_price, cost_price).
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin


class ReconcileAction(str, Enum):
    """Outcome of reconciling one incoming record."""
    MERGED = "merged"
    CREATED = "created"


# ===================
# STORED ITEMS
# ===================

class CatalogItemResponse(BaseSchema, TimestampMixin):
    """
    Catalog item with all stored fields.

    Used for GET responses and as the result of merge/insert.
    """

    id: str = Field(..., description="Store-assigned item ID")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field("", description="Barcode / scan code")
    sku: Optional[str] = Field(None, description="Catalog identifier (unique when set)")
    category: Optional[str] = Field("", description="Free-text category")
    price: float = Field(0, description="Selling price")
    cost: float = Field(0, description="Cost price")
    stock_quantity: int = Field(0, description="Units in stock")
    min_stock_level: int = Field(10, description="Low-stock threshold")
    barcode_key: Optional[str] = Field(None, description="Normalized barcode match key")
    name_key: Optional[str] = Field(None, description="Normalized name match key")

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v: Any) -> str:
        """Stores may hand back integer or UUID keys."""
        return str(v)

    @field_validator("price", "cost", mode="before")
    @classmethod
    def price_default_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def stock_default_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @property
    def barcode(self) -> str:
        return self.description or ""


class CatalogListResponse(BaseSchema):
    """List of catalog items with pagination."""

    data: list[CatalogItemResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ===================
# INCOMING RECORDS
# ===================

class IncomingRecord(BaseSchema):
    """
    One product record to reconcile against the catalog.

    Built from a manual form submission or a parsed spreadsheet row and
    consumed once. An empty name is accepted here and rejected by
    reconciliation, so in bulk mode it fails only its own row.
    """

    name: str = Field("", description="Product name")
    barcode: str = Field("", description="External scan code, may be empty")
    category: Optional[str] = Field(None, description="Explicit category")
    cost_price: Optional[float] = Field(None, description="Cost price")
    selling_price: Optional[float] = Field(None, description="Final selling price")
    quantity: int = Field(0, description="Units received")
    identifier: Optional[str] = Field(None, description="Explicit SKU to use on insert")
    min_stock_level: Optional[int] = Field(None, description="Low-stock threshold on insert")

    @field_validator("name", "barcode", mode="before")
    @classmethod
    def text_default_empty(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("identifier", "category")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        return v

    def snapshot(self) -> dict:
        """Field values attempted, for error reports."""
        return self.model_dump(exclude_none=True)


class CatalogItemCreate(BaseSchema):
    """
    Manual catalog entry.

    Mirrors the stored column names. Everything but name is optional.
    """

    name: Optional[str] = Field(None, description="Product name", examples=["Blue Mug"])
    description: Optional[str] = Field(None, description="Barcode", examples=["123-456"])
    sku: Optional[str] = Field(None, max_length=64, description="Explicit identifier")
    category: Optional[str] = Field(None, description="Category; auto-classified when empty")
    price: Optional[float] = Field(None, description="Selling price")
    cost: Optional[float] = Field(None, description="Cost price")
    stock_quantity: Optional[int] = Field(0, description="Units received")
    min_stock_level: Optional[int] = Field(None, ge=0, description="Low-stock threshold")

    def to_record(self) -> IncomingRecord:
        """Translate form fields to an IncomingRecord."""
        return IncomingRecord(
            name=self.name or "",
            barcode=self.description or "",
            category=self.category,
            cost_price=self.cost,
            selling_price=self.price,
            quantity=self.stock_quantity or 0,
            identifier=self.sku,
            min_stock_level=self.min_stock_level,
        )


# ===================
# RESULTS
# ===================

class ReconcileResult(BaseModel):
    """Result of reconciling a single record."""

    action: ReconcileAction
    item_id: str
    identifier: Optional[str] = None
    recommended_final_price: float = 0
    item: CatalogItemResponse

    @property
    def merged(self) -> bool:
        return self.action == ReconcileAction.MERGED


class CatalogItemCreateResponse(BaseSchema):
    """Response for a manual catalog entry."""

    id: str
    merged: bool
    identifier: Optional[str] = None
    recommended_final_price: float
    selling_price: float
    stock_quantity: int
    message: str


class CatalogItemUpdate(BaseSchema):
    """
    Edit an existing catalog item.

    Only fields present in the request are changed. An empty sku clears the
    identifier.
    """

    name: Optional[str] = Field(None, description="Product name")
    description: Optional[str] = Field(None, description="Barcode")
    sku: Optional[str] = Field(None, max_length=64, description="Identifier; empty clears it")
    category: Optional[str] = Field(None, description="Free-text category")
    price: Optional[float] = Field(None, description="Selling price")
    cost: Optional[float] = Field(None, description="Cost price")
    stock_quantity: Optional[int] = Field(None, description="Units in stock")
    min_stock_level: Optional[int] = Field(None, ge=0, description="Low-stock threshold")


class CatalogItemUpdateResponse(BaseSchema):
    """Response for an edit."""

    id: str
    identifier: Optional[str] = None
    identifier_adjusted: bool = False
    message: str
    item: CatalogItemResponse


# ===================
# BULK IMPORT
# ===================

class ImportRow(BaseModel):
    """
    One spreadsheet row ready for reconciliation.

    Either record is set, or parse_error explains why the row could not be
    turned into a record.
    """

    row_number: int
    record: Optional[IncomingRecord] = None
    snapshot: dict[str, Any] = Field(default_factory=dict)
    parse_error: Optional[str] = None


class ImportRowFailure(BaseModel):
    """A row that did not reconcile."""

    row_number: int
    error: str
    code: Optional[str] = None
    record_snapshot: dict[str, Any] = Field(default_factory=dict)


class ImportReport(BaseModel):
    """Aggregate outcome of a bulk import."""

    message: str
    total_rows: int
    success_count: int
    created_count: int = 0
    merged_count: int = 0
    cancelled: bool = False
    errors: list[str] = Field(default_factory=list)
    failed_rows: list[ImportRowFailure] = Field(default_factory=list)
