"""
Unit tests for CatalogStore.

Run: pytest tests/unit/test_catalog_store.py -v
"""

import pytest

from services.catalog_store import CatalogStore, _is_sku_conflict
from exceptions import CatalogItemNotFoundError, StoreError
from tests.factories import CatalogItemFactory


class TestCatalogStoreLookups:
    """Tests for find_by_barcode() / find_by_name()"""

    def test_find_by_barcode(self, mock_db, mock_supabase, sample_item_data):
        # Arrange
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        # Act
        item = store.find_by_barcode("123456")

        # Assert
        assert item.id == "item-uuid-1"
        assert item.barcode == "123-456"

    def test_find_by_barcode_empty_key_never_matches(self, mock_db, mock_supabase):
        """Should not query for an empty barcode."""
        # Arrange
        mock_supabase.set_table_data("products", [CatalogItemFactory.create(description="")])
        store = CatalogStore()

        # Act
        item = store.find_by_barcode("")

        # Assert
        assert item is None
        assert mock_supabase.calls == []

    def test_find_by_name(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        item = store.find_by_name("blue mug")

        assert item.name == "Blue Mug"

    def test_find_by_name_not_found(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        assert store.find_by_name("red mug") is None

    def test_duplicate_names_resolve_to_oldest(self, mock_db, mock_supabase):
        """Should return the earliest created item regardless of row order."""
        # Arrange
        newer = CatalogItemFactory.create(
            id="newer", name="Blue Mug", created_at="2025-06-01T00:00:00"
        )
        older = CatalogItemFactory.create(
            id="older", name="Blue Mug", created_at="2025-01-01T00:00:00"
        )
        mock_supabase.set_table_data("products", [newer, older])
        store = CatalogStore()

        # Act
        item = store.find_by_name("blue mug")

        # Assert
        assert item.id == "older"

    def test_equal_timestamps_resolve_by_id(self, mock_db, mock_supabase):
        created = "2025-01-01T00:00:00"
        mock_supabase.set_table_data("products", [
            CatalogItemFactory.create(id="b", name="Blue Mug", created_at=created),
            CatalogItemFactory.create(id="a", name="Blue Mug", created_at=created),
        ])
        store = CatalogStore()

        assert store.find_by_name("blue mug").id == "a"

    def test_lookup_failure_raises_store_error(self, mock_db, mock_supabase):
        mock_supabase.failures["select"] = RuntimeError("connection reset")
        store = CatalogStore()

        with pytest.raises(StoreError) as exc_info:
            store.find_by_name("blue mug")

        assert exc_info.value.code == "STORE_ERROR"
        assert exc_info.value.details["operation"] == "select"


class TestCatalogStoreGetById:
    """Tests for CatalogStore.get_by_id()"""

    def test_get_by_id_returns_item(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        item = store.get_by_id("item-uuid-1")

        assert item.sku == "NAAM0012538"
        assert item.stock_quantity == 10

    def test_get_by_id_not_found_raises_error(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [])
        store = CatalogStore()

        with pytest.raises(CatalogItemNotFoundError) as exc_info:
            store.get_by_id("nonexistent-id")

        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "CATALOG_ITEM_NOT_FOUND"


class TestCatalogStoreGetAll:
    """Tests for CatalogStore.get_all()"""

    def test_newest_first_with_total(self, mock_db, mock_supabase):
        # Arrange
        items = CatalogItemFactory.create_batch(3)
        mock_supabase.set_table_data("products", items)
        store = CatalogStore()

        # Act
        result, total = store.get_all()

        # Assert
        assert total == 3
        assert [i.id for i in result] == [items[2]["id"], items[1]["id"], items[0]["id"]]

    def test_pagination(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", CatalogItemFactory.create_batch(5))
        store = CatalogStore()

        result, total = store.get_all(page=2, page_size=2)

        assert len(result) == 2
        assert total == 5

    def test_search_matches_name_barcode_or_sku(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [
            CatalogItemFactory.create(name="Blue Mug", description="111", sku="ITEM0012538"),
            CatalogItemFactory.create(name="Red Plate", description="MUG-22", sku="ITEM0022538"),
            CatalogItemFactory.create(name="Towel", description="333", sku="VARD0032538"),
        ])
        store = CatalogStore()

        result, total = store.get_all(search="mug")

        assert total == 2
        assert {i.name for i in result} == {"Blue Mug", "Red Plate"}


class TestCatalogStoreLowStock:
    """Tests for CatalogStore.get_low_stock()"""

    def test_at_or_below_minimum(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [
            CatalogItemFactory.create(name="Low", stock_quantity=3, min_stock_level=10),
            CatalogItemFactory.create(name="Edge", stock_quantity=10, min_stock_level=10),
            CatalogItemFactory.create(name="Fine", stock_quantity=50, min_stock_level=10),
        ])
        store = CatalogStore()

        result = store.get_low_stock()

        assert [i.name for i in result] == ["Low", "Edge"]


class TestCatalogStoreNextSequence:
    """Tests for CatalogStore.next_sequence_number()"""

    def test_empty_prefix_starts_at_one(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [])
        store = CatalogStore()

        assert store.next_sequence_number("NAAM") == 1

    def test_highest_plus_one(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [
            CatalogItemFactory.create(sku="NAAM0042538"),
            CatalogItemFactory.create(sku="NAAM0122538"),
            CatalogItemFactory.create(sku="VARD9002538"),
        ])
        store = CatalogStore()

        assert store.next_sequence_number("NAAM") == 13

    def test_wraps_after_999(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [CatalogItemFactory.create(sku="NAAM9992538")])
        store = CatalogStore()

        assert store.next_sequence_number("NAAM") == 1


class TestCatalogStoreInsert:
    """Tests for CatalogStore.insert_item()"""

    def test_insert_returns_item(self, mock_db, mock_supabase):
        store = CatalogStore()

        attempt = store.insert_item({"name": "Blue Mug", "sku": "ITEM0012538", "stock_quantity": 10})

        assert attempt.written
        assert attempt.item.sku == "ITEM0012538"
        assert attempt.item.id
        assert len(mock_supabase.rows()) == 1

    def test_sku_conflict_is_returned_not_raised(self, mock_db, mock_supabase):
        """Should report the collision and write nothing."""
        # Arrange
        mock_supabase.set_table_data("products", [CatalogItemFactory.create(sku="ITEM0012538")])
        store = CatalogStore()

        # Act
        attempt = store.insert_item({"name": "Blue Mug", "sku": "ITEM0012538"})

        # Assert
        assert not attempt.written
        assert attempt.collision.code == "IDENTIFIER_COLLISION"
        assert len(mock_supabase.rows()) == 1

    def test_other_failures_raise_store_error(self, mock_db, mock_supabase):
        mock_supabase.failures["insert"] = RuntimeError("permission denied for table products")
        store = CatalogStore()

        with pytest.raises(StoreError) as exc_info:
            store.insert_item({"name": "Blue Mug", "sku": "ITEM0012538"})

        assert exc_info.value.details["operation"] == "insert"


class TestCatalogStoreConditionalUpdate:
    """Tests for CatalogStore.update_if_stock_matches()"""

    def test_updates_when_stock_unchanged(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        item = store.update_if_stock_matches("item-uuid-1", 10, {"stock_quantity": 15})

        assert item.stock_quantity == 15
        assert mock_supabase.rows()[0]["stock_quantity"] == 15

    def test_returns_none_when_stock_changed(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        item = store.update_if_stock_matches("item-uuid-1", 7, {"stock_quantity": 12})

        assert item is None
        assert mock_supabase.rows()[0]["stock_quantity"] == 10


class TestCatalogStoreUpdateItem:
    """Tests for CatalogStore.update_item()"""

    def test_update_returns_written_item(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        attempt = store.update_item("item-uuid-1", {"name": "Red Mug", "name_key": "red mug"})

        assert attempt.written
        assert attempt.item.name == "Red Mug"
        assert attempt.sku == "NAAM0012538"
        assert mock_supabase.rows()[0]["name_key"] == "red mug"

    def test_keeping_own_sku_is_not_a_conflict(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        attempt = store.update_item("item-uuid-1", {"sku": "NAAM0012538", "price": 40})

        assert attempt.written
        assert attempt.item.price == 40

    def test_sku_conflict_is_returned_not_raised(self, mock_db, mock_supabase, sample_item_data):
        """Should report the collision and leave the row unchanged."""
        # Arrange
        other = CatalogItemFactory.create(id="other", name="Plate", sku="ITEM0012538")
        mock_supabase.set_table_data("products", [sample_item_data, other])
        store = CatalogStore()

        # Act
        attempt = store.update_item("item-uuid-1", {"sku": "ITEM0012538", "name": "Renamed"})

        # Assert
        assert not attempt.written
        assert attempt.collision.code == "IDENTIFIER_COLLISION"
        row = next(r for r in mock_supabase.rows() if r["id"] == "item-uuid-1")
        assert row["sku"] == "NAAM0012538"
        assert row["name"] == "Blue Mug"

    def test_unknown_id_raises_not_found(self, mock_db, mock_supabase):
        store = CatalogStore()

        with pytest.raises(CatalogItemNotFoundError):
            store.update_item("missing", {"name": "Red Mug"})

    def test_other_failures_raise_store_error(self, mock_db, mock_supabase):
        mock_supabase.failures["update"] = RuntimeError("permission denied for table products")
        store = CatalogStore()

        with pytest.raises(StoreError) as exc_info:
            store.update_item("item-uuid-1", {"sku": "ITEM0012538"})

        assert exc_info.value.details["operation"] == "update"


class TestCatalogStoreDeleteItem:
    """Tests for CatalogStore.delete_item()"""

    def test_delete_removes_row(self, mock_db, mock_supabase, sample_item_data):
        # Arrange
        other = CatalogItemFactory.create(id="other", name="Plate")
        mock_supabase.set_table_data("products", [sample_item_data, other])
        store = CatalogStore()

        # Act
        deleted = store.delete_item("item-uuid-1")

        # Assert
        assert deleted.id == "item-uuid-1"
        assert [r["id"] for r in mock_supabase.rows()] == ["other"]

    def test_unknown_id_raises_not_found(self, mock_db, mock_supabase, sample_item_data):
        mock_supabase.set_table_data("products", [sample_item_data])
        store = CatalogStore()

        with pytest.raises(CatalogItemNotFoundError):
            store.delete_item("missing")

        assert len(mock_supabase.rows()) == 1

    def test_failure_raises_store_error(self, mock_db, mock_supabase):
        mock_supabase.failures["delete"] = RuntimeError("connection reset")
        store = CatalogStore()

        with pytest.raises(StoreError) as exc_info:
            store.delete_item("item-uuid-1")

        assert exc_info.value.details["operation"] == "delete"


class TestIsSkuConflict:
    """Tests for _is_sku_conflict()"""

    def test_unique_violation_on_sku(self):
        error = RuntimeError('duplicate key value violates unique constraint "products_sku_key"')
        assert _is_sku_conflict(error)

    def test_unique_violation_on_other_column(self):
        error = RuntimeError('duplicate key value violates unique constraint "products_pkey"')
        assert not _is_sku_conflict(error)

    def test_unrelated_error(self):
        assert not _is_sku_conflict(RuntimeError("timeout"))


class TestCatalogStoreCount:
    """Tests for CatalogStore.count()"""

    def test_count(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", CatalogItemFactory.create_batch(4))
        store = CatalogStore()

        assert store.count() == 4
