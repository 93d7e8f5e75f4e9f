"""Tests for the entity catalog."""

import pytest
from pydantic import ValidationError

from jewelvault_sync.backup import catalog
from jewelvault_sync.backup.catalog import (
    CATALOG,
    IMPORT_ORDER,
    build_metadata,
    get_entity_type,
    required_headers,
)
from jewelvault_sync.backup.models import FieldType


class TestCatalogShape:
    def test_seventeen_entity_types(self):
        assert len(CATALOG) == 17
        assert len({e.name for e in CATALOG}) == 17

    def test_import_order_covers_catalog(self):
        assert set(IMPORT_ORDER) == set(CATALOG)
        assert len(IMPORT_ORDER) == len(CATALOG)

    def test_export_order(self):
        assert [e.name for e in CATALOG] == [
            "StoreEntity",
            "UsersEntity",
            "CategoryEntity",
            "SubCategoryEntity",
            "ItemEntity",
            "CustomerEntity",
            "CustomerKhataBookPlanEntity",
            "CustomerKhataBookEntity",
            "CustomerTransactionEntity",
            "OrderEntity",
            "OrderItemEntity",
            "ExchangeItemEntity",
            "FirmEntity",
            "PurchaseOrderEntity",
            "PurchaseOrderItemEntity",
            "MetalExchangeEntity",
            "UserAdditionalInfoEntity",
        ]

    def test_parents_import_before_children(self):
        position = {e: i for i, e in enumerate(IMPORT_ORDER)}
        pairs = [
            (catalog.USERS, catalog.USER_ADDITIONAL_INFO),
            (catalog.USERS, catalog.STORES),
            (catalog.CATEGORIES, catalog.SUB_CATEGORIES),
            (catalog.SUB_CATEGORIES, catalog.ITEMS),
            (catalog.CUSTOMERS, catalog.KHATA_BOOKS),
            (catalog.KHATA_BOOK_PLANS, catalog.KHATA_BOOKS),
            (catalog.KHATA_BOOKS, catalog.TRANSACTIONS),
            (catalog.ORDERS, catalog.ORDER_ITEMS),
            (catalog.ORDERS, catalog.EXCHANGE_ITEMS),
            (catalog.FIRMS, catalog.PURCHASE_ORDERS),
            (catalog.PURCHASE_ORDERS, catalog.PURCHASE_ORDER_ITEMS),
            (catalog.PURCHASE_ORDERS, catalog.METAL_EXCHANGES),
        ]
        for parent, child in pairs:
            assert position[parent] < position[child], (parent.name, child.name)

    @pytest.mark.parametrize("entity", CATALOG, ids=lambda e: e.name)
    def test_keys_name_real_fields(self, entity):
        headers = set(entity.headers)
        assert entity.primary_key in headers
        assert set(entity.natural_key) <= headers
        assert set(entity.scope_fields) <= headers
        if entity.protected_field:
            assert entity.protected_field in headers
            assert entity.protected_by in ("user", "store")

    def test_items_first_column_is_item_id(self):
        assert catalog.ITEMS.headers[0] == "itemId"
        assert len(catalog.ITEMS.headers) == 30

    def test_scope_rewrites(self):
        assert catalog.STORES.scope_fields == ("userId",)
        assert catalog.USERS.scope_fields == ()
        assert catalog.ORDERS.scope_fields == ("userId", "storeId")
        assert catalog.ORDER_ITEMS.scope_fields == ()

    def test_field_types(self):
        assert catalog.STORES.field_type("invoiceNo") is FieldType.INTEGER
        assert catalog.EXCHANGE_ITEMS.field_type("isExchangedByMetal") is FieldType.BOOLEAN
        assert catalog.ITEMS.field_type("addDate") is FieldType.TIMESTAMP
        assert catalog.CATEGORIES.field_type("gsWt") is FieldType.REAL
        with pytest.raises(KeyError):
            catalog.FIRMS.field_type("nope")

    def test_entity_types_are_immutable(self):
        with pytest.raises(ValidationError):
            catalog.FIRMS.table = "other"


class TestLookups:
    def test_by_sheet_name_and_label(self):
        assert get_entity_type("ItemEntity") is catalog.ITEMS
        assert get_entity_type("transactions") is catalog.TRANSACTIONS

    def test_unknown_raises(self):
        with pytest.raises(KeyError, match="Unknown entity type"):
            get_entity_type("GhostEntity")

    def test_required_headers(self):
        headers = required_headers()
        assert list(headers) == [e.name for e in CATALOG]
        assert headers["FirmEntity"] == ["firmId", "firmName", "firmMobileNumber", "gstNumber", "address"]

    def test_last_updated_is_optional_on_users_and_stores(self):
        optional = {(e.name, f.name) for e in CATALOG for f in e.fields if f.optional}
        assert optional == {("UsersEntity", "lastUpdated"), ("StoreEntity", "lastUpdated")}
        assert "lastUpdated" not in required_headers()["UsersEntity"]
        assert catalog.USERS.headers[-1] == "lastUpdated"


def test_metadata_describes_every_table():
    metadata = build_metadata()
    assert set(metadata.tables) == {e.table for e in CATALOG}
    items = metadata.tables["items"]
    assert [c.name for c in items.columns] == catalog.ITEMS.headers
    assert [c.name for c in items.primary_key.columns] == ["itemId"]
