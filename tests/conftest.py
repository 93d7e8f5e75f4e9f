"""Shared fixtures: SQLite datastores and a small seeded shop."""

import zipfile
from datetime import datetime
from pathlib import Path

import pytest

from jewelvault_sync.adapters.sql import AsyncSqlAdapter
from jewelvault_sync.backup import catalog
from jewelvault_sync.backup.catalog import build_metadata
from jewelvault_sync.backup.exporter import export_database
from jewelvault_sync.backup.models import EntityType, FieldType

SOURCE_USER = "U1"
SOURCE_STORE = "S1"
SOURCE_MOBILE = "9000000001"

STAMP = datetime(2024, 1, 15, 10, 30, 0)

_DEFAULTS = {
    FieldType.TEXT: "",
    FieldType.INTEGER: 0,
    FieldType.REAL: 0.0,
    FieldType.BOOLEAN: False,
    FieldType.TIMESTAMP: STAMP,
}


def make_record(entity: EntityType, **values) -> dict:
    """A full record for ``entity`` with type defaults for unset fields."""
    unknown = set(values) - set(entity.headers)
    assert not unknown, f"{entity.name} has no fields {unknown}"
    return {f.name: values.get(f.name, _DEFAULTS[f.type]) for f in entity.fields}


def shop_rows(user: str = SOURCE_USER, store: str = SOURCE_STORE) -> dict[EntityType, list[dict]]:
    """A small but complete shop: every entity type has at least one row."""
    c = catalog
    scoped = {"userId": user, "storeId": store}
    return {
        c.USERS: [
            make_record(c.USERS, id=user, name="Asha", mobileNo=SOURCE_MOBILE, role="admin",
                        lastUpdated=1705300000000),
            make_record(c.USERS, id="U2", name="Ravi", mobileNo="9000000002", role="staff"),
        ],
        c.USER_ADDITIONAL_INFO: [
            make_record(c.USER_ADDITIONAL_INFO, userId=user, bloodGroup="O+", isActive=True),
            make_record(c.USER_ADDITIONAL_INFO, userId="U2", isActive=False),
        ],
        c.STORES: [
            make_record(c.STORES, storeId=store, userId=user, name="Asha Jewellers",
                        proprietor="Asha", invoiceNo=42, upiId="asha@upi"),
        ],
        c.CATEGORIES: [
            make_record(c.CATEGORIES, catId="C1", catName="Gold", gsWt=120.5, fnWt=110.25, **scoped),
            make_record(c.CATEGORIES, catId="C2", catName="Silver", gsWt=800.0, **scoped),
        ],
        c.SUB_CATEGORIES: [
            make_record(c.SUB_CATEGORIES, subCatId="SC1", catId="C1", catName="Gold",
                        subCatName="Ring", quantity=10, **scoped),
            make_record(c.SUB_CATEGORIES, subCatId="SC2", catId="C2", catName="Silver",
                        subCatName="Chain", quantity=3, **scoped),
        ],
        c.ITEMS: [
            make_record(c.ITEMS, itemId=f"IT{n:02d}", itemAddName=f"Ring {n}", catId="C1",
                        catName="Gold", subCatId="SC1", subCatName="Ring", quantity=1,
                        gsWt=4.5 + n, purity="22K", huid=f"HUID{n}", **scoped)
            for n in range(1, 11)
        ],
        c.CUSTOMERS: [
            make_record(c.CUSTOMERS, mobileNo="8000000001", name="Meera", totalItemBought=2,
                        totalAmount=15500.0, **scoped),
            make_record(c.CUSTOMERS, mobileNo="8000000002", name="Kiran", **scoped),
        ],
        c.KHATA_BOOK_PLANS: [
            make_record(c.KHATA_BOOK_PLANS, planId="P1", name="11+1", payMonths=11,
                        benefitMonths=1, benefitPercentage=8.33, **scoped),
        ],
        c.KHATA_BOOKS: [
            make_record(c.KHATA_BOOKS, khataBookId="KB1", customerMobile="8000000001",
                        planName="11+1", monthlyAmount=1000.0, totalMonths=11,
                        totalAmount=11000.0, status="active", **scoped),
        ],
        c.TRANSACTIONS: [
            make_record(c.TRANSACTIONS, transactionId="T1", customerMobile="8000000001",
                        amount=1000.0, transactionType="credit", khataBookId="KB1",
                        monthNumber=1, **scoped),
            make_record(c.TRANSACTIONS, transactionId="T2", customerMobile="8000000002",
                        amount=250.0, transactionType="debit", **scoped),
        ],
        c.ORDERS: [
            make_record(c.ORDERS, orderId="O1", customerMobile="8000000001",
                        totalAmount=15500.0, totalTax=450.0, **scoped),
        ],
        c.ORDER_ITEMS: [
            make_record(c.ORDER_ITEMS, orderItemId="OI1", orderId="O1", itemId="IT01",
                        customerMobile="8000000001", quantity=1, price=7500.0),
            make_record(c.ORDER_ITEMS, orderItemId="OI2", orderId="O1", itemId="IT02",
                        customerMobile="8000000001", quantity=1, price=8000.0),
        ],
        c.EXCHANGE_ITEMS: [
            make_record(c.EXCHANGE_ITEMS, exchangeItemId="EX1", orderId="O1",
                        customerMobile="8000000001", metalType="Gold", fineWeight=2.1,
                        isExchangedByMetal=True, exchangeValue=12000.0),
        ],
        c.FIRMS: [
            make_record(c.FIRMS, firmId="F1", firmName="Acme Bullion", gstNumber="27ABCDE1234F1Z5"),
        ],
        c.PURCHASE_ORDERS: [
            make_record(c.PURCHASE_ORDERS, purchaseOrderId="PO1", sellerId="F1", billNo="B-77",
                        billDate="2024-01-10", totalFinalAmount=250000.0),
        ],
        c.PURCHASE_ORDER_ITEMS: [
            make_record(c.PURCHASE_ORDER_ITEMS, purchaseItemId="POI1", purchaseOrderId="PO1",
                        catId="C1", catName="Gold", gsWt=50.0, fnRate=6200.0),
        ],
        c.METAL_EXCHANGES: [
            make_record(c.METAL_EXCHANGES, exchangeId="ME1", purchaseOrderId="PO1",
                        catId="C1", catName="Gold", fnWeight=10.0),
        ],
    }


async def seed(adapter, rows: dict[EntityType, list[dict]]) -> None:
    for entity, records in rows.items():
        await adapter.apply_batch(entity.table, deletes=[], inserts=records)


async def count_rows(adapter) -> dict[str, int]:
    return {e.label: len(await adapter.select(e.table, "*")) for e in catalog.CATALOG}


def cut_sheet_after_row(path: Path, entity: EntityType, row: int = 2) -> None:
    """Truncate one sheet's XML after ``row``, leaving its header readable.

    Sheets are stored as ``sheet<N>.xml`` in the order they were written.
    """
    member = f"xl/worksheets/sheet{catalog.CATALOG.index(entity) + 1}.xml"
    with zipfile.ZipFile(path) as zf:
        entries = [(info, zf.read(info.filename)) for info in zf.infolist()]
    with zipfile.ZipFile(path, "w") as zf:
        for info, data in entries:
            if info.filename == member:
                end = 0
                for _ in range(row):
                    end = data.index(b"</row>", end) + len(b"</row>")
                data = data[:end]
            zf.writestr(info, data)


async def _new_datastore(path: Path) -> AsyncSqlAdapter:
    adapter = AsyncSqlAdapter(f"sqlite+aiosqlite:///{path}")
    await adapter.create_tables(build_metadata())
    return adapter


@pytest.fixture
async def adapter(tmp_path):
    """Empty datastore."""
    adapter = await _new_datastore(tmp_path / "target.db")
    yield adapter
    await adapter.close()


@pytest.fixture
async def source_adapter(tmp_path):
    """Datastore seeded with ``shop_rows()``."""
    adapter = await _new_datastore(tmp_path / "source.db")
    await seed(adapter, shop_rows())
    yield adapter
    await adapter.close()


@pytest.fixture
async def backup_file(source_adapter, tmp_path) -> Path:
    """An exported workbook of the seeded shop."""
    return await export_database(source_adapter, tmp_path / "shop.xlsx")
