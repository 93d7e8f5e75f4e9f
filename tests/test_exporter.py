"""Tests for exporting the datastore to a workbook."""

from unittest.mock import AsyncMock

import pytest
from openpyxl import load_workbook

from jewelvault_sync.backup.catalog import CATALOG, METADATA_SHEET, SCHEMA_VERSION
from jewelvault_sync.backup.exporter import export_database
from jewelvault_sync.errors import ExportError


def _sheet_rows(path, name):
    wb = load_workbook(path)
    try:
        return [list(r) for r in wb[name].iter_rows(values_only=True)]
    finally:
        wb.close()


class TestExportLayout:
    async def test_one_sheet_per_entity_in_catalog_order(self, backup_file):
        wb = load_workbook(backup_file)
        assert wb.sheetnames == [e.name for e in CATALOG] + [METADATA_SHEET]
        wb.close()

    async def test_items_sheet_has_header_and_ten_rows(self, backup_file):
        rows = _sheet_rows(backup_file, "ItemEntity")
        assert len(rows) == 11
        assert rows[0][0] == "itemId"
        assert [r[0] for r in rows[1:]] == [f"IT{n:02d}" for n in range(1, 11)]

    async def test_header_row_is_bold_and_filled(self, backup_file):
        wb = load_workbook(backup_file)
        cell = wb["StoreEntity"]["A1"]
        assert cell.font.bold
        assert cell.fill.fill_type == "solid"
        wb.close()

    async def test_cell_encoding(self, backup_file):
        header, *rows = _sheet_rows(backup_file, "ExchangeItemEntity")
        row = dict(zip(header, rows[0]))
        assert row["isExchangedByMetal"] is True
        assert row["fineWeight"] == 2.1
        assert row["orderDate"] == "2024-01-15 10:30:00"

        header, *rows = _sheet_rows(backup_file, "StoreEntity")
        store = dict(zip(header, rows[0]))
        assert store["invoiceNo"] == 42
        assert store["email"] in ("", None)

    async def test_empty_table_exports_header_only(self, adapter, tmp_path):
        path = await export_database(adapter, tmp_path / "empty.xlsx")
        rows = _sheet_rows(path, "FirmEntity")
        assert rows == [["firmId", "firmName", "firmMobileNumber", "gstNumber", "address"]]

    async def test_metadata_sheet(self, backup_file):
        rows = {r[0]: r[1] for r in _sheet_rows(backup_file, METADATA_SHEET)[1:]}
        assert rows["schemaVersion"] == SCHEMA_VERSION
        assert len(rows["exportedAt"]) == len("2024-01-15 10:30:00")
        assert rows["headers:FirmEntity"] == "firmId|firmName|firmMobileNumber|gstNumber|address"


class TestExportBehaviour:
    async def test_rows_ordered_by_primary_key(self, adapter, tmp_path):
        for firm_id in ("F3", "F1", "F2"):
            await adapter.insert("firms", {"firmId": firm_id, "firmName": firm_id})
        path = await export_database(adapter, tmp_path / "out.xlsx")
        assert [r[0] for r in _sheet_rows(path, "FirmEntity")[1:]] == ["F1", "F2", "F3"]

    async def test_progress_reaches_100(self, adapter, tmp_path):
        seen = []
        await export_database(adapter, tmp_path / "out.xlsx", lambda m, p: seen.append(p))
        assert seen[-1] == 100
        assert seen == sorted(seen)

    async def test_default_path_under_backups(self, adapter, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = await export_database(adapter)
        assert path.parent == tmp_path / "backups"
        assert path.name.startswith("jewelvault_backup_")
        assert path.exists()

    async def test_read_failure_raises_export_error(self, tmp_path):
        broken = AsyncMock()
        broken.select = AsyncMock(side_effect=RuntimeError("connection lost"))
        with pytest.raises(ExportError, match="connection lost"):
            await export_database(broken, tmp_path / "out.xlsx")
        assert not (tmp_path / "out.xlsx").exists()

    async def test_unencodable_value_raises_export_error(self, tmp_path):
        async def _select(table, columns="*", filters=None, order_by=None):
            if table == "stores":
                return [{"storeId": "S1", "invoiceNo": "forty-two"}]
            return []

        adapter = AsyncMock()
        adapter.select = AsyncMock(side_effect=_select)
        with pytest.raises(ExportError, match="StoreEntity"):
            await export_database(adapter, tmp_path / "out.xlsx")

    @pytest.mark.parametrize(
        "table, row, sheet",
        [
            ("items", {"itemId": "IT1", "addDate": 10**25}, "ItemEntity"),
            ("stores", {"storeId": "S1", "invoiceNo": float("inf")}, "StoreEntity"),
        ],
    )
    async def test_out_of_range_value_raises_export_error(self, tmp_path, table, row, sheet):
        async def _select(name, columns="*", filters=None, order_by=None):
            return [row] if name == table else []

        adapter = AsyncMock()
        adapter.select = AsyncMock(side_effect=_select)
        with pytest.raises(ExportError, match=sheet):
            await export_database(adapter, tmp_path / "out.xlsx")
        assert not (tmp_path / "out.xlsx").exists()
