"""Export the whole datastore to an ``.xlsx`` workbook.

One sheet per entity type in catalog order, each with a bold grey header
row followed by one row per record ordered by primary key, then a trailing
``Metadata`` sheet.

Usage:
    from jewelvault_sync.backup.exporter import export_database

    path = await export_database(adapter, "backups/shop.xlsx")
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from jewelvault_sync.adapters.base import DatabaseClient
from jewelvault_sync.backup.catalog import CATALOG, METADATA_SHEET, SCHEMA_VERSION
from jewelvault_sync.backup.cells import TIMESTAMP_FORMAT, encode_cell
from jewelvault_sync.backup.models import EntityType
from jewelvault_sync.errors import ExportError
from jewelvault_sync.progress import ProgressCallback, emit

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="D9D9D9", end_color="D9D9D9")


def default_backup_path(directory: str | Path | None = None) -> Path:
    """Timestamped path under ``directory`` (default ``./backups``)."""
    backups_dir = Path(directory) if directory else Path.cwd() / "backups"
    backups_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return backups_dir / f"jewelvault_backup_{timestamp}.xlsx"


def _write_header(ws, headers: list[str]) -> None:
    ws.append(headers)
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL


def _write_entity_sheet(workbook: Workbook, entity: EntityType, rows: list[dict]) -> None:
    ws = workbook.create_sheet(entity.name)
    _write_header(ws, entity.headers)
    for row in rows:
        try:
            ws.append([encode_cell(row.get(f.name), f.type) for f in entity.fields])
        except (TypeError, ValueError, OverflowError) as e:
            raise ExportError(
                f"Cannot encode {entity.name} row {row.get(entity.primary_key)!r}: {e}"
            ) from e


def _write_metadata_sheet(workbook: Workbook, exported_at: datetime) -> None:
    ws = workbook.create_sheet(METADATA_SHEET)
    _write_header(ws, ["key", "value"])
    ws.append(["schemaVersion", SCHEMA_VERSION])
    ws.append(["exportedAt", exported_at.strftime(TIMESTAMP_FORMAT)])
    for entity in CATALOG:
        ws.append([f"headers:{entity.name}", "|".join(entity.headers)])


async def export_database(
    adapter: DatabaseClient,
    output_path: str | Path | None = None,
    progress: ProgressCallback | None = None,
) -> Path:
    """Write every entity type in the datastore to one workbook.

    Args:
        adapter: Datastore to read from.
        output_path: Destination ``.xlsx``.  When ``None``, a timestamped
            path under ``./backups/`` is generated.
        progress: Optional ``(message, percent)`` callback, 0-100.

    Returns:
        Path of the written file.

    Raises:
        ExportError: If any table cannot be read, any value cannot be
            encoded, or the file cannot be written.  No partial file is
            left behind.
    """
    path = Path(output_path) if output_path else default_backup_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    workbook.remove(workbook.active)

    total = len(CATALOG)
    for index, entity in enumerate(CATALOG):
        emit(progress, f"Exporting {entity.label}...", index * 100 // (total + 1))
        try:
            rows = await adapter.select(entity.table, "*", order_by=entity.primary_key)
        except Exception as e:
            raise ExportError(f"Cannot read table {entity.table}: {e}") from e
        _write_entity_sheet(workbook, entity, rows)
        logger.debug("Exported %d %s", len(rows), entity.label)

    _write_metadata_sheet(workbook, datetime.now())

    emit(progress, "Writing backup file...", total * 100 // (total + 1))
    try:
        await asyncio.to_thread(workbook.save, path)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise ExportError(f"Cannot write backup file {path}: {e}") from e

    emit(progress, "Export complete", 100)
    logger.info("Exported %d entity types to %s", total, path)
    return path
