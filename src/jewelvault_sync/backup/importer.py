"""Import a backup workbook into the live datastore.

Entity types are restored parents first (``IMPORT_ORDER``).  For every
row: coerce cells, rewrite tenant scope fields to the active user/store,
then apply the restore mode:

- ``MERGE``: look the record up by natural key; insert new records, leave
  existing ones untouched.  When a file carries the same natural key
  twice, the first row wins.
- ``REPLACE``: insert or overwrite by primary key, except the active
  user's and active store's own records.  When a file carries the same
  primary key twice, the last row wins and the earlier one counts as
  ``skipped``.

A bad row is logged and counted as ``failed``; the import carries on.
Each entity type's writes are applied as one transaction.

Usage:
    from jewelvault_sync.backup.importer import import_database
    from jewelvault_sync.backup.models import RestoreMode

    summary = await import_database(
        adapter,
        "backups/shop.xlsx",
        active_user_id="U1",
        active_store_id="S1",
        mode=RestoreMode.MERGE,
    )
    print(summary.format_report())
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from jewelvault_sync.adapters.base import DatabaseClient
from jewelvault_sync.backup.catalog import IMPORT_ORDER
from jewelvault_sync.backup.cells import CoercionFailed, coerce_cell
from jewelvault_sync.backup.models import (
    EntityOutcome,
    EntityType,
    ImportSummary,
    RestoreMode,
    RowCoercionDefault,
)
from jewelvault_sync.backup.validator import SHEET_READ_ERRORS, normalize_header
from jewelvault_sync.errors import RowImportError, StructureValidationError
from jewelvault_sync.progress import ProgressCallback, emit

logger = logging.getLogger(__name__)

# (sheet row number, {lowercased header: raw cell value})
SheetRow = tuple[int, dict[str, Any]]


def read_workbook(path: str | Path) -> dict[str, list[SheetRow]]:
    """Read every catalog sheet of a workbook into raw rows.

    Blank rows are dropped.  Sheets the catalog does not know about are
    ignored.  Rows are parsed here, not lazily later, so a damaged sheet
    is reported before anything is written.

    Raises:
        StructureValidationError: If the file cannot be opened as a
            workbook, or a sheet's data cannot be parsed.
    """
    wanted = {e.name for e in IMPORT_ORDER}
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as e:
        raise StructureValidationError(f"Cannot open backup file {path}: {e}") from e

    sheets: dict[str, list[SheetRow]] = {}
    name = None
    try:
        for name in workbook.sheetnames:
            if name not in wanted:
                continue
            rows = workbook[name].iter_rows(values_only=True)
            header = [normalize_header(v) for v in next(rows, ())]
            data: list[SheetRow] = []
            for row_number, values in enumerate(rows, start=2):
                if all(v is None or v == "" for v in values):
                    continue
                data.append((row_number, dict(zip(header, values))))
            sheets[name] = data
    except SHEET_READ_ERRORS as e:
        raise StructureValidationError(
            f"Sheet {name} of backup file {path} is damaged: {e}"
        ) from e
    finally:
        workbook.close()
    return sheets


def coerce_row(
    entity: EntityType,
    row_number: int,
    raw: dict[str, Any],
) -> tuple[dict[str, Any], list[RowCoercionDefault]]:
    """Coerce one raw sheet row into a record ordered as ``entity.fields``.

    An optional column the sheet does not carry takes its default silently.
    """
    record: dict[str, Any] = {}
    defaults: list[RowCoercionDefault] = []
    for f in entity.fields:
        value = raw.get(f.name.lower())
        try:
            record[f.name] = coerce_cell(value, f.type)
        except CoercionFailed as e:
            record[f.name] = e.default
            if f.optional and f.name.lower() not in raw:
                continue
            defaults.append(
                RowCoercionDefault(
                    entity=entity.name,
                    row_number=row_number,
                    field=f.name,
                    raw_value=value,
                    default=e.default,
                )
            )
    return record, defaults


class _Identity:
    """Active tenant identity a restore runs under."""

    def __init__(self, user_id: str, store_id: str, user_mobile: str | None) -> None:
        self.user_id = user_id
        self.store_id = store_id
        self.user_mobile = user_mobile

    def values_for(self, protected_by: str | None) -> set[str]:
        if protected_by == "user":
            return {v for v in (self.user_id, self.user_mobile) if v}
        if protected_by == "store":
            return {self.store_id} if self.store_id else set()
        return set()


def _is_protected(entity: EntityType, record: dict[str, Any], identity: _Identity) -> bool:
    if not entity.protected_field:
        return False
    identities = identity.values_for(entity.protected_by)
    return (
        record.get(entity.protected_field) in identities
        or record.get(entity.primary_key) in identities
    )


async def import_database(
    adapter: DatabaseClient,
    path: str | Path,
    active_user_id: str,
    active_store_id: str,
    mode: RestoreMode = RestoreMode.MERGE,
    active_user_mobile: str | None = None,
    progress: ProgressCallback | None = None,
) -> ImportSummary:
    """Restore every entity type found in a backup workbook.

    Args:
        adapter: Datastore to write into.
        path: Path to a structurally valid ``.xlsx`` backup.
        active_user_id: User that tenant-scoped records are reassigned to.
        active_store_id: Store that tenant-scoped records are reassigned to.
        mode: ``RestoreMode.MERGE`` or ``RestoreMode.REPLACE``.
        active_user_mobile: Mobile number of the active user; also protects
            that user's record in REPLACE mode.
        progress: Optional ``(message, percent)`` callback, 0-100.

    Returns:
        ``ImportSummary`` with per-entity-type outcomes and any missing sheets.

    Raises:
        StructureValidationError: If the file cannot be opened or parsed.
    """
    sheets = await asyncio.to_thread(read_workbook, path)
    identity = _Identity(active_user_id, active_store_id, active_user_mobile)
    summary = ImportSummary(mode=mode)

    total = len(IMPORT_ORDER)
    for index, entity in enumerate(IMPORT_ORDER):
        emit(progress, f"Restoring {entity.label}...", index * 100 // total)
        rows = sheets.get(entity.name)
        if rows is None:
            logger.warning("Sheet %s not found, skipping %s", entity.name, entity.label)
            summary.missing_sheets.append(entity.name)
            continue
        outcome = summary[entity.label]
        await _restore_entity(adapter, entity, rows, identity, mode, outcome)
        logger.debug(
            "%s: %d added, %d skipped, %d failed",
            entity.label, outcome.added, outcome.skipped, outcome.failed,
        )

    summary.completed_at = datetime.now()
    emit(progress, "Restore complete", 100)
    logger.info(
        "Restore (%s) finished: %d added, %d skipped, %d failed",
        mode.value, summary.total_added, summary.total_skipped, summary.total_failed,
    )
    return summary


async def _restore_entity(
    adapter: DatabaseClient,
    entity: EntityType,
    rows: list[SheetRow],
    identity: _Identity,
    mode: RestoreMode,
    outcome: EntityOutcome,
) -> None:
    """Stage one entity type's rows, then write them as one batch.

    Args:
        adapter: Datastore to write into.
        entity: Entity type being restored.
        rows: Raw rows of the entity's sheet.
        identity: Active tenant identity.
        mode: Restore mode.
        outcome: Counts for this entity type (mutated in place).
    """
    pk = entity.primary_key
    inserts: dict[Any, dict[str, Any]] = {}       # staged records by primary key
    staged_keys: set[tuple] = set()               # natural keys staged in MERGE
    deletes: dict[Any, None] = {}                 # primary keys to clear first (ordered set)
    defaulted: set[Any] = set()                   # staged primary keys with defaulted cells

    for row_number, raw in rows:
        try:
            record, defaults = coerce_row(entity, row_number, raw)
            if not record[pk]:
                raise RowImportError(f"{entity.name} row {row_number} has no {pk}")

            if entity.user_field:
                record[entity.user_field] = identity.user_id
            if entity.store_field:
                record[entity.store_field] = identity.store_id

            if mode is RestoreMode.MERGE:
                natural_key = tuple(record[k] for k in entity.natural_key)
                lookup = {k: record[k] for k in entity.natural_key}
                if entity.scoped_lookup:
                    lookup.update({k: record[k] for k in entity.scope_fields})
                if natural_key in staged_keys:
                    outcome.skipped += 1
                    continue
                if await adapter.select(entity.table, [pk], filters=lookup):
                    outcome.skipped += 1
                    continue
                if record[pk] in inserts or await adapter.select(
                    entity.table, [pk], filters={pk: record[pk]}
                ):
                    raise RowImportError(
                        f"{entity.name} row {row_number}: {pk} {record[pk]!r} "
                        "already belongs to another record"
                    )
                staged_keys.add(natural_key)
            else:
                if _is_protected(entity, record, identity):
                    outcome.skipped += 1
                    continue
                if record[pk] in inserts:
                    # superseded by this later row with the same primary key
                    outcome.added -= 1
                    outcome.skipped += 1
                    defaulted.discard(record[pk])
                deletes[record[pk]] = None

            inserts[record[pk]] = record
            outcome.added += 1
            if defaults:
                defaulted.add(record[pk])
                logger.warning(
                    "%s row %d: defaulted %s",
                    entity.name, row_number, ", ".join(d.field for d in defaults),
                )
        except Exception as e:
            outcome.failed += 1
            logger.warning("%s row %d failed: %s", entity.name, row_number, e)

    outcome.defaulted = len(defaulted)
    if not inserts and not deletes:
        return

    try:
        await adapter.apply_batch(
            entity.table,
            deletes=[{pk: value} for value in deletes],
            inserts=list(inserts.values()),
        )
    except Exception:
        logger.exception("Writing %s failed, no %s were restored", entity.table, entity.label)
        outcome.failed += outcome.added
        outcome.added = 0
        outcome.defaulted = 0
