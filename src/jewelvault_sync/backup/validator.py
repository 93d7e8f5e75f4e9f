"""Check a backup workbook's structure before any row is imported.

Only sheet names and header rows are read.  Every problem is collected so
the user sees the whole list at once.

This module is **sync** -- it only reads a local file.  Async callers run
it through ``asyncio.to_thread``.
"""

import logging
import zlib
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from jewelvault_sync.backup.catalog import CATALOG
from jewelvault_sync.backup.models import StructureReport

logger = logging.getLogger(__name__)

# Raised while parsing sheet XML lazily; ParseError and lxml's XMLSyntaxError
# subclass SyntaxError
SHEET_READ_ERRORS = (SyntaxError, BadZipFile, zlib.error, EOFError, OSError, KeyError, ValueError)


def normalize_header(value: object) -> str:
    return "" if value is None else str(value).strip().lower()


def validate_structure(path: str | Path) -> StructureReport:
    """Validate that a workbook has every catalog sheet and header column.

    Header names are compared index by index, case-insensitively, after
    trimming.  Extra sheets (``Metadata`` included) and extra trailing
    columns are ignored, and so is a missing optional column (``lastUpdated``
    on users and stores, absent from older backups).

    Args:
        path: Path to the ``.xlsx`` file.

    Returns:
        ``StructureReport`` with ``valid`` and one diagnostic per problem.

    Example:
        report = validate_structure("backups/shop.xlsx")
        if not report.valid:
            print(report.format_report())
    """
    diagnostics: list[str] = []

    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except FileNotFoundError:
        return StructureReport(valid=False, diagnostics=[f"Backup file not found: {path}"])
    except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as e:
        return StructureReport(valid=False, diagnostics=[f"Unreadable workbook: {e}"])

    try:
        sheet_names = set(workbook.sheetnames)
        for entity in CATALOG:
            if entity.name not in sheet_names:
                diagnostics.append(f"Missing sheet: {entity.name}")
                continue

            ws = workbook[entity.name]
            try:
                header_row = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
            except SHEET_READ_ERRORS as e:
                diagnostics.append(f"{entity.name}: unreadable header row: {e}")
                continue
            actual = [normalize_header(v) for v in header_row]

            for index, field in enumerate(entity.fields):
                expected = field.name
                found = actual[index] if index < len(actual) else ""
                if field.optional and not found:
                    continue
                if found != expected.lower():
                    shown = found or "<empty>"
                    diagnostics.append(
                        f"{entity.name}: column {index + 1} should be '{expected}', found '{shown}'"
                    )
    finally:
        workbook.close()

    if diagnostics:
        logger.warning("Backup file %s failed validation with %d problems", path, len(diagnostics))
    return StructureReport(valid=not diagnostics, diagnostics=diagnostics)
