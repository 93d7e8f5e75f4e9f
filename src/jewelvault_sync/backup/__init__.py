"""Spreadsheet backup: entity catalog, export, validation and import.

Usage:
    from jewelvault_sync.backup import export_database, import_database, validate_structure
"""

from jewelvault_sync.backup.catalog import CATALOG, IMPORT_ORDER, get_entity_type
from jewelvault_sync.backup.exporter import export_database
from jewelvault_sync.backup.importer import import_database
from jewelvault_sync.backup.models import (
    EntityOutcome,
    EntityType,
    FieldType,
    ImportSummary,
    RestoreMode,
    StructureReport,
)
from jewelvault_sync.backup.validator import validate_structure

__all__ = [
    "CATALOG",
    "IMPORT_ORDER",
    "get_entity_type",
    "export_database",
    "import_database",
    "validate_structure",
    "EntityOutcome",
    "EntityType",
    "FieldType",
    "ImportSummary",
    "RestoreMode",
    "StructureReport",
]
