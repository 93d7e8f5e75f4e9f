"""Models for the backup file layout and restore reporting.

Every entity type in the datastore is declared once as an ``EntityType``;
the exporter, validator and importer all walk those declarations, so
adding a column means editing ``catalog.py`` only.

Usage:
    from jewelvault_sync.backup.models import EntityType, FieldDef, FieldType

    firms = EntityType(
        name="FirmEntity",
        table="firms",
        label="firms",
        fields=(FieldDef(name="firmId"), FieldDef(name="firmName")),
        primary_key="firmId",
        natural_key=("firmId",),
    )
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """Semantic type of a column, drives both cell encoding and coercion."""

    TEXT = "text"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


class RestoreMode(str, Enum):
    """How an import reconciles file rows with existing records."""

    MERGE = "merge"
    REPLACE = "replace"


class FieldDef(BaseModel):
    """One header column of a sheet."""

    model_config = ConfigDict(frozen=True)

    name: str                                   # header text and table column
    type: FieldType = FieldType.TEXT
    optional: bool = False                      # older backups may lack this trailing column


class EntityType(BaseModel):
    """Definition of one entity type: its sheet, table and keys."""

    model_config = ConfigDict(frozen=True)

    name: str                                   # sheet name
    table: str                                  # datastore table
    label: str                                  # plural used in summaries
    fields: tuple[FieldDef, ...]                # header columns, in file order
    primary_key: str
    natural_key: tuple[str, ...]                # identity used to match existing records
    user_field: str | None = None               # rewritten to the active user on import
    store_field: str | None = None              # rewritten to the active store on import
    scoped_lookup: bool = True                  # restrict lookups to the active tenant
    protected_field: str | None = None          # never overwritten in REPLACE when it names
    protected_by: Literal["user", "store"] | None = None  # ...this active identity

    @property
    def headers(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def required_headers(self) -> list[str]:
        return [f.name for f in self.fields if not f.optional]

    @property
    def scope_fields(self) -> tuple[str, ...]:
        return tuple(f for f in (self.user_field, self.store_field) if f)

    def field_type(self, name: str) -> FieldType:
        for f in self.fields:
            if f.name == name:
                return f.type
        raise KeyError(f"{self.name} has no field {name!r}")


class RowCoercionDefault(BaseModel):
    """A cell that could not be read and was replaced by a default value."""

    entity: str
    row_number: int                             # 1-based sheet row
    field: str
    raw_value: Any = None
    default: Any = None


class EntityOutcome(BaseModel):
    """Row counts for one entity type after an import."""

    added: int = 0
    skipped: int = 0
    failed: int = 0
    defaulted: int = 0                          # imported rows with at least one defaulted cell

    @property
    def total(self) -> int:
        return self.added + self.skipped + self.failed


class ImportSummary(BaseModel):
    """Per-entity-type outcome of one restore. Never persisted."""

    mode: RestoreMode
    outcomes: dict[str, EntityOutcome] = Field(default_factory=dict)  # keyed by EntityType.label
    missing_sheets: list[str] = Field(default_factory=list)
    completed_at: datetime | None = None

    def __getitem__(self, label: str) -> EntityOutcome:
        return self.outcomes.setdefault(label, EntityOutcome())

    @property
    def total_added(self) -> int:
        return sum(o.added for o in self.outcomes.values())

    @property
    def total_skipped(self) -> int:
        return sum(o.skipped for o in self.outcomes.values())

    @property
    def total_failed(self) -> int:
        return sum(o.failed for o in self.outcomes.values())

    def format_report(self) -> str:
        """Format a human-readable restore report."""
        lines = [f"Restore ({self.mode.value}):"]
        for label, o in self.outcomes.items():
            line = f"  {label}: {o.added} added, {o.skipped} skipped, {o.failed} failed"
            if o.defaulted:
                line += f" ({o.defaulted} with defaulted cells)"
            lines.append(line)
        if self.missing_sheets:
            lines.append(f"  Missing sheets: {', '.join(self.missing_sheets)}")
        lines.append(
            f"  Total: {self.total_added} added, {self.total_skipped} skipped, "
            f"{self.total_failed} failed"
        )
        return "\n".join(lines)


class StructureReport(BaseModel):
    """Result of checking a workbook's sheets and header rows."""

    valid: bool
    diagnostics: list[str] = Field(default_factory=list)

    def format_report(self) -> str:
        if self.valid:
            return "Backup file structure is valid"
        return "\n".join(["Backup file structure is invalid:"] + [f"  - {d}" for d in self.diagnostics])
