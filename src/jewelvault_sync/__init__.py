"""jewelvault-sync: spreadsheet backup and restore for the JewelVault datastore.

Exports the whole shop datastore to one ``.xlsx`` workbook, keeps it as a
per-user cloud backup, and restores it into any tenant with MERGE or
REPLACE semantics.

Usage:
    from jewelvault_sync import SyncManager, load_sync_config, get_sync_manager
    from jewelvault_sync import RestoreMode, RestoreSource
"""

__version__ = "0.1.0"

# Adapters
from jewelvault_sync.adapters.base import DatabaseClient
from jewelvault_sync.adapters.sql import AsyncSqlAdapter

# Backup
from jewelvault_sync.backup.catalog import CATALOG, IMPORT_ORDER, build_metadata, get_entity_type
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

# Cloud
from jewelvault_sync.cloud.models import BackupInfo
from jewelvault_sync.cloud.storage import CloudBackupStore, GCSBucket, LocalBucket

# Config
from jewelvault_sync.config.loader import load_sync_config
from jewelvault_sync.config.models import DatabaseProfile, SessionContext, SyncConfig

# Errors
from jewelvault_sync.errors import (
    ExportError,
    ProfileNotFoundError,
    RowImportError,
    SetupError,
    StructureValidationError,
    SyncError,
    TransportError,
)

# Factory
from jewelvault_sync.factory import get_adapter, get_sync_manager, resolve_url

# Orchestration
from jewelvault_sync.manager import SyncManager
from jewelvault_sync.results import (
    FileValidationResult,
    OperationResult,
    RestoreResult,
    RestoreSource,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncSqlAdapter",
    # Backup
    "CATALOG",
    "IMPORT_ORDER",
    "build_metadata",
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
    # Cloud
    "BackupInfo",
    "CloudBackupStore",
    "GCSBucket",
    "LocalBucket",
    # Config
    "load_sync_config",
    "DatabaseProfile",
    "SessionContext",
    "SyncConfig",
    # Errors
    "SyncError",
    "SetupError",
    "ProfileNotFoundError",
    "StructureValidationError",
    "TransportError",
    "ExportError",
    "RowImportError",
    # Factory
    "get_adapter",
    "get_sync_manager",
    "resolve_url",
    # Orchestration
    "SyncManager",
    "OperationResult",
    "FileValidationResult",
    "RestoreResult",
    "RestoreSource",
]
