"""Exception hierarchy for backup, restore and cloud transfer.

Phase-level errors (setup, validation, transport, export) abort the
operation that raised them and reach callers as a failed
``OperationResult``.  ``RowImportError`` never leaves the importer: it is
counted as a ``failed`` row in the ``ImportSummary``.
"""


class SyncError(Exception):
    """Base class for all jewelvault-sync errors."""

    kind: str = "sync"


class SetupError(SyncError):
    """Raised when no active tenant identity (user, store) is configured."""

    kind = "setup"


class ProfileNotFoundError(SetupError):
    """Raised when no database profile is configured."""

    pass


class StructureValidationError(SyncError):
    """Raised when a restore file is missing sheets or header columns."""

    kind = "validation"

    def __init__(self, message: str, diagnostics: list[str] | None = None) -> None:
        super().__init__(message)
        self.diagnostics: list[str] = list(diagnostics or [])


class TransportError(SyncError):
    """Raised when the cloud object store cannot be reached or refuses a call."""

    kind = "transport"


class ExportError(SyncError):
    """Raised when the datastore cannot be serialized to a backup file."""

    kind = "export"


class RowImportError(SyncError):
    """Raised for a single data row that cannot be imported."""

    kind = "row"
