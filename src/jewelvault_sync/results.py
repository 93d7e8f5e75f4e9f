"""Result models returned at the public boundary.

Library internals raise ``SyncError`` subclasses; the orchestrator and the
cloud store convert them into these models so callers always receive
either a value or one descriptive failure.
"""

from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from jewelvault_sync.backup.models import ImportSummary, RestoreMode
from jewelvault_sync.errors import SyncError

T = TypeVar("T")


# ============================================================================
# Operation Result
# ============================================================================


class OperationResult(BaseModel, Generic[T]):
    """Value on success, error message and kind on failure.

    Example:
        >>> OperationResult.ok(3).value
        3
        >>> OperationResult.fail(TransportError("offline")).error_type
        'transport'
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    value: T | None = None
    error: str | None = None
    error_type: str | None = None  # SyncError.kind

    @classmethod
    def ok(cls, value: T) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, exc: SyncError) -> "OperationResult[T]":
        return cls(success=False, error=str(exc), error_type=exc.kind)


# ============================================================================
# Restore
# ============================================================================


class RestoreSource(str, Enum):
    """Where a restore reads its backup file from."""

    CLOUD = "cloud"
    LOCAL = "local"


class FileValidationResult(BaseModel):
    """Outcome of checking a user-picked restore file."""

    is_valid: bool
    message: str
    file: Path | None = None  # validated temporary copy, set when valid


class RestoreResult(BaseModel):
    """Outcome of a restore that got as far as importing."""

    success: bool
    message: str
    summary: ImportSummary
    restore_mode: RestoreMode
    source: RestoreSource
