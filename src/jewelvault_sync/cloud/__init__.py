"""Cloud backup storage.

Usage:
    from jewelvault_sync.cloud import CloudBackupStore, LocalBucket
"""

from jewelvault_sync.cloud.models import BackupInfo
from jewelvault_sync.cloud.storage import (
    BlobBucket,
    CloudBackupStore,
    GCSBucket,
    LocalBucket,
    get_bucket,
)

__all__ = [
    "BackupInfo",
    "BlobBucket",
    "CloudBackupStore",
    "GCSBucket",
    "LocalBucket",
    "get_bucket",
]
