"""Backup storage on Google Cloud Storage or the local file system.

Backups live under ``database_backups/{user_key}/`` with names that embed a
``yyyyMMdd_HHmmss`` timestamp, so the lexicographically greatest name is
the newest backup.  Uploading a backup first removes every older backup of
that user: one backup per user is kept.

Bucket classes are synchronous and raise on failure; ``CloudBackupStore``
runs them in a worker thread and returns ``OperationResult`` values.
"""

import asyncio
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from google.cloud import storage

from jewelvault_sync.cloud.models import BackupInfo
from jewelvault_sync.config.models import StorageConfig
from jewelvault_sync.errors import TransportError
from jewelvault_sync.results import OperationResult

logger = logging.getLogger(__name__)

BACKUP_FOLDER = "database_backups"
BACKUP_PREFIX = "jewelvault_backup"
CONTENT_TYPE_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def user_prefix(user_key: str) -> str:
    return f"{BACKUP_FOLDER}/{user_key}/"


def backup_file_name(user_key: str, when: datetime | None = None) -> str:
    """``jewelvault_backup_{user_key}_{yyyyMMdd_HHmmss}.xlsx``"""
    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{BACKUP_PREFIX}_{user_key}_{stamp}.xlsx"


@runtime_checkable
class BlobBucket(Protocol):
    """Protocol defining the object store interface."""

    def list(self, prefix: str) -> list[BackupInfo]:
        """List blobs whose name starts with ``prefix``."""
        ...

    def upload(self, blob_name: str, source: Path, content_type: str) -> str:
        """Upload a local file and return its download URL."""
        ...

    def download(self, blob_name: str, destination: Path) -> None:
        """Download a blob to a local file."""
        ...

    def delete(self, blob_name: str) -> None:
        """Delete a blob."""
        ...


class LocalBucket:
    """Object store backed by a local directory."""

    def __init__(self, root_dir: str | Path):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _resolve_path(self, blob_name: str) -> Path:
        return self.root_dir / blob_name.lstrip("/")

    def list(self, prefix: str) -> list[BackupInfo]:
        directory = self._resolve_path(prefix)
        if not directory.is_dir():
            return []
        out = []
        for path in directory.iterdir():
            if not path.is_file():
                continue
            stat = path.stat()
            out.append(
                BackupInfo(
                    file_name=path.name,
                    blob_name=path.relative_to(self.root_dir).as_posix(),
                    upload_date=datetime.fromtimestamp(stat.st_mtime),
                    file_size=stat.st_size,
                    download_url=path.resolve().as_uri(),
                )
            )
        return out

    def upload(self, blob_name: str, source: Path, content_type: str) -> str:
        target = self._resolve_path(blob_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        logger.info("Saved local backup: %s", target)
        return target.resolve().as_uri()

    def download(self, blob_name: str, destination: Path) -> None:
        source = self._resolve_path(blob_name)
        if not source.exists():
            raise FileNotFoundError(f"File not found: {source}")
        shutil.copyfile(source, destination)

    def delete(self, blob_name: str) -> None:
        self._resolve_path(blob_name).unlink()


class GCSBucket:
    """Object store backed by a Google Cloud Storage bucket."""

    def __init__(self, config: StorageConfig):
        self.client = storage.Client(project=config.project_id or None)
        self.bucket_name = config.bucket
        self.bucket = self.client.bucket(self.bucket_name)

    def list(self, prefix: str) -> list[BackupInfo]:
        return [
            BackupInfo(
                file_name=blob.name.rsplit("/", 1)[-1],
                blob_name=blob.name,
                upload_date=blob.time_created,
                file_size=blob.size or 0,
                download_url=blob.public_url,
            )
            for blob in self.client.list_blobs(self.bucket_name, prefix=prefix)
        ]

    def upload(self, blob_name: str, source: Path, content_type: str) -> str:
        blob = self.bucket.blob(blob_name)
        blob.upload_from_filename(str(source), content_type=content_type)
        logger.info("Uploaded to gs://%s/%s", self.bucket_name, blob_name)
        return blob.public_url

    def download(self, blob_name: str, destination: Path) -> None:
        self.bucket.blob(blob_name).download_to_filename(str(destination))

    def delete(self, blob_name: str) -> None:
        self.bucket.blob(blob_name).delete()


def get_bucket(config: StorageConfig) -> BlobBucket:
    """Factory to get the configured object store."""
    if config.backend == "gcs":
        return GCSBucket(config)
    return LocalBucket(config.local_root)


class CloudBackupStore:
    """Per-user backup files in an object store.

    Every method returns an ``OperationResult``; transport failures never
    raise past this class.

    Example:
        store = CloudBackupStore(LocalBucket("/tmp/cloud"))
        result = await store.upload(Path("shop.xlsx"), "9876543210")
        if result.success:
            print(result.value)
    """

    def __init__(self, bucket: BlobBucket):
        self.bucket = bucket

    async def _list_sorted(self, user_key: str) -> list[BackupInfo]:
        """Backups of one user, newest first."""
        blobs = await asyncio.to_thread(self.bucket.list, user_prefix(user_key))
        return sorted(blobs, key=lambda b: b.file_name, reverse=True)

    async def _prune(self, user_key: str, keep: int) -> int:
        backups = await self._list_sorted(user_key)
        stale = backups[keep:]
        for info in stale:
            await asyncio.to_thread(self.bucket.delete, info.blob_name)
            logger.info("Deleted backup %s", info.blob_name)
        return len(stale)

    async def upload(
        self, file: Path, user_key: str, when: datetime | None = None
    ) -> OperationResult[str]:
        """Replace the user's backup with ``file``; return the download URL.

        Older backups are deleted first.  If any of them cannot be deleted
        the upload is not attempted.
        """
        blob_name = user_prefix(user_key) + backup_file_name(user_key, when)
        try:
            await self._prune(user_key, keep=0)
            url = await asyncio.to_thread(self.bucket.upload, blob_name, file, CONTENT_TYPE_XLSX)
        except Exception as e:
            logger.exception("Backup upload failed for %s", user_key)
            return OperationResult.fail(TransportError(f"Upload failed: {e}"))
        return OperationResult.ok(url)

    async def list(self, user_key: str) -> OperationResult[list[BackupInfo]]:
        """All backups of one user, newest first."""
        try:
            return OperationResult.ok(await self._list_sorted(user_key))
        except Exception as e:
            logger.exception("Listing backups failed for %s", user_key)
            return OperationResult.fail(TransportError(f"Failed to list backups: {e}"))

    async def list_latest(self, user_key: str) -> OperationResult[BackupInfo | None]:
        result = await self.list(user_key)
        if not result.success:
            return result
        return OperationResult.ok(result.value[0] if result.value else None)

    async def has_backup(self, user_key: str) -> OperationResult[bool]:
        result = await self.list(user_key)
        if not result.success:
            return result
        return OperationResult.ok(bool(result.value))

    async def download_latest(self, user_key: str, dest_dir: Path) -> OperationResult[Path]:
        """Download the newest backup of one user into ``dest_dir``."""
        latest = await self.list_latest(user_key)
        if not latest.success:
            return latest
        if latest.value is None:
            return OperationResult.fail(TransportError(f"No backup found for {user_key}"))

        dest_dir.mkdir(parents=True, exist_ok=True)
        destination = dest_dir / f"restore_{latest.value.file_name}"
        try:
            await asyncio.to_thread(self.bucket.download, latest.value.blob_name, destination)
        except Exception as e:
            destination.unlink(missing_ok=True)
            logger.exception("Backup download failed for %s", user_key)
            return OperationResult.fail(TransportError(f"Download failed: {e}"))
        logger.info("Downloaded %s to %s", latest.value.blob_name, destination)
        return OperationResult.ok(destination)

    async def delete(self, user_key: str, file_name: str) -> OperationResult[bool]:
        try:
            await asyncio.to_thread(self.bucket.delete, user_prefix(user_key) + file_name)
        except Exception as e:
            logger.exception("Deleting backup %s failed", file_name)
            return OperationResult.fail(TransportError(f"Failed to delete backup: {e}"))
        return OperationResult.ok(True)

    async def cleanup_oldest(self, user_key: str, keep: int) -> OperationResult[int]:
        """Delete all but the ``keep`` newest backups; return how many were deleted."""
        try:
            return OperationResult.ok(await self._prune(user_key, max(0, keep)))
        except Exception as e:
            logger.exception("Backup cleanup failed for %s", user_key)
            return OperationResult.fail(TransportError(f"Cleanup failed: {e}"))
