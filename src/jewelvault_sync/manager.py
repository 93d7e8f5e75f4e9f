"""Backup and restore orchestration.

``SyncManager`` sequences export, upload, download, validation and import
for the active tenant, scales each phase's progress into one 0-100 range,
and turns every phase failure into a failed ``OperationResult``.

Usage:
    from jewelvault_sync.manager import SyncManager

    manager = SyncManager(adapter, CloudBackupStore(bucket), session, work_dir="backups")
    result = await manager.perform_backup(progress=lambda msg, pct: print(pct, msg))
    if not result.success:
        print(result.error)
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path

from jewelvault_sync.adapters.base import DatabaseClient
from jewelvault_sync.backup.exporter import export_database
from jewelvault_sync.backup.importer import import_database
from jewelvault_sync.backup.models import ImportSummary, RestoreMode
from jewelvault_sync.backup.validator import validate_structure
from jewelvault_sync.cloud.models import BackupInfo
from jewelvault_sync.cloud.storage import CloudBackupStore, backup_file_name
from jewelvault_sync.config.models import SessionContext
from jewelvault_sync.errors import (
    ExportError,
    SetupError,
    StructureValidationError,
    SyncError,
)
from jewelvault_sync.progress import ProgressCallback, ProgressReporter
from jewelvault_sync.results import (
    FileValidationResult,
    OperationResult,
    RestoreResult,
    RestoreSource,
)

logger = logging.getLogger(__name__)


class SyncManager:
    """Run backups and restores for one active tenant.

    Args:
        adapter: Live datastore.
        store: Cloud backup store.
        session: Active user and store.
        work_dir: Directory for exported and downloaded files.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        store: CloudBackupStore,
        session: SessionContext,
        work_dir: str | Path = "backups",
    ) -> None:
        self.adapter = adapter
        self.store = store
        self.session = session
        self.work_dir = Path(work_dir)

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def perform_backup(self, progress: ProgressCallback | None = None) -> OperationResult[str]:
        """Export the datastore and upload it as the user's only cloud backup.

        Returns:
            Download URL of the uploaded backup.
        """
        reporter = ProgressReporter(progress)
        reporter.report("Starting backup...", 0)
        user_mobile = self.session.user_mobile

        if not user_mobile:
            return self._fail(SetupError("No current user found. Please login first."))
        if not self.session.store_id:
            return self._fail(SetupError("Store ID not found. Please set up a store before syncing."))

        self.work_dir.mkdir(parents=True, exist_ok=True)
        export_path = self.work_dir / backup_file_name(user_mobile)
        try:
            await export_database(self.adapter, export_path, reporter.phase(0, 60))
        except ExportError as e:
            return self._fail(e)

        try:
            reporter.report("Uploading backup to cloud...", 60)
            upload = await self.store.upload(export_path, user_mobile)
            if not upload.success:
                logger.error("Backup upload failed: %s", upload.error)
                return upload
            reporter.report("Cleaning up local files...", 90)
        finally:
            export_path.unlink(missing_ok=True)

        reporter.report("Backup completed successfully!", 100)
        logger.info("Backup for %s uploaded: %s", user_mobile, upload.value)
        return upload

    async def perform_local_export(
        self,
        output_path: str | Path | None = None,
        progress: ProgressCallback | None = None,
    ) -> OperationResult[Path]:
        """Export the datastore to a local file without uploading it."""
        reporter = ProgressReporter(progress)
        reporter.report("Starting local export...", 0)
        if output_path is None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            output_path = self.work_dir / backup_file_name(self.session.user_mobile or "local")
        try:
            path = await export_database(self.adapter, output_path, reporter.phase(0, 100))
        except ExportError as e:
            return self._fail(e)
        reporter.report("Export completed successfully!", 100)
        return OperationResult.ok(path)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def perform_restore(
        self,
        user_mobile: str,
        mode: RestoreMode = RestoreMode.MERGE,
        progress: ProgressCallback | None = None,
    ) -> OperationResult[RestoreResult]:
        """Restore the newest cloud backup of ``user_mobile``."""
        return await self.perform_restore_with_source(
            user_mobile, RestoreSource.CLOUD, None, mode, progress
        )

    async def perform_restore_with_source(
        self,
        user_mobile: str,
        source: RestoreSource,
        local_file: str | Path | None = None,
        mode: RestoreMode = RestoreMode.MERGE,
        progress: ProgressCallback | None = None,
    ) -> OperationResult[RestoreResult]:
        """Restore from the cloud or from a local file.

        Phases: fetch and validate (0-20%), import (20-90%), cleanup
        (90-100%).  The temporary file is removed whether or not the
        restore succeeds.

        Args:
            user_mobile: Cloud namespace to restore from (cloud source).
            source: ``RestoreSource.CLOUD`` or ``RestoreSource.LOCAL``.
            local_file: File to restore from (local source).
            mode: ``RestoreMode.MERGE`` or ``RestoreMode.REPLACE``.
            progress: Optional ``(message, percent)`` callback.
        """
        reporter = ProgressReporter(progress)
        reporter.report("Starting restore process...", 0)
        logger.info("Restore from %s started (mode=%s)", source.value, mode.value)

        if not self.session.user_id:
            return self._fail(SetupError("No current user found. Please login first."))
        if not self.session.store_id:
            return self._fail(SetupError("No store selected. Please set up a store before restoring."))

        restore_file: Path | None = None
        try:
            if source is RestoreSource.LOCAL:
                if local_file is None:
                    return self._fail(SetupError("No local file selected for restore."))
                reporter.report("Validating local file...", 5)
                validation = await self.validate_file(local_file)
                if not validation.is_valid:
                    return self._fail(StructureValidationError(validation.message))
                restore_file = validation.file
            else:
                if not user_mobile:
                    return self._fail(SetupError("No user mobile number for cloud restore."))
                reporter.report("Checking for cloud backup...", 5)
                exists = await self.store.has_backup(user_mobile)
                if not exists.success:
                    return exists
                if not exists.value:
                    return self._fail(SetupError(f"No backup found for {user_mobile}."))

                reporter.report("Downloading backup from cloud...", 10)
                download = await self.store.download_latest(user_mobile, self.work_dir)
                if not download.success:
                    return download
                restore_file = download.value

                reporter.report("Validating backup file...", 15)
                report = await asyncio.to_thread(validate_structure, restore_file)
                if not report.valid:
                    return self._fail(
                        StructureValidationError(report.format_report(), report.diagnostics)
                    )

            reporter.report("Importing data...", 20)
            summary: ImportSummary = await import_database(
                self.adapter,
                restore_file,
                active_user_id=self.session.user_id,
                active_store_id=self.session.store_id,
                mode=mode,
                active_user_mobile=self.session.user_mobile or None,
                progress=reporter.phase(20, 90),
            )
        except SyncError as e:
            return self._fail(e)
        except Exception as e:
            logger.exception("Restore from %s failed unexpectedly", source.value)
            return self._fail(SyncError(f"Restore failed: {e}"))
        finally:
            if restore_file is not None:
                reporter.report("Cleaning up temporary files...", 90)
                restore_file.unlink(missing_ok=True)

        reporter.report("Restore completed successfully!", 100)
        message = (
            "Data restored successfully"
            if source is RestoreSource.CLOUD
            else "Local import completed successfully"
        )
        return OperationResult.ok(
            RestoreResult(
                success=True,
                message=message,
                summary=summary,
                restore_mode=mode,
                source=source,
            )
        )

    async def validate_file(self, path: str | Path) -> FileValidationResult:
        """Check a user-picked file and stage a validated temporary copy.

        The copy (``validation_*.xlsx`` in the work dir) is returned in
        ``FileValidationResult.file`` when valid; the caller deletes it.
        """
        path = Path(path)
        if path.suffix.lower() != ".xlsx":
            return FileValidationResult(
                is_valid=False,
                message="Invalid file type. Please select an Excel (.xlsx) file.",
            )
        if not path.is_file():
            return FileValidationResult(is_valid=False, message=f"File not found: {path}")

        self.work_dir.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(prefix="validation_", suffix=".xlsx", dir=self.work_dir)
        temp = Path(temp_name)
        try:
            with open(handle, "wb") as out, open(path, "rb") as src:
                await asyncio.to_thread(shutil.copyfileobj, src, out)
            report = await asyncio.to_thread(validate_structure, temp)
        except OSError as e:
            temp.unlink(missing_ok=True)
            return FileValidationResult(is_valid=False, message=f"Cannot read file: {e}")

        if not report.valid:
            temp.unlink(missing_ok=True)
            return FileValidationResult(is_valid=False, message=report.format_report())
        return FileValidationResult(is_valid=True, message="File is valid", file=temp)

    # ------------------------------------------------------------------
    # Backup management
    # ------------------------------------------------------------------

    async def list_backups(self, user_mobile: str) -> OperationResult[list[BackupInfo]]:
        return await self.store.list(user_mobile)

    async def cleanup_old_backups(self, user_mobile: str, keep: int = 5) -> OperationResult[int]:
        return await self.store.cleanup_oldest(user_mobile, keep)

    async def check_backup_exists(self, user_mobile: str) -> OperationResult[bool]:
        return await self.store.has_backup(user_mobile)

    # ------------------------------------------------------------------

    def _fail(self, exc: SyncError) -> OperationResult:
        logger.error("%s failure: %s", exc.kind, exc)
        return OperationResult.fail(exc)
