"""Operator-facing lifecycle operations: migrations, backups and restores.

Every public operation returns a result dict ``{"ok": bool, "message": str}``
plus ``"error"`` on failure. Operations that touch the store file, the image
tree or the archive directory hold ``OperationState`` for their duration; a
second such request while one is running is rejected with ``"busy"``.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
from pathlib import Path

from focalpoint.core.errors import (
    ArchiveBuildError,
    InvalidArchiveNameError,
    InvalidBackupError,
    LifecycleError,
    MigrationError,
    StoreUnavailableError,
    SwapError,
)
from focalpoint.core.filesystem_utils import describe_archive, format_file_size, list_archive_files, safe_archive_path
from focalpoint.core.ledger_store import LedgerStore
from focalpoint.core.state_db import SQLiteStore
from focalpoint.services import bulk_operations
from focalpoint.services.archive_builder import ArchiveBuilder
from focalpoint.services.legacy_import import import_legacy_ledger
from focalpoint.services.migration_runner import (
    NOTHING_TO_REVERT,
    REVERT_UNSUPPORTED,
    MigrationRunner,
    load_units,
)
from focalpoint.services.restore_workflow import RestoreExecutor
from focalpoint.services.retention import RetentionEvictor
from focalpoint.state import OperationState

_UPLOAD_CHUNK_BYTES = 1024 * 1024


def _failed(message, error):
    return {"ok": False, "error": error, "message": message}


def _busy_result():
    return _failed("A backup, restore or migration operation is already in progress.", "busy")


class LifecycleManager:
    """Owns the store handle, paths, retention budget and operation guard."""

    def __init__(self, settings, *, log_action, log_exception, units=None, clock=None):
        self.settings = settings
        self.log_action = log_action
        self.log_exception = log_exception
        self.store = SQLiteStore(settings.db_path)
        self.ledger = LedgerStore(self.store)
        self.runner = MigrationRunner(
            self.store,
            self.ledger,
            load_units() if units is None else units,
            log_action=log_action,
        )
        self.evictor = RetentionEvictor(settings.backup_dir, settings.backup_limit_bytes, log_action=log_action)
        builder_kwargs = {"log_action": log_action}
        if clock is not None:
            builder_kwargs["clock"] = clock
        self.builder = ArchiveBuilder(
            settings.db_path,
            settings.assets_dir,
            settings.backup_dir,
            self.evictor,
            **builder_kwargs,
        )
        self.restorer = RestoreExecutor(
            settings.db_path,
            settings.assets_dir,
            settings.data_dir,
            required_tables=settings.required_tables,
            log_action=log_action,
        )
        self.operations = OperationState(lock=threading.Lock(), status_lock=threading.Lock())

    def _guarded(self, operation, func):
        if not self.operations.try_begin(operation):
            self.log_action(operation, rejection_message="another lifecycle operation is running")
            return _busy_result()
        result = None
        try:
            result = func()
            return result
        finally:
            self.operations.end(result)

    # Startup -------------------------------------------------------------

    def startup(self):
        """Import the legacy ledger, then apply pending migrations.

        Raises on any failure so the boot sequence aborts.
        """
        self.store.ping()
        imported = import_legacy_ledger(self.ledger, self.settings.legacy_ledger_path, log_action=self.log_action)
        applied = self.runner.run_pending()
        return {"imported": imported, "applied": applied}

    # Migrations ----------------------------------------------------------

    def import_legacy_ledger(self):
        def _run():
            try:
                names = import_legacy_ledger(self.ledger, self.settings.legacy_ledger_path, log_action=self.log_action)
            except LifecycleError as exc:
                self.log_exception("import_legacy_ledger", exc)
                return _failed(str(exc), exc.error_code)
            return {"ok": True, "imported": names, "message": f"Imported {len(names)} legacy migration record(s)."}

        return self._guarded("legacy-import", _run)

    def run_pending_migrations(self):
        def _run():
            try:
                applied = self.runner.run_pending()
            except MigrationError as exc:
                self.log_exception("run_pending_migrations", exc)
                return {**_failed(str(exc), exc.error_code), "failed_unit": exc.unit_name}
            except StoreUnavailableError as exc:
                self.log_exception("run_pending_migrations", exc)
                return _failed(str(exc), exc.error_code)
            if not applied:
                return {"ok": True, "applied": [], "message": "Schema is up to date."}
            return {"ok": True, "applied": applied, "message": f"Applied {len(applied)} migration(s)."}

        return self._guarded("migrate", _run)

    def revert_last_migration(self):
        def _run():
            try:
                outcome = self.runner.revert_last()
            except (MigrationError, StoreUnavailableError) as exc:
                self.log_exception("revert_last_migration", exc)
                return _failed(str(exc), exc.error_code)
            if outcome.status == NOTHING_TO_REVERT:
                message = "No applied migrations."
            elif outcome.status == REVERT_UNSUPPORTED:
                message = f"Migration {outcome.name} has no revert; nothing changed."
            else:
                message = f"Reverted {outcome.name}."
            return {"ok": True, "status": outcome.status, "name": outcome.name, "message": message}

        return self._guarded("migrate-revert", _run)

    def migration_status(self):
        try:
            rows = self.runner.status()
        except StoreUnavailableError as exc:
            self.log_exception("migration_status", exc)
            return _failed(str(exc), exc.error_code)
        pending = [row["name"] for row in rows if not row["applied"]]
        return {"ok": True, "migrations": rows, "pending": pending, "message": f"{len(pending)} pending migration(s)."}

    # Snapshots -----------------------------------------------------------

    def list_snapshots(self):
        """Stored archives, newest first, without ones still being written."""
        items = list_archive_files(self.settings.backup_dir, exclude=self.builder.in_progress())
        items.reverse()
        return [describe_archive(item, self.settings.display_tz) for item in items]

    def storage_summary(self):
        used = self.evictor.total_size(exclude=self.builder.in_progress())
        limit = self.settings.backup_limit_bytes
        return {
            "used_bytes": used,
            "limit_bytes": limit,
            "used_text": format_file_size(used),
            "limit_text": format_file_size(limit),
            "percent": round(100.0 * used / limit, 1) if limit else 0.0,
        }

    def snapshot_path(self, name):
        """Path of an existing stored archive, or ``None`` for unsafe/missing names."""
        path = safe_archive_path(self.settings.backup_dir, name)
        if path is None or not path.is_file() or name in self.builder.in_progress():
            return None
        return path

    def create_snapshot(self):
        def _run():
            try:
                info = self.builder.build()
            except ArchiveBuildError as exc:
                self.log_exception("create_snapshot", exc)
                return _failed(str(exc), exc.error_code)
            return {
                "ok": True,
                "name": info.name,
                "size_bytes": info.size_bytes,
                "message": f"Backup created: {info.name}",
            }

        return self._guarded("backup-create", _run)

    def delete_snapshot(self, name):
        def _run():
            try:
                removed = bulk_operations.delete_archive(self.settings.backup_dir, name)
            except InvalidArchiveNameError as exc:
                self.log_action("backup-delete", command=str(name), rejection_message="Invalid filename.")
                return _failed(str(exc), exc.error_code)
            if not removed:
                return _failed("Backup not found.", "not_found")
            self.log_action("backup-delete", command=name)
            return {"ok": True, "message": "Backup deleted."}

        return self._guarded("backup-delete", _run)

    def bulk_delete_snapshots(self, names):
        names = list(names or [])
        if not names:
            return _failed("No backups selected.", "no_selection")

        def _run():
            outcome = bulk_operations.bulk_delete(self.settings.backup_dir, names, log_action=self.log_action)
            message = f"Deleted {outcome.deleted} backup(s)."
            if outcome.rejected:
                message += f" Rejected {len(outcome.rejected)} invalid name(s)."
            if outcome.missing:
                message += f" {len(outcome.missing)} not found."
            return {
                "ok": True,
                "deleted": outcome.deleted,
                "rejected": outcome.rejected,
                "missing": outcome.missing,
                "message": message,
            }

        return self._guarded("backup-bulk-delete", _run)

    def bulk_download_snapshots(self, names):
        """Bundle archives for download; the caller removes ``result["path"]`` afterwards."""
        names = list(names or [])
        if not names:
            return _failed("No backups selected.", "no_selection")

        def _run():
            try:
                bundle, included = bulk_operations.bulk_download(
                    self.settings.backup_dir,
                    names,
                    self.settings.export_dir,
                    log_action=self.log_action,
                )
            except InvalidArchiveNameError as exc:
                self.log_action("backup-bulk-download", command=str(exc.name), rejection_message="Invalid filename.")
                return _failed(str(exc), exc.error_code)
            except OSError as exc:
                self.log_exception("bulk_download_snapshots", exc)
                return _failed(f"Could not build download bundle: {exc}", "build_failed")
            if not included:
                bundle.unlink(missing_ok=True)
                return _failed("None of the selected backups exist.", "not_found")
            return {
                "ok": True,
                "path": bundle,
                "download_name": bundle.name,
                "included": included,
                "message": f"Bundled {len(included)} backup(s).",
            }

        return self._guarded("backup-bulk-download", _run)

    # Restore -------------------------------------------------------------

    def _restore(self, archive_path, label):
        try:
            outcome = self.restorer.restore(archive_path)
        except InvalidBackupError as exc:
            self.log_action("restore", command=label, rejection_message=str(exc))
            return _failed(f"Invalid backup: {exc}", exc.error_code)
        except SwapError as exc:
            severity = "critical" if exc.inconsistent else "error"
            self.log_exception(f"restore/{label}", exc, severity=severity)
            message = str(exc)
            if exc.inconsistent:
                message = f"{message} Manual inspection required."
            return {**_failed(message, exc.error_code), "inconsistent": exc.inconsistent}
        except OSError as exc:
            self.log_exception(f"restore/{label}", exc)
            return _failed(f"Restore failed: {exc}", "restore_failed")
        self.log_action("restore", command=label)
        return {
            "ok": True,
            "assets_restored": outcome.assets_restored,
            "message": "Backup restored!",
        }

    def restore_from_stored(self, name):
        def _run():
            path = safe_archive_path(self.settings.backup_dir, name)
            if path is None:
                self.log_action("restore", command=str(name), rejection_message="Invalid filename.")
                return _failed("Invalid filename.", "invalid_name")
            if not path.is_file():
                return _failed("Backup not found.", "not_found")
            return self._restore(path, name)

        return self._guarded("restore", _run)

    def restore_from_upload(self, file_handle, filename="upload.zip"):
        """Restore from a readable binary stream (e.g. an uploaded file).

        The stream is spooled to a temp file under the data dir, which is
        removed on every exit path.
        """
        def _run():
            upload_dir = Path(self.settings.data_dir)
            upload_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(prefix="upload-", suffix=".zip", dir=upload_dir) as spool:
                try:
                    shutil.copyfileobj(file_handle, spool, _UPLOAD_CHUNK_BYTES)
                    spool.flush()
                except OSError as exc:
                    self.log_exception("restore_from_upload/spool", exc)
                    return _failed(f"Could not store uploaded file: {exc}", "restore_failed")
                return self._restore(Path(spool.name), f"upload:{filename}")

        return self._guarded("restore", _run)
