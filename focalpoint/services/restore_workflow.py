"""Restore live gallery state from a backup archive.

A restore walks ``IDLE -> EXTRACTING -> VALIDATING -> SWAPPING ->
CLEANING_UP -> DONE | FAILED``. Extraction happens in a staging directory
under the data dir; live paths are only touched after the staged copy has
passed validation. The staging directory is removed on every exit path.

Swap order: the image tree first (the live tree is renamed aside so it can
be put back), then the store file. If the store swap fails the aside tree is
restored; only a failed rollback leaves store and images mismatched.
"""

from __future__ import annotations

import enum
import sqlite3
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from focalpoint.core.errors import InvalidBackupError, SwapError
from focalpoint.core.filesystem_utils import atomic_replace, remove_path
from focalpoint.core.state_db import looks_like_sqlite, read_only_table_names
from focalpoint.services.archive_builder import ASSETS_MEMBER, STORE_MEMBER

_SQLITE_SIDECARS = ("-wal", "-shm", "-journal")


class RestoreState(enum.Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    SWAPPING = "swapping"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RestoreOutcome:
    state: RestoreState = RestoreState.IDLE
    history: list = field(default_factory=list)
    assets_restored: bool = False

    @property
    def ok(self):
        return self.state is RestoreState.DONE


def _check_members(zf, staging_root):
    """Reject archives whose members would land outside ``staging_root``."""
    root = staging_root.resolve()
    for info in zf.infolist():
        member = PurePosixPath(info.filename.replace("\\", "/"))
        if member.is_absolute() or ".." in member.parts:
            raise InvalidBackupError(f"Archive member escapes staging area: {info.filename}")
        target = (staging_root / Path(*member.parts)).resolve() if member.parts else root
        if target != root and root not in target.parents:
            raise InvalidBackupError(f"Archive member escapes staging area: {info.filename}")


class RestoreExecutor:
    """Validate an archive in staging, then swap it over the live store and images."""

    def __init__(self, store_path, assets_dir, staging_parent, required_tables=("admin",), log_action=None):
        self.store_path = Path(store_path)
        self.assets_dir = Path(assets_dir)
        self.staging_parent = Path(staging_parent)
        self.required_tables = tuple(required_tables)
        self._log_action = log_action

    def _enter(self, outcome, state, detail=""):
        outcome.state = state
        outcome.history.append(state)
        if callable(self._log_action):
            command = state.value if not detail else f"{state.value} {detail}"
            self._log_action("restore-state", command=command)

    def _extract(self, archive_path, staging_root):
        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                _check_members(zf, staging_root)
                zf.extractall(staging_root)
        except zipfile.BadZipFile as exc:
            raise InvalidBackupError("Backup zip is invalid or corrupted.") from exc
        except (zlib.error, EOFError, zipfile.LargeZipFile) as exc:
            raise InvalidBackupError(f"Backup zip data is damaged: {exc}") from exc
        except NotImplementedError as exc:
            raise InvalidBackupError(f"Backup zip uses an unsupported format: {exc}") from exc
        except RuntimeError as exc:
            # zipfile raises RuntimeError for encrypted members.
            raise InvalidBackupError(f"Backup zip cannot be extracted: {exc}") from exc
        except FileNotFoundError as exc:
            raise InvalidBackupError(f"Backup file not found: {archive_path}") from exc

    def validate_staged(self, staging_root):
        """Return the staged store path; raise ``InvalidBackupError`` if unusable."""
        staged_store = staging_root / STORE_MEMBER
        if not staged_store.is_file():
            raise InvalidBackupError(f"Backup does not contain {STORE_MEMBER}.")
        if not looks_like_sqlite(staged_store):
            raise InvalidBackupError(f"{STORE_MEMBER} in backup is not a SQLite database.")
        try:
            tables = read_only_table_names(staged_store)
        except sqlite3.DatabaseError as exc:
            raise InvalidBackupError(f"{STORE_MEMBER} in backup cannot be read: {exc}") from exc
        missing = [name for name in self.required_tables if name not in tables]
        if missing:
            raise InvalidBackupError(f"Backup database is missing required tables: {', '.join(missing)}")
        staged_assets = staging_root / ASSETS_MEMBER
        if staged_assets.exists() and not staged_assets.is_dir():
            raise InvalidBackupError(f"{ASSETS_MEMBER} in backup is not a directory.")
        return staged_store

    def _swap_assets(self, staged_assets, aside):
        """Put ``staged_assets`` in place of the live tree; the old tree goes to ``aside``."""
        had_live = self.assets_dir.exists()
        if had_live:
            atomic_replace(self.assets_dir, aside)
        try:
            self.assets_dir.parent.mkdir(parents=True, exist_ok=True)
            atomic_replace(staged_assets, self.assets_dir)
        except BaseException:
            if had_live and not self.assets_dir.exists():
                atomic_replace(aside, self.assets_dir)
            raise
        return had_live

    def _rollback_assets(self, aside, had_live):
        if self.assets_dir.exists():
            remove_path(self.assets_dir)
        if had_live:
            atomic_replace(aside, self.assets_dir)

    def _swap_store(self, staged_store):
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        # Sidecars belong to the outgoing database; drop them before the file changes.
        for suffix in _SQLITE_SIDECARS:
            sidecar = Path(f"{self.store_path}{suffix}")
            if sidecar.exists():
                sidecar.unlink()
        atomic_replace(staged_store, self.store_path)

    def _swap(self, outcome, staging_root, staged_store):
        staged_assets = staging_root / ASSETS_MEMBER
        if not staged_assets.is_dir():
            try:
                self._swap_store(staged_store)
            except OSError as exc:
                raise SwapError(f"Store swap failed: {exc}", inconsistent=False) from exc
            return

        # Sibling of the live tree so moving it aside stays on one volume.
        self.assets_dir.parent.mkdir(parents=True, exist_ok=True)
        holder = Path(tempfile.mkdtemp(prefix=f".{self.assets_dir.name}.prerestore-", dir=self.assets_dir.parent))
        aside = holder / self.assets_dir.name
        keep_holder = False
        try:
            try:
                had_live = self._swap_assets(staged_assets, aside)
            except OSError as exc:
                if aside.exists():
                    keep_holder = True
                    raise SwapError(
                        f"Image swap failed ({exc}); previous images kept at {aside}.", inconsistent=True
                    ) from exc
                raise SwapError(f"Image swap failed; live state unchanged: {exc}", inconsistent=False) from exc
            outcome.assets_restored = True
            try:
                self._swap_store(staged_store)
            except OSError as exc:
                try:
                    self._rollback_assets(aside, had_live)
                except OSError as rollback_exc:
                    keep_holder = True
                    raise SwapError(
                        f"Store swap failed ({exc}) and images could not be rolled back "
                        f"({rollback_exc}); previous images kept at {aside}.",
                        inconsistent=True,
                    ) from exc
                outcome.assets_restored = False
                raise SwapError(f"Store swap failed; images rolled back: {exc}", inconsistent=False) from exc
        finally:
            if not keep_holder:
                remove_path(holder)

    def restore(self, archive_path):
        """Run one restore; return the ``DONE`` outcome or raise.

        ``InvalidBackupError`` means live state was not touched. ``SwapError``
        means the swap failed; check ``inconsistent`` for a mismatched result.
        """
        outcome = RestoreOutcome()
        self.staging_parent.mkdir(parents=True, exist_ok=True)
        try:
            with tempfile.TemporaryDirectory(prefix="restore-", dir=self.staging_parent) as tmp:
                staging_root = Path(tmp)
                try:
                    self._enter(outcome, RestoreState.EXTRACTING, Path(archive_path).name)
                    self._extract(archive_path, staging_root)
                    self._enter(outcome, RestoreState.VALIDATING)
                    staged_store = self.validate_staged(staging_root)
                    self._enter(outcome, RestoreState.SWAPPING)
                    self._swap(outcome, staging_root, staged_store)
                finally:
                    self._enter(outcome, RestoreState.CLEANING_UP)
        except BaseException:
            self._enter(outcome, RestoreState.FAILED)
            raise
        self._enter(outcome, RestoreState.DONE)
        return outcome
