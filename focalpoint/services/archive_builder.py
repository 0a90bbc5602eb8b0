"""Snapshot archives of the gallery store file and the image tree."""

from __future__ import annotations

import os
import threading
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from focalpoint.core.errors import ArchiveBuildError

STORE_MEMBER = "gallery.db"
ASSETS_MEMBER = "images"
ARCHIVE_PREFIX = "backup-"


@dataclass(frozen=True)
class ArchiveInfo:
    name: str
    path: Path
    size_bytes: int
    created_at: datetime


def _utc_now():
    return datetime.now(timezone.utc)


def archive_stem(moment):
    """``backup-2024-01-01T10-20-30-123Z`` for a timezone-aware ``moment``."""
    utc = moment.astimezone(timezone.utc)
    return f"{ARCHIVE_PREFIX}{utc.strftime('%Y-%m-%dT%H-%M-%S')}-{utc.microsecond // 1000:03d}Z"


class ArchiveBuilder:
    """Write ``gallery.db`` plus ``images/`` into one zip, then apply retention."""

    def __init__(self, store_path, assets_dir, archive_dir, evictor, *, clock=_utc_now, log_action=None):
        self.store_path = Path(store_path)
        self.assets_dir = Path(assets_dir)
        self.archive_dir = Path(archive_dir)
        self.evictor = evictor
        self._clock = clock
        self._log_action = log_action
        self._in_progress = set()
        self._in_progress_lock = threading.Lock()

    def in_progress(self):
        """Names of archives currently being written (hidden from listings)."""
        with self._in_progress_lock:
            return frozenset(self._in_progress)

    def _allocate(self, created_at):
        """Reserve a fresh archive path, marked in-progress before it exists on disk."""
        stem = archive_stem(created_at)
        suffix = 0
        with self._in_progress_lock:
            while True:
                name = f"{stem}.zip" if suffix == 0 else f"{stem}-{suffix}.zip"
                path = self.archive_dir / name
                self._in_progress.add(name)
                try:
                    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
                except FileExistsError:
                    self._in_progress.discard(name)
                    suffix += 1
                    continue
                except OSError:
                    self._in_progress.discard(name)
                    raise
                os.close(fd)
                return name, path

    def _write_assets(self, zf):
        if not self.assets_dir.is_dir():
            return
        zf.write(self.assets_dir, f"{ASSETS_MEMBER}/")
        for root, dirs, files in os.walk(self.assets_dir):
            dirs.sort()
            root_path = Path(root)
            rel_root = root_path.relative_to(self.assets_dir)
            for dirname in dirs:
                zf.write(root_path / dirname, f"{ASSETS_MEMBER}/{(rel_root / dirname).as_posix()}/")
            for filename in sorted(files):
                zf.write(root_path / filename, f"{ASSETS_MEMBER}/{(rel_root / filename).as_posix()}")

    def build(self):
        """Create one archive and return its ``ArchiveInfo``.

        The zip is streamed straight to its final path. On any write failure
        the partial file is removed and ``ArchiveBuildError`` is raised without
        running retention. A retention failure keeps the new archive and
        raises ``ArchiveBuildError`` as well.
        """
        if not self.store_path.is_file():
            raise ArchiveBuildError(f"Store file not found: {self.store_path}")
        created_at = self._clock()
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            name, path = self._allocate(created_at)
        except OSError as exc:
            if callable(self._log_action):
                self._log_action("backup-create", command=str(self.archive_dir), rejection_message=str(exc))
            raise ArchiveBuildError(f"Cannot create backup in {self.archive_dir}: {exc}") from exc
        try:
            try:
                with zipfile.ZipFile(
                    path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9, strict_timestamps=False
                ) as zf:
                    zf.write(self.store_path, STORE_MEMBER)
                    self._write_assets(zf)
                size = path.stat().st_size
            except BaseException as exc:
                path.unlink(missing_ok=True)
                if not isinstance(exc, (OSError, ValueError, zipfile.LargeZipFile)):
                    raise
                if callable(self._log_action):
                    self._log_action("backup-create", command=name, rejection_message=str(exc))
                raise ArchiveBuildError(f"Backup {name} failed: {exc}") from exc
            try:
                evicted = self.evictor.enforce(size, exclude=self.in_progress())
            except OSError as exc:
                # The new archive is complete and stays; only retention failed.
                if callable(self._log_action):
                    self._log_action("backup-evict", command=name, rejection_message=str(exc))
                raise ArchiveBuildError(f"Backup {name} was written but retention failed: {exc}") from exc
        finally:
            with self._in_progress_lock:
                self._in_progress.discard(name)
        if callable(self._log_action):
            self._log_action("backup-create", command=f"{name} size={size} evicted={len(evicted)}")
        return ArchiveInfo(name=name, path=path, size_bytes=size, created_at=created_at)
