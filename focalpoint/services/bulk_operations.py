"""Multi-archive delete/download requests from the operator."""

from __future__ import annotations

import os
import tempfile
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from focalpoint.core.errors import InvalidArchiveNameError
from focalpoint.core.filesystem_utils import safe_archive_path


@dataclass
class BulkDeleteResult:
    deleted: int = 0
    deleted_names: list = field(default_factory=list)
    rejected: list = field(default_factory=list)
    missing: list = field(default_factory=list)


def delete_archive(archive_dir, name):
    """Delete one archive; True if removed, False if absent.

    Raises ``InvalidArchiveNameError`` for names that fail the filename check.
    """
    path = safe_archive_path(archive_dir, name)
    if path is None:
        raise InvalidArchiveNameError(name)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def bulk_delete(archive_dir, names, log_action=None):
    """Delete each named archive; unsafe and missing names are reported, not fatal."""
    result = BulkDeleteResult()
    for name in names or ():
        try:
            removed = delete_archive(archive_dir, name)
        except InvalidArchiveNameError:
            result.rejected.append(name)
            if callable(log_action):
                log_action("backup-bulk-delete", command=str(name), rejection_message="Invalid filename.")
            continue
        if removed:
            result.deleted += 1
            result.deleted_names.append(name)
        else:
            result.missing.append(name)
    if callable(log_action):
        log_action(
            "backup-bulk-delete",
            command=f"deleted={result.deleted} rejected={len(result.rejected)} missing={len(result.missing)}",
        )
    return result


def bulk_download(archive_dir, names, export_dir, log_action=None):
    """Bundle the named archives into one new zip under ``export_dir``.

    Every name is checked before any file is opened; one unsafe name rejects
    the whole request with ``InvalidArchiveNameError``. Missing archives are
    left out. The bundle lives outside the archive directory so it never
    counts against retention; the caller removes it after sending.
    """
    selected = []
    for name in names or ():
        path = safe_archive_path(archive_dir, name)
        if path is None:
            raise InvalidArchiveNameError(name)
        selected.append((name, path))

    export = Path(export_dir)
    export.mkdir(parents=True, exist_ok=True)
    fd, raw_path = tempfile.mkstemp(prefix=f"backups-bulk-{int(time.time() * 1000)}-", suffix=".zip", dir=export)
    os.close(fd)
    bundle = Path(raw_path)
    included = []
    try:
        # Members are already compressed archives; store them as-is.
        with zipfile.ZipFile(bundle, "w", compression=zipfile.ZIP_STORED) as zf:
            for name, path in selected:
                if name in included or not path.is_file():
                    continue
                zf.write(path, name)
                included.append(name)
    except BaseException:
        bundle.unlink(missing_ok=True)
        raise
    if callable(log_action):
        log_action("backup-bulk-download", command=f"{bundle.name} members={len(included)}")
    return bundle, included
