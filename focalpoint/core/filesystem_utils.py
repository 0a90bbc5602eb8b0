"""Filesystem helpers for archive listings, safe names, and path replacement."""

from datetime import datetime
import errno
import os
import re
import shutil
from pathlib import Path

ARCHIVE_NAME_RE = re.compile(r"^[\w.-]+\.zip$", re.ASCII)

# Rename failures that a copy can work around; anything else propagates.
_RENAME_FALLBACK_ERRNOS = {
    errno.EXDEV,
    errno.EBUSY,
    errno.EPERM,
    errno.EACCES,
    errno.ENOTEMPTY,
    errno.EEXIST,
}


def format_file_size(num_bytes):
    """Format bytes into a human-readable string (B/KB/MB/GB/TB)."""
    value = float(max(0, num_bytes or 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{int(value)} {units[idx]}"
    return f"{value:.1f} {units[idx]}"


def is_safe_archive_name(filename):
    """Return True for a bare ``*.zip`` name made of word chars, dots and dashes."""
    if not isinstance(filename, str) or not ARCHIVE_NAME_RE.fullmatch(filename):
        return False
    return filename not in {".zip", "..zip"} and Path(filename).name == filename


def safe_archive_path(base_dir, filename):
    """Return ``base_dir / filename`` when it is a safe direct child, else ``None``.

    The file itself does not have to exist.
    """
    if not is_safe_archive_name(filename):
        return None
    base = Path(base_dir)
    candidate = base / filename
    try:
        candidate.resolve().relative_to(base.resolve())
    except (OSError, ValueError):
        return None
    return candidate


def list_archive_files(base_dir, exclude=()):
    """Return ``*.zip`` metadata dicts sorted oldest-first (mtime, then name)."""
    items = []
    base = Path(base_dir)
    if not base.is_dir():
        return items
    skipped = set(exclude or ())
    for path in base.glob("*.zip"):
        if path.name in skipped or not path.is_file():
            continue
        try:
            stat = path.stat()
        except OSError:
            # Removed between glob and stat.
            continue
        items.append({
            "name": path.name,
            "path": path,
            "size_bytes": stat.st_size,
            "mtime": stat.st_mtime,
        })
    items.sort(key=lambda item: (item["mtime"], item["name"]))
    return items


def describe_archive(item, display_tz):
    """Add display fields (``modified``, ``size_text``) to one listing entry."""
    return {
        "name": item["name"],
        "size_bytes": item["size_bytes"],
        "mtime": item["mtime"],
        "modified": datetime.fromtimestamp(item["mtime"], tz=display_tz).strftime("%b %d, %Y %I:%M:%S %p %Z"),
        "size_text": format_file_size(item["size_bytes"]),
    }


def remove_path(path):
    """Remove a file or directory tree if present."""
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()


def atomic_replace(src, dest):
    """Move ``src`` onto ``dest``, by rename when possible.

    When rename is refused (other volume, locked target) the content is
    copied into a hidden sibling of ``dest`` and renamed into place, then
    ``src`` is removed. A crash mid-copy leaves only the hidden sibling, never
    a second live copy. Directory targets must not exist beforehand.
    Returns ``"rename"`` or ``"copy"``.
    """
    src = Path(src)
    dest = Path(dest)
    try:
        os.replace(src, dest)
        return "rename"
    except OSError as exc:
        if exc.errno not in _RENAME_FALLBACK_ERRNOS:
            raise

    incoming = dest.with_name(f".{dest.name}.incoming")
    remove_path(incoming)
    try:
        if src.is_dir():
            shutil.copytree(src, incoming, symlinks=True)
        else:
            shutil.copy2(src, incoming)
        os.replace(incoming, dest)
    finally:
        if incoming.exists():
            remove_path(incoming)
    remove_path(src)
    return "copy"
