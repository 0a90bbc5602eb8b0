"""Size-bounded retention for stored backup archives."""

from __future__ import annotations

from pathlib import Path

from focalpoint.core.filesystem_utils import list_archive_files


class RetentionEvictor:
    """Keep the archive directory under a byte budget, evicting oldest first.

    Age is the archive file's mtime; ties break on name, which embeds the
    creation timestamp.
    """

    def __init__(self, archive_dir, budget_bytes, log_action=None):
        self.archive_dir = Path(archive_dir)
        self.budget_bytes = int(budget_bytes)
        self._log_action = log_action

    def total_size(self, exclude=()):
        return sum(item["size_bytes"] for item in list_archive_files(self.archive_dir, exclude))

    def enforce(self, incoming_size, exclude=()):
        """Delete oldest archives until ``existing + incoming_size`` fits the budget.

        ``exclude`` names archives that do not count as existing (the one
        being added, or ones still being written). Returns evicted names.
        An incoming archive larger than the budget on its own ends up alone.
        """
        existing = list_archive_files(self.archive_dir, exclude)
        total = sum(item["size_bytes"] for item in existing)
        incoming = max(0, int(incoming_size))
        evicted = []
        for oldest in existing:
            if total + incoming <= self.budget_bytes:
                break
            try:
                oldest["path"].unlink()
            except FileNotFoundError:
                pass
            total -= oldest["size_bytes"]
            evicted.append(oldest["name"])
            if callable(self._log_action):
                self._log_action("backup-evict", command=f"{oldest['name']} size={oldest['size_bytes']}")
        return evicted
