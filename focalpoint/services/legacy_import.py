"""One-time import of the pre-ledger ``umzug.json`` migration record."""

from __future__ import annotations

import json
from pathlib import Path

from focalpoint.core.errors import LegacyLedgerError

_LEGACY_SUFFIXES = (".js",)

# Legacy file names that differ from the unit name beyond the extension.
LEGACY_NAME_ALIASES = {
    "006_add_client_system": "006-add-client-system",
}


def _normalize_legacy_name(raw):
    name = str(raw or "").strip()
    for suffix in _LEGACY_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return LEGACY_NAME_ALIASES.get(name, name)


def parse_legacy_ledger(text):
    """Return migration names from a legacy ledger document.

    The legacy file is a JSON array of migration file names; a plain
    newline-separated list is accepted as well.
    """
    stripped = text.strip()
    if not stripped:
        return []
    if stripped.startswith("["):
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise LegacyLedgerError(f"Legacy ledger is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise LegacyLedgerError("Legacy ledger must be a list of migration names.")
        raw_names = payload
    else:
        raw_names = stripped.splitlines()
    names = []
    for raw in raw_names:
        if not isinstance(raw, str):
            raise LegacyLedgerError(f"Legacy ledger entry is not a name: {raw!r}")
        name = _normalize_legacy_name(raw)
        if name and name not in names:
            names.append(name)
    return names


def import_legacy_ledger(ledger, legacy_path, log_action=None):
    """Move names from the legacy file into ``ledger`` once, then delete the file.

    Returns the imported names. Nothing happens when the file is absent or
    the ledger already has entries; in the latter case the file is left as is.
    """
    path = Path(legacy_path)
    if not path.is_file():
        return []
    if not ledger.is_empty():
        if callable(log_action):
            log_action("legacy-import", command=str(path), rejection_message="ledger not empty; legacy file ignored")
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LegacyLedgerError(f"Cannot read legacy ledger {path}: {exc}") from exc
    names = parse_legacy_ledger(text)
    for name in names:
        ledger.record_applied(name)
    path.unlink()
    if callable(log_action):
        log_action("legacy-import", command=f"{path} imported={len(names)}")
    return names
