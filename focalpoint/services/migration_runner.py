"""Ordered, ledger-backed schema migration runner."""

from __future__ import annotations

import importlib
import pkgutil
from dataclasses import dataclass
from typing import Callable, Optional

from focalpoint.core.errors import MigrationError

MIGRATIONS_PACKAGE = "focalpoint.migrations"

REVERTED = "reverted"
REVERT_UNSUPPORTED = "unsupported"
NOTHING_TO_REVERT = "nothing_to_revert"


@dataclass(frozen=True)
class MigrationUnit:
    """One named schema transformation.

    ``apply`` and ``revert`` receive an open ``sqlite3.Connection`` inside a
    transaction. Units without a true inverse leave ``revert`` as ``None``.
    """

    name: str
    apply: Callable
    revert: Optional[Callable] = None
    description: str = ""

    @property
    def reversible(self):
        return self.revert is not None


@dataclass(frozen=True)
class RevertOutcome:
    status: str
    name: str = ""

    @property
    def reverted(self):
        return self.status == REVERTED


def load_units(package_name=MIGRATIONS_PACKAGE):
    """Import every module of ``package_name`` and collect its ``MIGRATION``."""
    package = importlib.import_module(package_name)
    units = []
    for info in pkgutil.iter_modules(package.__path__):
        module = importlib.import_module(f"{package_name}.{info.name}")
        unit = getattr(module, "MIGRATION", None)
        if isinstance(unit, MigrationUnit):
            units.append(unit)
    return units


class MigrationRunner:
    """Apply units in name order, consulting the ledger to skip applied ones."""

    def __init__(self, store, ledger, units, log_action=None):
        ordered = sorted(units, key=lambda unit: unit.name)
        names = [unit.name for unit in ordered]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate migration names: {', '.join(duplicates)}")
        self.store = store
        self.ledger = ledger
        self.units = ordered
        self._log_action = log_action

    def _log(self, action, command=None, rejection_message=None):
        if callable(self._log_action):
            self._log_action(action, command=command, rejection_message=rejection_message)

    def pending(self):
        applied = set(self.ledger.applied_names())
        return [unit.name for unit in self.units if unit.name not in applied]

    def status(self):
        """One row per known unit plus ledger names no shipped unit claims."""
        applied = self.ledger.applied_names()
        applied_set = set(applied)
        known = {unit.name for unit in self.units}
        rows = [
            {
                "name": unit.name,
                "applied": unit.name in applied_set,
                "reversible": unit.reversible,
                "description": unit.description,
            }
            for unit in self.units
        ]
        for name in applied:
            if name not in known:
                rows.append({"name": name, "applied": True, "reversible": False, "description": "unknown unit"})
        return rows

    def run_pending(self):
        """Apply every pending unit; return the names applied by this call.

        Stops at the first failing unit with ``MigrationError``. Units before
        it stay applied; its own changes are rolled back with its ledger row.
        """
        applied_now = []
        for unit in self.units:
            if self.ledger.is_applied(unit.name):
                continue
            with self.store.transaction() as conn:
                try:
                    unit.apply(conn)
                except Exception as exc:
                    self._log("migrate", command=unit.name, rejection_message=str(exc))
                    raise MigrationError(unit.name, exc) from exc
                self.ledger.record_applied(unit.name, conn=conn)
            applied_now.append(unit.name)
            self._log("migrate", command=unit.name)
        return applied_now

    def revert_last(self):
        """Revert only the most recently applied unit."""
        applied = self.ledger.applied_names()
        if not applied:
            return RevertOutcome(NOTHING_TO_REVERT)
        last = applied[-1]
        unit = next((u for u in self.units if u.name == last), None)
        if unit is None or not unit.reversible:
            self._log("migrate-revert", command=last, rejection_message="no revert available")
            return RevertOutcome(REVERT_UNSUPPORTED, last)
        with self.store.transaction() as conn:
            try:
                unit.revert(conn)
            except Exception as exc:
                self._log("migrate-revert", command=last, rejection_message=str(exc))
                raise MigrationError(last, exc) from exc
            self.ledger.remove(last, conn=conn)
        self._log("migrate-revert", command=last)
        return RevertOutcome(REVERTED, last)
