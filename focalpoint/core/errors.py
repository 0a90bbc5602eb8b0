"""Error types raised by the persistent-state lifecycle services."""


class LifecycleError(Exception):
    """Base class for every lifecycle failure surfaced to operators."""

    error_code = "lifecycle_error"


class StoreUnavailableError(LifecycleError):
    """The relational store (and therefore the ledger) cannot be used."""

    error_code = "store_unavailable"


class LegacyLedgerError(LifecycleError):
    """The legacy flat-file ledger exists but cannot be parsed."""

    error_code = "legacy_ledger_invalid"


class MigrationError(LifecycleError):
    """A migration unit failed; the runner halted at ``unit_name``."""

    error_code = "migration_failed"

    def __init__(self, unit_name, cause=None):
        self.unit_name = unit_name
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Migration {unit_name} failed{detail}")


class ArchiveBuildError(LifecycleError):
    error_code = "build_failed"


class InvalidArchiveNameError(LifecycleError):
    """A snapshot name failed the strict filename check."""

    error_code = "invalid_name"

    def __init__(self, name):
        self.name = name
        super().__init__(f"Invalid backup filename: {name!r}")


class InvalidBackupError(LifecycleError):
    """The archive is corrupt, foreign, or missing required content."""

    error_code = "invalid_backup"


class SwapError(LifecycleError):
    """Replacing live state failed part-way.

    ``inconsistent`` is True when live store and asset tree may no longer
    match each other and need manual inspection.
    """

    error_code = "swap_failed"

    def __init__(self, message, *, inconsistent):
        self.inconsistent = bool(inconsistent)
        super().__init__(message)
