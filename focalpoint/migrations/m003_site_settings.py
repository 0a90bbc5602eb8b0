"""Key/value site settings with defaults."""

from focalpoint.services.migration_runner import MigrationUnit

_DEFAULTS = (
    ("siteTitle", "Focal Point"),
    ("headerTitle", "Focal Point"),
    ("favicon", ""),
)


def _up(conn):
    conn.execute("CREATE TABLE IF NOT EXISTS settings (key TEXT PRIMARY KEY, value TEXT)")
    conn.executemany("INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)", _DEFAULTS)


def _down(conn):
    conn.execute("DROP TABLE IF EXISTS settings")


MIGRATION = MigrationUnit(
    name="003-site-settings",
    apply=_up,
    revert=_down,
    description="settings table and default titles",
)
