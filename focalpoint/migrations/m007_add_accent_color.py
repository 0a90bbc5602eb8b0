from focalpoint.services.migration_runner import MigrationUnit

DEFAULT_ACCENT_COLOR = "#2ecc71"


def _up(conn):
    conn.execute(
        "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
        ("accentColor", DEFAULT_ACCENT_COLOR),
    )


def _down(conn):
    conn.execute("DELETE FROM settings WHERE key = ?", ("accentColor",))


MIGRATION = MigrationUnit(
    name="007-add-accent-color",
    apply=_up,
    revert=_down,
    description="accentColor setting",
)
