from focalpoint.services.migration_runner import MigrationUnit


def _up(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS admin (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            hash TEXT NOT NULL
        )
        """
    )


# Dropping admin here would also undo 001; no revert.
MIGRATION = MigrationUnit(
    name="004-multi-admin",
    apply=_up,
    description="multiple admins with unique usernames",
)
