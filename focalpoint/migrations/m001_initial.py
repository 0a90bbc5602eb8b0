"""Admin, categories and images tables."""

from focalpoint.services.migration_runner import MigrationUnit


def _up(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS admin (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            hash TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS images (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_id INTEGER NOT NULL,
            filename TEXT NOT NULL,
            position INTEGER NOT NULL,
            is_thumbnail INTEGER DEFAULT 0,
            alt_text TEXT DEFAULT '',
            FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE
        )
        """
    )


def _down(conn):
    conn.execute("DROP TABLE IF EXISTS images")
    conn.execute("DROP TABLE IF EXISTS categories")
    conn.execute("DROP TABLE IF EXISTS admin")


MIGRATION = MigrationUnit(
    name="001-initial",
    apply=_up,
    revert=_down,
    description="admin, categories and images tables",
)
