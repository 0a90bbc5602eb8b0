"""About page content with a starter row."""

from focalpoint.services.migration_runner import MigrationUnit

DEFAULT_ABOUT_MARKDOWN = "# About Me\n\nWrite something about yourself here!"


def _up(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS about (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            markdown TEXT NOT NULL,
            image_path TEXT
        )
        """
    )
    if conn.execute("SELECT 1 FROM about LIMIT 1").fetchone() is None:
        conn.execute(
            "INSERT INTO about (markdown, image_path) VALUES (?, ?)",
            (DEFAULT_ABOUT_MARKDOWN, None),
        )


def _down(conn):
    conn.execute("DROP TABLE IF EXISTS about")


MIGRATION = MigrationUnit(name="005-about", apply=_up, revert=_down, description="about table")
