"""Ordering column for categories.

SQLite cannot drop the column again, so there is no revert.
"""

from focalpoint.services.migration_runner import MigrationUnit


def _up(conn):
    columns = {row["name"] for row in conn.execute("PRAGMA table_info(categories)").fetchall()}
    if "position" in columns:
        return
    conn.execute("ALTER TABLE categories ADD COLUMN position INTEGER")
    ids = [row["id"] for row in conn.execute("SELECT id FROM categories ORDER BY id").fetchall()]
    for idx, category_id in enumerate(ids):
        conn.execute("UPDATE categories SET position = ? WHERE id = ?", (idx, category_id))


MIGRATION = MigrationUnit(
    name="002-add-category-position",
    apply=_up,
    description="categories.position column",
)
