"""Migration ledger kept inside the store it governs."""

from __future__ import annotations

from contextlib import contextmanager

_LEDGER_TABLE = "migration_ledger"


def _create_tables(conn):
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {_LEDGER_TABLE} (
            name TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
    )


class LedgerStore:
    """Durable record of applied migration units.

    A unit is applied if and only if its name has a row here. Every method
    raises ``StoreUnavailableError`` when the store cannot be used; there is
    no fallback ledger.
    """

    def __init__(self, store):
        self.store = store

    @contextmanager
    def _conn(self, conn=None):
        if conn is not None:
            _create_tables(conn)
            yield conn
            return
        with self.store.transaction() as own:
            _create_tables(own)
            yield own

    def record_applied(self, name, *, conn=None):
        """Mark ``name`` applied; a repeat call is a no-op.

        Pass ``conn`` to commit the row together with the unit's own changes.
        """
        with self._conn(conn) as c:
            c.execute(f"INSERT OR IGNORE INTO {_LEDGER_TABLE} (name) VALUES (?)", (str(name),))

    def is_applied(self, name):
        with self._conn() as c:
            row = c.execute(f"SELECT 1 FROM {_LEDGER_TABLE} WHERE name = ? LIMIT 1", (str(name),)).fetchone()
        return row is not None

    def applied_names(self):
        """Applied unit names in ascending (apply) order."""
        with self._conn() as c:
            rows = c.execute(f"SELECT name FROM {_LEDGER_TABLE} ORDER BY name ASC").fetchall()
        return [row["name"] for row in rows]

    def is_empty(self):
        with self._conn() as c:
            row = c.execute(f"SELECT 1 FROM {_LEDGER_TABLE} LIMIT 1").fetchone()
        return row is None

    def remove(self, name, *, conn=None):
        """Delete one entry; only an explicit revert does this."""
        with self._conn(conn) as c:
            c.execute(f"DELETE FROM {_LEDGER_TABLE} WHERE name = ?", (str(name),))
