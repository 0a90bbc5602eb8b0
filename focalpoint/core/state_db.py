"""SQLite store handle shared by the gallery app and the lifecycle manager.

The lifecycle manager needs three things from the store: run statements,
query rows, and know the backing file path (so the file can be archived and
replaced wholesale during restore). Connections are opened per operation and
closed afterwards, so swapping the file between operations is safe.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from focalpoint.core.errors import StoreUnavailableError

SQLITE_HEADER = b"SQLite format 3\x00"


def _connect(db_path):
    path = Path(db_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are opened explicitly so DDL is covered too.
        conn = sqlite3.connect(str(path), timeout=5.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
    except (OSError, sqlite3.Error) as exc:
        raise StoreUnavailableError(f"Cannot open store {path}: {exc}") from exc
    return conn


def _rollback(conn):
    if conn.in_transaction:
        conn.execute("ROLLBACK")


class SQLiteStore:
    """Per-operation connection factory around one SQLite file."""

    def __init__(self, db_path):
        self.path = Path(db_path)

    @contextmanager
    def transaction(self):
        """Yield a connection inside BEGIN/COMMIT; roll back on any error, always close."""
        conn = _connect(self.path)
        try:
            conn.execute("BEGIN")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            _rollback(conn)
            raise StoreUnavailableError(f"Store operation failed on {self.path}: {exc}") from exc
        except BaseException:
            _rollback(conn)
            raise
        finally:
            conn.close()

    def execute(self, sql, params=()):
        """Run one statement in its own transaction."""
        with self.transaction() as conn:
            conn.execute(sql, params)

    def query(self, sql, params=()):
        """Return all rows for one query."""
        with self.transaction() as conn:
            return conn.execute(sql, params).fetchall()

    def table_names(self):
        rows = self.query("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
        return [row["name"] for row in rows]

    def column_names(self, table):
        rows = self.query(f"PRAGMA table_info({table})")
        return [row["name"] for row in rows]

    def ping(self):
        """Raise ``StoreUnavailableError`` unless the store answers a trivial query."""
        self.query("SELECT 1")


def looks_like_sqlite(path):
    """Return True when ``path`` is a file starting with the SQLite header."""
    try:
        with Path(path).open("rb") as fh:
            return fh.read(len(SQLITE_HEADER)) == SQLITE_HEADER
    except OSError:
        return False


def read_only_table_names(db_path):
    """List tables of a database file without writing to it.

    Raises ``sqlite3.DatabaseError`` for files that are not usable databases.
    """
    conn = sqlite3.connect(f"{Path(db_path).resolve().as_uri()}?mode=ro", uri=True, timeout=5.0)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    finally:
        conn.close()
    return {row[0] for row in rows}
