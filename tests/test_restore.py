import sqlite3
import struct
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest.mock import Mock, patch

from focalpoint.core.errors import InvalidBackupError, SwapError
from focalpoint.services.archive_builder import ArchiveBuilder
from focalpoint.services.restore_workflow import RestoreExecutor, RestoreState


def _make_db(path, tables=("admin",)):
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        for table in tables:
            conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, label TEXT)")
            conn.execute(f"INSERT INTO {table} (label) VALUES ('seed')")
        conn.commit()
    finally:
        conn.close()


def _tree(root):
    root = Path(root)
    if not root.exists():
        return None
    return {
        path.relative_to(root).as_posix(): (path.read_bytes() if path.is_file() else None)
        for path in sorted(root.rglob("*"))
    }


class RestoreExecutorTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.data = self.root / "data"
        self.store = self.data / "gallery.db"
        self.assets = self.root / "public" / "images"
        self.backups = self.data / "backups"
        _make_db(self.store)
        (self.assets / "portraits").mkdir(parents=True)
        (self.assets / "cover.jpg").write_bytes(b"cover-v1")
        (self.assets / "portraits" / "p1.jpg").write_bytes(b"portrait-v1")
        self.log_action = Mock()
        self.executor = RestoreExecutor(self.store, self.assets, self.data, log_action=self.log_action)

    def tearDown(self):
        self._tmp.cleanup()

    def _build(self):
        evictor = Mock()
        evictor.enforce.return_value = []
        return ArchiveBuilder(self.store, self.assets, self.backups, evictor).build()

    def _foreign_zip(self, members):
        path = self.root / "foreign.zip"
        with zipfile.ZipFile(path, "w") as zf:
            for name, payload in members.items():
                zf.writestr(name, payload)
        return path

    def _live_state(self):
        return self.store.read_bytes(), _tree(self.assets)

    def _staging_entries(self):
        return sorted(p.name for p in self.data.iterdir())

    def test_build_then_restore_is_identity(self):
        before = self._live_state()
        info = self._build()
        outcome = self.executor.restore(info.path)
        self.assertTrue(outcome.ok)
        self.assertEqual(self._live_state(), before)

    def test_restore_undoes_later_changes(self):
        before = self._live_state()
        info = self._build()
        conn = sqlite3.connect(str(self.store))
        conn.execute("INSERT INTO admin (label) VALUES ('later')")
        conn.commit()
        conn.close()
        (self.assets / "cover.jpg").write_bytes(b"cover-v2")
        (self.assets / "new.jpg").write_bytes(b"new")

        outcome = self.executor.restore(info.path)

        self.assertTrue(outcome.assets_restored)
        self.assertEqual(self._live_state(), before)
        self.assertEqual(
            outcome.history,
            [
                RestoreState.EXTRACTING,
                RestoreState.VALIDATING,
                RestoreState.SWAPPING,
                RestoreState.CLEANING_UP,
                RestoreState.DONE,
            ],
        )

    def test_archive_without_store_member_is_rejected(self):
        before = self._live_state()
        entries = self._staging_entries()
        archive = self._foreign_zip({"readme.txt": "hello"})
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(archive)
        self.assertEqual(self._live_state(), before)
        self.assertEqual(self._staging_entries(), entries)

    def test_store_missing_required_table_is_rejected(self):
        other_db = self.root / "other" / "gallery.db"
        _make_db(other_db, tables=("something_else",))
        archive = self._foreign_zip({"gallery.db": other_db.read_bytes(), "images/x.jpg": b"x"})
        before = self._live_state()
        entries = self._staging_entries()
        with self.assertRaises(InvalidBackupError) as ctx:
            self.executor.restore(archive)
        self.assertIn("admin", str(ctx.exception))
        self.assertEqual(self._live_state(), before)
        self.assertEqual(self._staging_entries(), entries)

    def test_non_sqlite_and_corrupt_zip_are_rejected(self):
        before = self._live_state()
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(self._foreign_zip({"gallery.db": b"plain text"}))
        corrupt = self.root / "corrupt.zip"
        corrupt.write_bytes(b"PK\x03\x04 definitely not a zip")
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(corrupt)
        self.assertEqual(self._live_state(), before)

    def _damaged_copy(self, archive, patcher):
        data = bytearray(archive.read_bytes())
        patcher(data)
        damaged = self.root / f"damaged-{archive.name}"
        damaged.write_bytes(bytes(data))
        return damaged

    def test_damaged_member_data_is_rejected(self):
        info = self._build()
        with zipfile.ZipFile(info.path) as zf:
            member = zf.getinfo("gallery.db")

        def scramble(data):
            offset = member.header_offset
            name_len, extra_len = struct.unpack("<HH", bytes(data[offset + 26:offset + 30]))
            start = offset + 30 + name_len + extra_len
            for idx in range(start, start + 35):
                data[idx] ^= 0xFF

        damaged = self._damaged_copy(info.path, scramble)
        before = self._live_state()
        entries = self._staging_entries()
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(damaged)
        self.assertEqual(self._live_state(), before)
        self.assertEqual(self._staging_entries(), entries)

    def test_encrypted_member_is_rejected(self):
        archive = self._foreign_zip({"gallery.db": self.store.read_bytes()})

        def mark_encrypted(data):
            central = bytes(data).index(b"PK\x01\x02")
            flags = struct.unpack("<H", bytes(data[central + 8:central + 10]))[0]
            data[central + 8:central + 10] = struct.pack("<H", flags | 0x1)

        damaged = self._damaged_copy(archive, mark_encrypted)
        before = self._live_state()
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(damaged)
        self.assertEqual(self._live_state(), before)

    def test_member_escaping_staging_is_rejected(self):
        before = self._live_state()
        archive = self._foreign_zip({"../escape.txt": "x", "gallery.db": self.store.read_bytes()})
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(archive)
        self.assertFalse((self.data.parent / "escape.txt").exists())
        self.assertEqual(self._live_state(), before)

    def test_failure_records_failed_state(self):
        archive = self._foreign_zip({"readme.txt": "hello"})
        with self.assertRaises(InvalidBackupError):
            self.executor.restore(archive)
        states = [c.kwargs["command"].split()[0] for c in self.log_action.call_args_list]
        self.assertEqual(states[-2:], ["cleaning_up", "failed"])

    def test_store_swap_failure_rolls_back_images(self):
        info = self._build()
        (self.assets / "cover.jpg").write_bytes(b"cover-v2")
        before = self._live_state()
        siblings = sorted(p.name for p in self.assets.parent.iterdir())

        with patch.object(RestoreExecutor, "_swap_store", side_effect=OSError("locked")):
            with self.assertRaises(SwapError) as ctx:
                self.executor.restore(info.path)

        self.assertFalse(ctx.exception.inconsistent)
        self.assertEqual(self._live_state(), before)
        self.assertEqual(sorted(p.name for p in self.assets.parent.iterdir()), siblings)

    def test_failed_rollback_is_reported_inconsistent_and_keeps_old_images(self):
        info = self._build()
        (self.assets / "cover.jpg").write_bytes(b"cover-v2")

        with patch.object(RestoreExecutor, "_swap_store", side_effect=OSError("locked")), patch.object(
            RestoreExecutor, "_rollback_assets", side_effect=OSError("stuck")
        ):
            with self.assertRaises(SwapError) as ctx:
                self.executor.restore(info.path)

        self.assertTrue(ctx.exception.inconsistent)
        kept = [p for p in self.assets.parent.iterdir() if p.name.startswith(".images.prerestore-")]
        self.assertEqual(len(kept), 1)
        self.assertEqual((kept[0] / "images" / "cover.jpg").read_bytes(), b"cover-v2")


if __name__ == "__main__":
    unittest.main()
