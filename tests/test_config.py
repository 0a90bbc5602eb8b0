import tempfile
import unittest
from pathlib import Path

from focalpoint.core.settings import MIB, load_settings
from focalpoint.core.web_config import WebConfig


class WebConfigTests(unittest.TestCase):
    def test_reads_basic_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            conf = root / "focalpoint.env"
            conf.write_text(
                "\n".join(
                    [
                        "# admin service",
                        "WEB_HOST=127.0.0.1",
                        "WEB_PORT=8080",
                        "BACKUP_LIMIT_MB=2.5",
                        'BACKUP_DIR="./snapshots"',
                        "export DISPLAY_TZ=Asia/Manila",
                        "REQUIRED_TABLES=admin, images,,",
                        "VERBOSE=yes",
                        "not a setting",
                    ]
                ),
                encoding="utf-8",
            )
            cfg = WebConfig(conf, root)
            self.assertEqual(cfg.get_str("WEB_HOST", "x"), "127.0.0.1")
            self.assertEqual(cfg.get_int("WEB_PORT", 0), 8080)
            self.assertEqual(cfg.get_float("BACKUP_LIMIT_MB", 0.0), 2.5)
            self.assertEqual(cfg.get_path("BACKUP_DIR", root / "none"), root / "snapshots")
            self.assertEqual(cfg.get_str("DISPLAY_TZ", "UTC"), "Asia/Manila")
            self.assertEqual(cfg.get_list("REQUIRED_TABLES", ["x"]), ["admin", "images"])
            self.assertTrue(cfg.get_bool("VERBOSE", False))
            self.assertEqual(cfg.get_str("MISSING", "fallback"), "fallback")

    def test_invalid_numbers_fall_back_and_minimum_clamps(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            conf = root / "focalpoint.env"
            conf.write_text("WEB_PORT=abc\nBACKUP_LIMIT_MB=-4\n", encoding="utf-8")
            cfg = WebConfig(conf, root)
            self.assertEqual(cfg.get_int("WEB_PORT", 3000), 3000)
            self.assertEqual(cfg.get_int("BACKUP_LIMIT_MB", 500, minimum=1), 1)

    def test_missing_file_yields_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg = WebConfig(Path(tmp) / "absent.env", Path(tmp))
            self.assertEqual(cfg.values, {})
            self.assertFalse(cfg.get_bool("ANY", False))


class SettingsTests(unittest.TestCase):
    def test_defaults_resolve_under_base_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _cfg, settings = load_settings(root)
            self.assertEqual(settings.db_path, root / "data" / "gallery.db")
            self.assertEqual(settings.assets_dir, root / "public" / "images")
            self.assertEqual(settings.backup_dir, root / "data" / "backups")
            self.assertEqual(settings.legacy_ledger_path, root / "data" / "umzug.json")
            self.assertEqual(settings.backup_limit_bytes, 500 * MIB)
            self.assertEqual(settings.required_tables, ("admin",))
            self.assertEqual(settings.web_port, 3000)

    def test_overrides_and_bad_timezone(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "focalpoint.env").write_text(
                "DATA_DIR=state\nBACKUP_LIMIT_MB=10\nDISPLAY_TZ=Not/AZone\n",
                encoding="utf-8",
            )
            _cfg, settings = load_settings(root)
            self.assertEqual(settings.data_dir, root / "state")
            self.assertEqual(settings.db_path, root / "state" / "gallery.db")
            self.assertEqual(settings.backup_limit_bytes, 10 * MIB)
            self.assertEqual(str(settings.display_tz), "UTC")


if __name__ == "__main__":
    unittest.main()
