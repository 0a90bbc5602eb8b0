import json
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

from focalpoint.application_factory import create_app
from focalpoint.main import get_manager
from focalpoint.services.bootstrap import run_boot_steps, run_server


class BootstrapTests(unittest.TestCase):
    def test_boot_steps_stop_at_first_failure(self):
        log_system = Mock()
        log_exception = Mock()
        later = Mock()

        def broken():
            raise RuntimeError("ledger unavailable")

        with self.assertRaises(RuntimeError):
            run_boot_steps([("first", Mock()), ("broken", broken), ("later", later)], log_system, log_exception)

        later.assert_not_called()
        log_exception.assert_called_once()
        log_system.assert_any_call("boot-failed", command="broken", rejection_message="ledger unavailable")

    def test_run_server_does_not_start_when_boot_fails(self):
        app = Mock()
        settings = SimpleNamespace(web_host="127.0.0.1", web_port=3000)

        def broken():
            raise RuntimeError("migration failed")

        with self.assertRaises(RuntimeError):
            run_server(app, settings, Mock(), Mock(), [("lifecycle_startup", broken)])
        app.run.assert_not_called()

    def test_create_app_imports_legacy_and_migrates(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            legacy = root / "data" / "umzug.json"
            legacy.parent.mkdir(parents=True)
            legacy.write_text(json.dumps([]), encoding="utf-8")

            app = create_app(root)

            manager = get_manager(app)
            self.assertFalse(legacy.exists())
            self.assertEqual(manager.migration_status()["pending"], [])
            log_text = manager.settings.system_log_file.read_text(encoding="utf-8")
            self.assertIn("boot-step", log_text)


if __name__ == "__main__":
    unittest.main()
