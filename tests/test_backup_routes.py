import io
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest.mock import patch

from focalpoint.main import build_app, get_manager

JSON_HEADERS = {"Accept": "application/json"}


class BackupRoutesTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.app = build_app(self.root)
        self.manager = get_manager(self.app)
        self.manager.startup()
        self.client = self.app.test_client()

    def tearDown(self):
        self._tmp.cleanup()

    def _create(self):
        response = self.client.post("/admin/backup", headers=JSON_HEADERS)
        self.assertEqual(response.status_code, 200)
        return response.get_json()["name"]

    def test_list_and_create(self):
        self.assertEqual(self.client.get("/admin/backup").get_json()["backups"], [])
        name = self._create()
        payload = self.client.get("/admin/backup").get_json()
        self.assertEqual([item["name"] for item in payload["backups"]], [name])
        self.assertEqual(payload["operation"], "")
        self.assertGreater(payload["storage"]["used_bytes"], 0)

    def test_download_existing_and_unknown(self):
        name = self._create()
        response = self.client.get(f"/admin/backup/download/{name}")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(zipfile.is_zipfile(io.BytesIO(response.data)))
        response.close()
        self.assertEqual(self.client.get("/admin/backup/download/missing.zip").status_code, 404)
        self.assertEqual(self.client.get("/admin/backup/download/gallery.db").status_code, 404)

    def test_delete_redirects_for_form_posts(self):
        name = self._create()
        response = self.client.post(f"/admin/backup/delete/{name}")
        self.assertEqual(response.status_code, 302)
        self.assertIn("/admin/settings?msg=Backup%20deleted.", response.headers["Location"])
        missing = self.client.post("/admin/backup/delete/missing.zip", headers=JSON_HEADERS)
        self.assertEqual(missing.status_code, 404)

    def test_bulk_actions(self):
        name = self._create()
        response = self.client.post(
            "/admin/backup/bulk-action", json={"action": "download", "filenames": [name]}
        )
        self.assertEqual(response.status_code, 200)
        with zipfile.ZipFile(io.BytesIO(response.data)) as zf:
            self.assertEqual(zf.namelist(), [name])
        response.close()

        rejected = self.client.post(
            "/admin/backup/bulk-action",
            json={"action": "download", "filenames": ["../../etc/passwd"]},
            headers=JSON_HEADERS,
        )
        self.assertEqual(rejected.status_code, 400)

        deleted = self.client.post(
            "/admin/backup/bulk-action",
            json={"action": "delete", "filenames": ["../../etc/passwd", name]},
            headers=JSON_HEADERS,
        )
        self.assertEqual(deleted.get_json()["deleted"], 1)
        self.assertEqual(deleted.get_json()["rejected"], ["../../etc/passwd"])

    def test_restore_upload_and_selected(self):
        name = self._create()
        archive = self.manager.snapshot_path(name).read_bytes()
        response = self.client.post(
            "/admin/restore",
            data={"backupFile": (io.BytesIO(archive), name)},
            content_type="multipart/form-data",
            headers=JSON_HEADERS,
        )
        self.assertEqual(response.status_code, 200, response.get_json())
        self.assertEqual(response.get_json()["message"], "Backup restored!")

        selected = self.client.post("/admin/restore-selected", json={"filename": name}, headers=JSON_HEADERS)
        self.assertTrue(selected.get_json()["ok"])

    def test_restore_rejects_foreign_and_missing_upload(self):
        foreign = io.BytesIO()
        with zipfile.ZipFile(foreign, "w") as zf:
            zf.writestr("readme.txt", "hello")
        foreign.seek(0)
        response = self.client.post(
            "/admin/restore",
            data={"backupFile": (foreign, "foreign.zip")},
            content_type="multipart/form-data",
            headers=JSON_HEADERS,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()["error"], "invalid_backup")

        empty = self.client.post("/admin/restore", data={}, headers=JSON_HEADERS)
        self.assertEqual(empty.status_code, 400)

    def test_busy_manager_returns_conflict(self):
        self.assertTrue(self.manager.operations.try_begin("restore"))
        try:
            response = self.client.post("/admin/backup", headers=JSON_HEADERS)
            self.assertEqual(response.status_code, 409)
            self.assertEqual(self.client.get("/admin/backup").get_json()["operation"], "restore")
        finally:
            self.manager.operations.end()

    def test_migration_endpoints(self):
        status = self.client.get("/admin/migrations").get_json()
        self.assertEqual(status["pending"], [])
        reverted = self.client.post("/admin/migrations/revert-last", headers=JSON_HEADERS).get_json()
        self.assertEqual(reverted["status"], "reverted")
        self.assertEqual(self.client.get("/admin/migrations").get_json()["pending"], [reverted["name"]])

    def test_unhandled_error_returns_internal_error(self):
        with patch.object(self.manager, "list_snapshots", side_effect=RuntimeError("kaboom")):
            response = self.client.get("/admin/backup", headers=JSON_HEADERS)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"], "internal_error")
        log_text = self.manager.settings.system_log_file.read_text(encoding="utf-8")
        self.assertIn("kaboom", log_text)


if __name__ == "__main__":
    unittest.main()
