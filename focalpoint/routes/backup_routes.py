"""Backup, restore and migration admin routes.

Authentication is applied by the caller through ``require_login``.
"""
from flask import abort, jsonify, request, send_file, send_from_directory

from focalpoint.core.response_helpers import result_response


def _no_auth(view):
    return view


def register_backup_routes(app, manager, require_login=None):
    """Register admin endpoints that drive the lifecycle manager."""
    guard = require_login or _no_auth
    log_action = manager.log_action

    # Route: /admin/backup
    @app.route("/admin/backup", methods=["GET"], endpoint="backup_list")
    @guard
    def backup_list():
        return jsonify({
            "ok": True,
            "backups": manager.list_snapshots(),
            "storage": manager.storage_summary(),
            "operation": manager.operations.snapshot()["active"],
        })

    # Route: /admin/backup (create)
    @app.route("/admin/backup", methods=["POST"], endpoint="backup_create")
    @guard
    def backup_create():
        return result_response(request, manager.create_snapshot())

    # Route: /admin/backup/download/<filename>
    @app.route("/admin/backup/download/<path:filename>", endpoint="backup_download")
    @guard
    def backup_download(filename):
        path = manager.snapshot_path(filename)
        if path is None:
            log_action("backup-download", command=filename, rejection_message="File not found or invalid path.")
            abort(404)
        log_action("backup-download", command=path.name)
        return send_from_directory(str(path.parent), path.name, as_attachment=True)

    # Route: /admin/backup/delete/<filename>
    @app.route("/admin/backup/delete/<path:filename>", methods=["POST"], endpoint="backup_delete")
    @guard
    def backup_delete(filename):
        return result_response(request, manager.delete_snapshot(filename))

    # Route: /admin/backup/bulk-action
    @app.route("/admin/backup/bulk-action", methods=["POST"], endpoint="backup_bulk_action")
    @guard
    def backup_bulk_action():
        payload = request.get_json(silent=True) or {}
        action = (payload.get("action") or request.form.get("action") or "").strip()
        filenames = payload.get("filenames")
        if filenames is None:
            filenames = request.form.getlist("filenames")
        if isinstance(filenames, str):
            filenames = [filenames]
        if action == "delete":
            return result_response(request, manager.bulk_delete_snapshots(filenames))
        if action == "download":
            result = manager.bulk_download_snapshots(filenames)
            if not result.get("ok"):
                return result_response(request, result)
            bundle = result["path"]
            response = send_file(str(bundle), as_attachment=True, download_name=result["download_name"])
            response.call_on_close(lambda: bundle.unlink(missing_ok=True))
            return response
        return result_response(request, {"ok": False, "error": "invalid_name", "message": "Invalid action."})

    # Route: /admin/restore (uploaded zip)
    @app.route("/admin/restore", methods=["POST"], endpoint="backup_restore_upload")
    @guard
    def backup_restore_upload():
        upload = request.files.get("backupFile")
        if upload is None or not upload.filename:
            return result_response(request, {"ok": False, "error": "no_selection", "message": "No file uploaded."})
        result = manager.restore_from_upload(upload.stream, filename=upload.filename)
        return result_response(request, result)

    # Route: /admin/restore-selected
    @app.route("/admin/restore-selected", methods=["POST"], endpoint="backup_restore_selected")
    @guard
    def backup_restore_selected():
        payload = request.get_json(silent=True) or {}
        filename = (payload.get("filename") or request.form.get("filename") or "").strip()
        if not filename:
            return result_response(request, {"ok": False, "error": "no_selection", "message": "No backup selected."})
        return result_response(request, manager.restore_from_stored(filename))

    # Route: /admin/migrations
    @app.route("/admin/migrations", methods=["GET"], endpoint="migration_status")
    @guard
    def migration_status():
        result = manager.migration_status()
        if not result.get("ok"):
            return jsonify(result), 503
        return jsonify(result)

    # Route: /admin/migrations/revert-last
    @app.route("/admin/migrations/revert-last", methods=["POST"], endpoint="migration_revert_last")
    @guard
    def migration_revert_last():
        return result_response(request, manager.revert_last_migration())

    # Route: /admin/settings (landing page for redirects)
    @app.route("/admin/settings", methods=["GET"], endpoint="admin_settings")
    @guard
    def admin_settings():
        return jsonify({"ok": True, "msg": request.args.get("msg"), "storage": manager.storage_summary()})
