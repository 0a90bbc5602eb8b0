"""Shared Flask response helpers for ajax/non-ajax admin flows."""

from urllib.parse import quote

from flask import jsonify, redirect

SETTINGS_PAGE = "/admin/settings"

# Failure codes that map to a non-500 status for ajax callers.
_ERROR_STATUS = {
    "busy": 409,
    "invalid_name": 400,
    "no_selection": 400,
    "invalid_backup": 422,
    "not_found": 404,
}


def is_ajax_request(request):
    """Return True when request expects a JSON/XHR style response."""
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    accept = request.headers.get("Accept", "")
    return "application/json" in accept.lower()


def settings_redirect(message):
    """Redirect back to the admin settings page with a flash-style ``msg``."""
    return redirect(f"{SETTINGS_PAGE}?msg={quote(str(message or ''))}")


def result_response(request, result):
    """Render one lifecycle result dict as JSON or a settings-page redirect."""
    if is_ajax_request(request):
        payload = {key: value for key, value in result.items() if key != "path"}
        if result.get("ok"):
            return jsonify(payload)
        return jsonify(payload), _ERROR_STATUS.get(result.get("error"), 500)
    message = result.get("message", "")
    if not result.get("ok") and result.get("error") not in {"no_selection", "not_found", "busy"}:
        message = f"Failed: {message}"
    return settings_redirect(message)


def internal_error_response(request):
    """Return generic internal-error response payload/redirect."""
    if is_ajax_request(request):
        return jsonify({"ok": False, "error": "internal_error", "message": "Internal server error."}), 500
    return settings_redirect("Internal server error.")
