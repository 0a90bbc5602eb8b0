"""Line-oriented action/error logs for lifecycle operations."""

from datetime import datetime
import os
import traceback
from flask import request, has_request_context

LOG_ROTATE_MAX_BYTES = 5 * 1024 * 1024
LOG_ROTATE_BACKUP_COUNT = 5
LOCAL_ACTOR = "focalpoint"


def sanitize_log_fragment(text):
    """Normalize user/system text into a single safe log line fragment."""
    return " ".join(str(text or "").replace("\r", " ").replace("\n", " ").split()).strip()


def get_actor():
    """Return the requesting client address, or the local actor outside requests."""
    if not has_request_context():
        return LOCAL_ACTOR
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return (request.remote_addr or "").strip() or LOCAL_ACTOR


def _rotate_log_file(path, max_bytes=LOG_ROTATE_MAX_BYTES, backup_count=LOG_ROTATE_BACKUP_COUNT):
    """Shift ``path`` to ``path.1`` (and so on) once it reaches ``max_bytes``."""
    if max_bytes <= 0 or backup_count <= 0:
        return
    try:
        if not path.exists() or path.stat().st_size < max_bytes:
            return
        for idx in range(backup_count - 1, 0, -1):
            older = path.with_name(f"{path.name}.{idx}")
            if older.exists():
                os.replace(older, path.with_name(f"{path.name}.{idx + 1}"))
        os.replace(path, path.with_name(f"{path.name}.1"))
    except OSError:
        # Rotation failures must not break lifecycle operations.
        pass


def make_log_action(display_tz, log_dir, log_file):
    """Build the ``log_action(action, command=None, rejection_message=None, severity=None)`` writer."""

    def log_action(action, command=None, rejection_message=None, severity=None):
        timestamp = datetime.now(tz=display_tz).strftime("%Y-%m-%d %H:%M:%S")
        actor = sanitize_log_fragment(get_actor()) or "unknown"
        safe_action = sanitize_log_fragment(action) or "unknown"
        parts = [f"{timestamp} <{actor}> [focalpoint/{safe_action}]"]
        if severity:
            parts.append(sanitize_log_fragment(severity).upper())
        if command:
            safe_command = sanitize_log_fragment(command)
            if safe_command:
                parts.append(safe_command)
        if rejection_message:
            safe_rejection = sanitize_log_fragment(rejection_message)
            if safe_rejection:
                parts.append(f"rejected: {safe_rejection}")
        line = " ".join(parts)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            _rotate_log_file(log_file)
            with log_file.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            # Logging must not break lifecycle operations.
            pass

    return log_action


def make_log_exception(log_action):
    """Build an exception logger that emits through ``log_action``."""

    def log_exception(context, exc, severity=None):
        exc_name = type(exc).__name__ if exc is not None else "Exception"
        exc_text = sanitize_log_fragment(str(exc) if exc is not None else "")
        tb = ""
        if exc is not None:
            tb = sanitize_log_fragment(" | ".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        message = f"{context}: {exc_name}"
        if exc_text:
            message += f": {exc_text}"
        if tb:
            message += f" | traceback: {tb[:700]}"
        log_action("error", rejection_message=message, severity=severity)

    return log_exception
