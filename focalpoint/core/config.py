"""Flask runtime configuration helpers for Focal Point."""

import os
import secrets


def resolve_secret_key(cfg_get_str, *env_names):
    """Resolve secret key from env/config with secure fallback."""
    for name in env_names:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    configured = (cfg_get_str("FOCALPOINT_SECRET_KEY", "") or "").strip()
    if configured:
        return configured
    return secrets.token_hex(32)


def apply_default_flask_config(app, settings, secret_key):
    """Apply baseline Flask runtime config values."""
    app.config["SECRET_KEY"] = secret_key
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    # Uploaded backups are streamed to disk; bound the request body instead.
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes
