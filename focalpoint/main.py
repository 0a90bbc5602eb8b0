"""Focal Point admin service for schema migrations, backups and restores.

This app provides:
- Migration status and revert of the most recent migration
- Snapshot create/list/download/delete and bulk actions
- Restore from an uploaded or stored snapshot
"""

import os
from pathlib import Path

from flask import Flask

from focalpoint.core.config import apply_default_flask_config, resolve_secret_key
from focalpoint.core.logging_setup import build_loggers
from focalpoint.core.settings import load_settings
from focalpoint.routes.backup_routes import register_backup_routes
from focalpoint.services.app_lifecycle import install_flask_hooks
from focalpoint.services.bootstrap import lifecycle_boot_steps, run_server
from focalpoint.services.lifecycle_manager import LifecycleManager

EXTENSION_KEY = "focalpoint"


def resolve_base_dir(base_dir=None):
    """Explicit argument, then ``FOCALPOINT_HOME``, then the working directory."""
    if base_dir is not None:
        return Path(base_dir).resolve()
    env_home = (os.environ.get("FOCALPOINT_HOME") or "").strip()
    if env_home:
        return Path(env_home).resolve()
    return Path.cwd()


def build_runtime(base_dir=None, *, units=None):
    """Load settings and loggers and construct the lifecycle manager."""
    base = resolve_base_dir(base_dir)
    cfg, settings = load_settings(base)
    log_action, log_system, log_exception = build_loggers(settings)
    manager = LifecycleManager(settings, log_action=log_action, log_exception=log_exception, units=units)
    return cfg, settings, manager, log_system


def build_app(base_dir=None, *, units=None, require_login=None):
    """Return a configured Flask app; the manager is kept in ``app.extensions``."""
    cfg, settings, manager, log_system = build_runtime(base_dir, units=units)
    app = Flask(__name__)
    secret_key = resolve_secret_key(cfg.get_str, "FOCALPOINT_SECRET_KEY", "FLASK_SECRET_KEY")
    apply_default_flask_config(app, settings, secret_key)
    install_flask_hooks(app, log_exception=manager.log_exception)
    register_backup_routes(app, manager, require_login=require_login)
    app.extensions[EXTENSION_KEY] = manager
    app.extensions[f"{EXTENSION_KEY}.log_system"] = log_system
    return app


def get_manager(app):
    return app.extensions[EXTENSION_KEY]


def serve(app):
    """Boot sequence (legacy import, pending migrations), then the web server."""
    manager = get_manager(app)
    run_server(
        app,
        manager.settings,
        app.extensions[f"{EXTENSION_KEY}.log_system"],
        manager.log_exception,
        lifecycle_boot_steps(manager),
    )


if __name__ == "__main__":
    serve(build_app())
