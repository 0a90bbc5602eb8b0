"""App factory entrypoint."""


def create_app(base_dir=None):
    """Return the Flask app instance used by WSGI entrypoints.

    Boot steps run before the app is returned, so a WSGI server never serves
    an out-of-date schema.
    """
    from focalpoint.main import EXTENSION_KEY, build_app, get_manager
    from focalpoint.services.bootstrap import lifecycle_boot_steps, run_boot_steps

    app = build_app(base_dir)
    manager = get_manager(app)
    run_boot_steps(
        lifecycle_boot_steps(manager),
        app.extensions[f"{EXTENSION_KEY}.log_system"],
        manager.log_exception,
    )
    return app
