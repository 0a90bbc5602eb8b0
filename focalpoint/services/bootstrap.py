"""Application bootstrap/run helpers."""


def run_boot_steps(boot_steps, log_system, log_exception):
    """Run named startup steps in order; the first failure is logged and re-raised."""
    for step_name, step_func in boot_steps:
        try:
            step_func()
        except Exception as exc:
            log_exception(f"boot_step/{step_name}", exc)
            log_system("boot-failed", command=step_name, rejection_message=str(exc)[:500] or "startup step failed")
            raise
        log_system("boot-step", command=step_name)


def lifecycle_boot_steps(manager):
    """Legacy ledger import, then pending migrations; both must succeed before serving."""
    return [("lifecycle_startup", manager.startup)]


def run_server(app, settings, log_system, log_exception, boot_steps):
    """Run startup steps, then start the Flask server."""
    host = settings.web_host
    port = settings.web_port
    log_system("boot-start", command=f"host={host} port={port}")
    run_boot_steps(boot_steps, log_system, log_exception)
    log_system("boot-ready", command=f"host={host} port={port}")
    try:
        app.run(host=host, port=port)
    except Exception as exc:
        log_exception("boot_step/app.run", exc)
        log_system("boot-failed", command="app.run", rejection_message=str(exc)[:500] or "web server startup failed")
        raise
