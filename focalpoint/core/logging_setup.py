"""Logging setup helpers."""

from focalpoint.core.action_logging import make_log_action, make_log_exception


def build_loggers(settings):
    """Create the lifecycle action log, the system log and the exception logger."""
    log_action = make_log_action(settings.display_tz, settings.log_dir, settings.action_log_file)
    log_system = make_log_action(settings.display_tz, settings.log_dir, settings.system_log_file)
    log_exception = make_log_exception(log_system)
    return log_action, log_system, log_exception
