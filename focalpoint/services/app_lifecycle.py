"""Flask error hook installation."""
from flask import has_request_context, request
from werkzeug.exceptions import HTTPException

from focalpoint.core.response_helpers import internal_error_response


def install_flask_hooks(app, *, log_exception):
    """Log unhandled exceptions and answer with the standard internal-error response."""

    @app.errorhandler(Exception)
    def _unhandled_exception_handler(exc):
        if isinstance(exc, HTTPException):
            return exc
        path = request.path if has_request_context() else "unknown-path"
        log_exception(f"unhandled_exception path={path}", exc)
        return internal_error_response(request)
