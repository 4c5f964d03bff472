"""JSON error responses for every blueprint."""

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import AppError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(kind, message, status_code):
    return jsonify({"error": {"kind": kind, "message": message}}), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Render application errors with their kind and status."""
    if error.status_code >= 500:
        current_app.logger.error(f"{error.kind}: {error.message}")
    else:
        current_app.logger.warning(f"{error.kind}: {error.message}")
    return jsonify({"error": error.to_dict()}), error.status_code


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    """Render werkzeug errors (unknown route, bad method, bad JSON) as JSON."""
    if e.code is not None and e.code >= 500:
        current_app.logger.error(f"Internal Server Error: {e}")
        return _error_response("InternalError", "Internal server error.", e.code)
    return _error_response(e.name.replace(" ", ""), e.description, e.code)
