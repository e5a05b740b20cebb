import logging
import traceback

from flask import g, jsonify, request
from werkzeug.exceptions import HTTPException

from voucherspot.config import ConfigurationError
from voucherspot.errors import DomainError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register all error handlers for the application"""

    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        logger.warning(
            f"{error.__class__.__name__}: {error.message} - Path: {request.path}"
        )
        response = jsonify({
            "error": error.__class__.__name__,
            "message": error.message,
            **(error.payload or {}),
        })
        response.status_code = error.status_code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """
        Handles known HTTP errors (404, 401, 403, etc.)
        """
        if e.code == 404:
            logger.info(f"Not found: {request.path}")
        else:
            logger.warning(f"{e.name}: {request.method} {request.path}")
        return jsonify({
            "error": e.name,
            "message": e.description,
            "status_code": e.code,
        }), e.code

    @app.errorhandler(ConfigurationError)
    def configuration_error(error):
        logger.critical(f"Configuration error: {error}")
        return jsonify({
            "error": "Configuration Error",
            "message": str(error),
            "status_code": 500,
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(e):
        """
        Handles all unexpected server errors without leaking stack traces.
        """
        logger.error(f"Unhandled exception on {request.path}: {e}")
        logger.error(traceback.format_exc())
        return jsonify({
            "error": "Internal Server Error",
            "message": "Something went wrong. Please try again later.",
            "status_code": 500,
            "request_id": g.get("request_id"),
        }), 500
