# Error types raised by the route modules and their JSON rendering.
# Every error carries a user-facing message and an HTTP status; internal
# detail goes to the log, never to the response body.
import logging

from flask import jsonify

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    message = "An unexpected error occurred. Please try again."

    def __init__(self, message=None, detail=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.detail = detail

    def to_dict(self):
        return {"error": self.message}


class ValidationError(AppError):
    status_code = 400
    message = "Invalid request. Please check your input and try again."


class AuthenticationError(AppError):
    status_code = 401
    message = "Authentication required."


class AuthorizationError(AppError):
    status_code = 401
    message = "You do not have access to this resource."


class NotFoundError(AppError):
    status_code = 404
    message = "not found"


class ConflictError(AppError):
    # Raised on a unique-index race; the analyze handler absorbs it.
    status_code = 409
    message = "This analysis already exists."


class UpstreamServiceError(AppError):
    status_code = 503
    message = "The analysis service is temporarily unavailable. Please try again."

    def to_dict(self):
        return {"error": self.message, "retryable": True}


class PersistenceError(AppError):
    status_code = 500
    message = "Failed to save your data. Please try again."


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        if e.status_code >= 500:
            logger.error("%s: %s (%s)", type(e).__name__, e.message, e.detail)
        else:
            logger.warning("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"error": "method not allowed"}), 405
