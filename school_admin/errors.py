"""Error taxonomy for the JSON API and the handlers that render it."""
import logging

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import NotFound as HTTPNotFound

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base error; rendered as ``{"error": message}`` with ``status_code``."""

    status_code = 400
    default_message = "Bad request"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(APIError):
    status_code = 400
    default_message = "Required fields missing"


class ConstraintViolation(APIError):
    status_code = 400
    default_message = "Constraint violation"


class InvalidCredentials(APIError):
    status_code = 401
    default_message = "Invalid credentials"


class NotAuthenticated(APIError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(APIError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_message = "Not found"


def register_error_handlers(app):
    from school_admin import db

    @app.errorhandler(APIError)
    def handle_api_error(error):
        db.session.rollback()
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        message = str(error.orig) if error.orig is not None else "Constraint violation"
        logger.warning("Constraint violation on %s %s: %s", request.method, request.path, message)
        return jsonify({"error": message}), ConstraintViolation.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        # str(error) embeds the bound parameters, which can include password hashes
        orig = getattr(error, "orig", None)
        message = str(orig) if orig is not None else "Database error"
        logger.error("Database error on %s %s: %s: %s",
                     request.method, request.path, type(error).__name__, message)
        return jsonify({"error": message}), 500

    @app.errorhandler(HTTPNotFound)
    def handle_404(error):
        if request.path.startswith("/api/"):
            return jsonify({"error": "Not found"}), 404
        return error
