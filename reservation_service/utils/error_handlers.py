from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from reservation_service.api.middlewares.auth import AuthError
from reservation_service.exceptions import InvalidRequest, ReservationError, ReservationNotFound

logger = logging.getLogger(__name__)


def error_body(error, message, status_code, **extra):
    body = {
        'success': False,
        'error': error,
        'message': message,
        'status_code': status_code
    }
    body.update(extra)
    return body


def register_error_handlers(app):
    """Register application error handlers"""

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return jsonify(error_body('Validation Error', 'Request data validation failed', 400,
                                  details=error.messages)), 400

    @app.errorhandler(InvalidRequest)
    def invalid_request(error):
        return jsonify(error_body('Invalid Request', error.message, 400, details=error.details)), 400

    @app.errorhandler(AuthError)
    def auth_error(error):
        return jsonify(error_body('Authentication failed', error.message, error.status_code)), error.status_code

    @app.errorhandler(ReservationNotFound)
    def not_found_error(error):
        return jsonify(error_body('Not Found', error.message, 404)), 404

    @app.errorhandler(ReservationError)
    def reservation_error(error):
        logger.warning(f"Unhandled reservation error: {error.code} {error.message}")
        return jsonify(error_body(error.reason, error.message, 409, error_code=error.code)), 409

    @app.errorhandler(HTTPException)
    def http_exception(error):
        return jsonify(error_body(error.name, error.description, error.code)), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.error(f"Internal server error: {error}", exc_info=error)
        return jsonify(error_body('Internal Server Error', 'An unexpected error occurred', 500)), 500
