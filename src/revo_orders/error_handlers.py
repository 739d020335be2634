"""
Centralized error handlers for Flask applications.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from revo_orders.errors import OrderingError, TransactionFailedError
from revo_orders.logging_config import get_logger
from revo_orders.serializers import error_response

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Engine errors keep their own status code; everything unexpected becomes
    a 500 with a generic message.
    """

    @app.errorhandler(OrderingError)
    def handle_ordering_error(e: OrderingError):
        if isinstance(e, TransactionFailedError):
            logger.error(f"Transaction failed: {e}")
        else:
            logger.warning(f"{e.code}: {e}")
        return jsonify(error_response(e.message, e.to_dict())), e.http_status

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        logger.warning(f"Pydantic validation error: {e}")
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return jsonify(
            error_response("Invalid data", {"code": "VALIDATION_ERROR", "errors": details})
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e: SQLAlchemyError):
        logger.error(f"Database error: {e}", exc_info=True)
        return jsonify(error_response("Database error")), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(error_response("Internal server error")), HTTPStatus.INTERNAL_SERVER_ERROR
