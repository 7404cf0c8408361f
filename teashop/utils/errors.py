"""
Standardized error response utilities for the tea shop API.

Provides consistent error response format across all endpoints:
{
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    }
}

Usage:
    from teashop.utils.errors import error_response, ErrorCode

    return error_response("Member not found", ErrorCode.MEMBER_NOT_FOUND, 404)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

from .exceptions import (
    TeaShopError,
    NotFoundError,
    ValidationError,
    TypeCoercionError,
    RulesValidationError,
    PersistenceUnavailableError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization (401, 403)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Validation Errors (400, 422)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TYPE_COERCION_FAILED = "TYPE_COERCION_FAILED"
    RULES_VALIDATION_FAILED = "RULES_VALIDATION_FAILED"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    CONFIG_KEY_NOT_FOUND = "CONFIG_KEY_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"

    # Storage (503)
    PERSISTENCE_UNAVAILABLE = "PERSISTENCE_UNAVAILABLE"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum (or a plain string code)
        status_code: HTTP status code
        log_error: Whether to log the error
        details: Optional extra fields returned alongside message and code

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    error = {
        "message": message,
        "code": code.value if isinstance(code, ErrorCode) else code
    }
    if details:
        error.update(details)

    return jsonify({"error": error}), status_code


# Convenience functions for common error types
def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def forbidden(message: str = "Permission denied", code: ErrorCode = ErrorCode.PERMISSION_DENIED) -> tuple:
    """403 Forbidden error."""
    return error_response(message, code, 403, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False)


def service_unavailable(message: str, code: ErrorCode = ErrorCode.PERSISTENCE_UNAVAILABLE) -> tuple:
    """503 Service Unavailable error."""
    return error_response(message, code, 503, log_error=True)


def internal_error(message: str = "An unexpected error occurred") -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True)


def error_from_exception(error: TeaShopError) -> tuple:
    """
    Map a business exception to its HTTP response.

    Each exception family gets its own status so the admin console can show
    a specific message instead of a generic failure.
    """
    if isinstance(error, TypeCoercionError):
        return error_response(
            error.message, error.code, 422, log_error=False,
            details={"key": error.key, "expectedType": error.expected_type}
        )
    if isinstance(error, RulesValidationError):
        return error_response(
            error.message, error.code, 422, log_error=False,
            details={"invariant": error.invariant}
        )
    if isinstance(error, ValidationError):
        details = {"field": error.field} if error.field else None
        return error_response(error.message, error.code, 400, log_error=False, details=details)
    if isinstance(error, NotFoundError):
        return not_found(error.message, error.code)
    if isinstance(error, PersistenceUnavailableError):
        return service_unavailable(error.message, error.code)
    return error_response(error.message, error.code, 400)
