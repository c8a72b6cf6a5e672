"""
Error handling for Academix.

Provides:
- Machine-readable error codes shared by services and the HTTP layer
- Typed exceptions raised inside services
- Consistent JSON error responses and Flask error handlers
"""

from flask import jsonify, request, current_app
from marshmallow import ValidationError as PayloadValidationError
from typing import Optional, Dict, Any


class ErrorCodes:
    INVALID_INPUT = 'INVALID_INPUT'
    FORBIDDEN = 'FORBIDDEN'
    NOT_FOUND = 'NOT_FOUND'
    ITEM_NOT_FOUND = 'ITEM_NOT_FOUND'
    GRADEBOOK_NOT_FOUND = 'GRADEBOOK_NOT_FOUND'
    INVALID_STATE = 'INVALID_STATE'
    CONFLICT = 'CONFLICT'
    ALREADY_ATTEMPTED = 'ALREADY_ATTEMPTED'
    CANCELLED = 'CANCELLED'
    UNAUTHENTICATED = 'UNAUTHENTICATED'
    INTERNAL_ERROR = 'INTERNAL_ERROR'


HTTP_STATUS_BY_CODE = {
    ErrorCodes.INVALID_INPUT: 400,
    ErrorCodes.UNAUTHENTICATED: 401,
    ErrorCodes.FORBIDDEN: 403,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.ITEM_NOT_FOUND: 404,
    ErrorCodes.GRADEBOOK_NOT_FOUND: 404,
    ErrorCodes.INVALID_STATE: 409,
    ErrorCodes.CONFLICT: 409,
    ErrorCodes.CANCELLED: 409,
    ErrorCodes.INTERNAL_ERROR: 500,
}


def http_status_for(code: Optional[str]) -> int:
    return HTTP_STATUS_BY_CODE.get(code, 500)


class AcademixError(Exception):
    """Base exception class for Academix."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCodes.INTERNAL_ERROR,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code or http_status_for(code)
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON response."""
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class InvalidInputError(AcademixError):
    """Input validation failed."""

    def __init__(self, message: str = 'Invalid input', errors: Dict = None):
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_INPUT,
            details={'errors': errors} if errors else None
        )


class ForbiddenError(AcademixError):
    """The caller may not perform this operation."""

    def __init__(self, message: str = 'Access denied'):
        super().__init__(message=message, code=ErrorCodes.FORBIDDEN)


class NotFoundError(AcademixError):
    """Resource not found."""

    def __init__(self, message: str = 'Resource not found', resource: str = None,
                 code: str = ErrorCodes.NOT_FOUND):
        super().__init__(
            message=message,
            code=code,
            details={'resource': resource} if resource else None
        )


class ItemNotFoundError(NotFoundError):
    def __init__(self, message: str = 'Item not found', resource: str = None):
        super().__init__(message, resource=resource, code=ErrorCodes.ITEM_NOT_FOUND)


class GradebookNotFoundError(NotFoundError):
    def __init__(self, message: str = 'Gradebook not found', resource: str = None):
        super().__init__(message, resource=resource, code=ErrorCodes.GRADEBOOK_NOT_FOUND)


class InvalidStateError(AcademixError):
    """The target is not in a state that allows the operation."""

    def __init__(self, message: str = 'Invalid state'):
        super().__init__(message=message, code=ErrorCodes.INVALID_STATE)


class ConflictError(AcademixError):
    """A concurrent or duplicate write lost; the caller may retry."""

    def __init__(self, message: str = 'Conflict', reason: str = None):
        super().__init__(
            message=message,
            code=ErrorCodes.CONFLICT,
            details={'reason': reason} if reason else None
        )


class OperationCancelledError(AcademixError):
    """The caller's deadline expired before the work was committed."""

    def __init__(self, message: str = 'Operation cancelled before commit'):
        super().__init__(message=message, code=ErrorCodes.CANCELLED)


def error_response(
    message: str,
    code: str = ErrorCodes.INVALID_INPUT,
    status_code: Optional[int] = None,
    details: Dict = None
) -> tuple:
    """Create a standardized error response."""
    response = {
        'success': False,
        'message': message,
        'code': code
    }
    if details:
        response['details'] = details

    return jsonify(response), status_code or http_status_for(code)


def success_response(data: Any = None, message: str = None) -> dict:
    """Create a standardized success response."""
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    return response


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(AcademixError)
    def handle_academix_error(error):
        current_app.logger.warning(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(PayloadValidationError)
    def handle_payload_error(error):
        return error_response(
            'Invalid request payload.', ErrorCodes.INVALID_INPUT, 400, {'errors': error.messages}
        )

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api/'):
            return error_response('Endpoint not found', ErrorCodes.NOT_FOUND, 404)
        return error

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        if request.path.startswith('/api/'):
            return error_response('Method not allowed', ErrorCodes.INVALID_INPUT, 405)
        return error

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        if request.path.startswith('/api/'):
            return error_response('Internal server error', ErrorCodes.INTERNAL_ERROR, 500)
        return error
