"""
Error Handlers for TalentStack

Every failure the host API reports is a ``TalentStackError`` rendered as
``{"success": false, "message", "code", "details"}`` with the error's HTTP
status. Werkzeug errors on ``/api/`` paths use the same body.
"""

from flask import jsonify, request, current_app
from typing import Optional, Dict, Any
from werkzeug.exceptions import HTTPException


class TalentStackError(Exception):
    """Base exception class for TalentStack."""

    code = 'UNKNOWN_ERROR'
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class NotFoundError(TalentStackError):
    code = 'NOT_FOUND'
    status_code = 404

    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(message, details={'resource': resource} if resource else None)


class ValidationError(TalentStackError):
    code = 'VALIDATION_ERROR'
    status_code = 400

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(message, details={'errors': errors} if errors else None)


class ConflictError(TalentStackError):
    """Request conflicts with the current state of the resource."""

    code = 'CONFLICT'
    status_code = 409


def success_response(data: Any = None, message: str = None) -> dict:
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    return response


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(TalentStackError)
    def handle_talentstack_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code}: {error.message} details={error.details}")
        else:
            current_app.logger.info(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # Non-API pages keep werkzeug's HTML error pages
        if '/api/' not in request.path:
            return error
        code = (error.name or 'error').upper().replace(' ', '_')
        return jsonify(TalentStackError(error.description or error.name, code, error.code).to_dict()), error.code
