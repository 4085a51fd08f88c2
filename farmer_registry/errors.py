# Error Taxonomy
"""
Application errors and their HTTP rendering.

Every error raised by a service derives from ``AppError`` and carries the
status code it is reported with. The handlers registered by
``register_error_handlers`` turn them into ``{"error": ..., "detail": ...}``
JSON bodies. Anything else becomes a generic 500 whose traceback only
reaches the server log.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None, detail=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.detail = detail

    def to_dict(self):
        body = {'error': self.message}
        # Server-side failures keep their detail in the log only
        if self.detail and self.status_code < 500:
            body['detail'] = self.detail
        return body

class ValidationError(AppError):
    status_code = 400
    message = 'Validation failed'

    def __init__(self, message=None, details=None, detail=None):
        super().__init__(message, detail)
        # [{'field': 'bankDetails.ifscCode', 'message': '...'}]
        self.details = details or []

    def to_dict(self):
        body = super().to_dict()
        if self.details:
            body['details'] = self.details
        return body

class FileError(AppError):
    status_code = 400
    message = 'File validation failed'

class AuthError(AppError):
    status_code = 401
    message = 'Unauthorized'

class ForbiddenError(AppError):
    status_code = 403
    message = 'Access denied'

class NotFoundError(AppError):
    status_code = 404
    message = 'Not found'

class DuplicateError(AppError):
    status_code = 400
    message = 'Duplicate entry'

class StorageError(AppError):
    status_code = 500
    message = 'File storage operation failed'

class ExportError(AppError):
    status_code = 500
    message = 'Failed to export farmers data'

class SurveyNumberError(AppError):
    status_code = 500
    message = 'Could not allocate a unique survey number'

def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error('%s: %s (%s)', type(error).__name__, error.message, error.detail)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.name, 'detail': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception('Unhandled error')
        return jsonify({'error': 'Internal server error'}), 500
