"""
Platform exception taxonomy and the DRF exception handler that renders it.

Error classes:
- ValidationError: user-correctable input or transition problem (400)
- NotFoundError: referenced row does not exist (404)
- ConflictError: duplicate assignment, double review, stale state (409)
- ConfigurationError: role catalog corruption, fatal (500)
- RetryableError: persistence or storage timeout, safe to retry (503)
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('security')


class PlatformException(Exception):
    """Base exception for platform-specific errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'PLATFORM_ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(PlatformException):
    """Raised when input validation or a precondition fails."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'


class NotFoundError(PlatformException):
    """Raised when a referenced record does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'


class ConflictError(PlatformException):
    """
    Raised when the operation conflicts with current state.

    Not retried automatically: the caller must re-fetch and decide.
    """
    status_code = status.HTTP_409_CONFLICT
    code = 'CONFLICT'


class DuplicateRoleError(ConflictError):
    """Raised when a (user, role) assignment row already exists."""
    code = 'DUPLICATE_ROLE'


class ConfigurationError(PlatformException):
    """Raised when a role is missing from the catalog."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'CONFIGURATION_ERROR'


class RetryableError(PlatformException):
    """Raised when a persistence or storage call timed out."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'RETRYABLE'
    retry_after = 5


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, PlatformException):
        log_extra = {
            'error_code': exc.code,
            'details': exc.details,
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        }
        if isinstance(exc, ConfigurationError):
            security_logger.error(
                f"Role catalog error: {exc.message}",
                extra=log_extra,
            )
        elif exc.status_code >= 500:
            logger.error(f"API Exception: {exc.__class__.__name__}", extra=log_extra)
        else:
            logger.info(f"API Exception: {exc.__class__.__name__}", extra=log_extra)

        response = Response(
            {
                'error': exc.message,
                'code': exc.code,
                'details': exc.details,
                'request_id': request_id,
            },
            status=exc.status_code
        )
        if isinstance(exc, RetryableError):
            response['Retry-After'] = str(exc.retry_after)
        return response

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    logger.error(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'exception': str(exc),
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        },
        exc_info=response is None
    )

    # If DRF didn't handle it, return a generic 500 error
    if response is None:
        return Response(
            {
                'error': 'Internal server error',
                'detail': 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Add request_id to all error responses
    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response
