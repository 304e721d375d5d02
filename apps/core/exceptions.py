"""
Error taxonomy and DRF exception handlers.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django_ratelimit.exceptions import Ratelimited

from apps.core.logging import SecurityLogger

logger = logging.getLogger(__name__)


class ClubAccessError(Exception):
    """Base exception for access-control and approval errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ClubAccessError):
    """Raised when registration input is malformed or out of range."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'


class AuthenticationError(ClubAccessError):
    """Raised when a credential is absent or cannot be verified."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'AUTHENTICATION_FAILED'


class AuthorizationError(ClubAccessError):
    """Raised when a verified principal lacks the required permission or authority."""
    status_code = status.HTTP_403_FORBIDDEN
    code = 'FORBIDDEN'


class AccountPendingApproval(AuthorizationError):
    """Raised when an account that still awaits approval tries to log in."""
    code = 'ACCOUNT_PENDING_APPROVAL'


class NotFoundError(ClubAccessError):
    """Raised when a request or user id is unknown."""
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'


class ConflictError(ClubAccessError):
    """Raised when an approval request is already in a terminal state."""
    status_code = status.HTTP_409_CONFLICT
    code = 'CONFLICT'


class InternalError(ClubAccessError):
    """Raised when the store fails; the transaction has been rolled back."""
    code = 'INTERNAL_ERROR'

    def __init__(self, message='Internal server error', details=None, retryable=False):
        self.retryable = retryable
        super().__init__(message, details)


def custom_exception_handler(exc, context):
    """
    Exception handler that renders service errors in a consistent format.

    Service errors carry their own status code. Anything DRF does not
    recognise becomes a generic 500 so internals never leak to callers.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, Ratelimited):
        SecurityLogger.log_rate_limit_exceeded(
            endpoint=getattr(request, 'path', None),
            ip_address=request.META.get('REMOTE_ADDR', 'unknown') if request else 'unknown',
        )
        return Response(
            {
                'error': 'Rate limit exceeded. Please try again later.',
                'code': 'RATE_LIMIT_EXCEEDED',
                'request_id': request_id,
            },
            status=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={'Retry-After': '60'},
        )

    if isinstance(exc, ClubAccessError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"Service error: {exc.__class__.__name__}",
            extra={
                'error_code': exc.code,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=exc.status_code >= 500,
        )

        if isinstance(exc, InternalError):
            # Store failures are reported generically
            data = {'error': 'Internal server error', 'code': exc.code, 'retryable': exc.retryable}
        else:
            data = {'error': exc.message, 'code': exc.code}
            if exc.details:
                data['details'] = exc.details
        data['request_id'] = request_id
        return Response(data, status=exc.status_code)

    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return Response(
            {
                'error': 'Internal server error',
                'code': InternalError.code,
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response
