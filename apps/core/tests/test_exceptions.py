"""
Tests for the error taxonomy and the DRF exception handler.
"""
from unittest.mock import Mock, patch

import pytest
from django_ratelimit.exceptions import Ratelimited
from rest_framework.exceptions import NotAuthenticated

from apps.core.exceptions import (
    AccountPendingApproval, AuthenticationError, AuthorizationError, ConflictError,
    InternalError, NotFoundError, ValidationError, custom_exception_handler,
)


def context(request_id='req-1'):
    request = Mock()
    request.request_id = request_id
    request.path = '/v1/test'
    request.method = 'POST'
    return {'request': request}


class TestErrorTaxonomy:
    """Test status codes and machine codes."""

    @pytest.mark.parametrize('error,status_code,code', [
        (ValidationError('x'), 400, 'VALIDATION_ERROR'),
        (AuthenticationError('x'), 401, 'AUTHENTICATION_FAILED'),
        (AuthorizationError('x'), 403, 'FORBIDDEN'),
        (AccountPendingApproval('x'), 403, 'ACCOUNT_PENDING_APPROVAL'),
        (NotFoundError('x'), 404, 'NOT_FOUND'),
        (ConflictError('x'), 409, 'CONFLICT'),
        (InternalError(), 500, 'INTERNAL_ERROR'),
    ])
    def test_codes(self, error, status_code, code):
        assert error.status_code == status_code
        assert error.code == code

    def test_pending_approval_is_an_authorization_error(self):
        assert isinstance(AccountPendingApproval('x'), AuthorizationError)


class TestExceptionHandler:
    """Test custom_exception_handler."""

    def test_service_error(self):
        response = custom_exception_handler(
            ConflictError('Request already processed', details={'status': 'approved'}), context()
        )

        assert response.status_code == 409
        assert response.data == {
            'error': 'Request already processed',
            'code': 'CONFLICT',
            'details': {'status': 'approved'},
            'request_id': 'req-1',
        }

    def test_internal_error_is_generic(self):
        """Test that store failures never leak their message."""
        response = custom_exception_handler(
            InternalError('connection refused on 10.0.0.5', retryable=True), context()
        )

        assert response.status_code == 500
        assert response.data['error'] == 'Internal server error'
        assert response.data['retryable'] is True

    def test_drf_exception_gets_request_id(self):
        response = custom_exception_handler(NotAuthenticated(), context())

        assert response.status_code == 401
        assert response.data['request_id'] == 'req-1'

    def test_unknown_exception_becomes_500(self):
        response = custom_exception_handler(RuntimeError('boom'), context())

        assert response.status_code == 500
        assert response.data['code'] == 'INTERNAL_ERROR'
        assert 'boom' not in str(response.data)

    @patch('apps.core.exceptions.SecurityLogger.log_rate_limit_exceeded')
    def test_ratelimited_becomes_429(self, log_rate_limit):
        request_context = context()
        request_context['request'].META = {'REMOTE_ADDR': '10.1.2.3'}

        response = custom_exception_handler(Ratelimited(), request_context)

        assert response.status_code == 429
        assert response['Retry-After'] == '60'
        assert response.data['code'] == 'RATE_LIMIT_EXCEEDED'
        log_rate_limit.assert_called_once_with(endpoint='/v1/test', ip_address='10.1.2.3')
