"""
Tests for authentication API endpoints.
"""
from datetime import date

import pytest
from django.core.cache import cache
from django.test import override_settings
from django.utils import timezone

from apps.approvals.models import ApprovalRequest
from apps.rbac.models import User


def years_ago(years):
    today = timezone.localdate()
    return date(today.year - years, 1, 1)


@pytest.mark.django_db
class TestRegistrationEndpoint:
    """Test POST /v1/auth/register."""

    def test_register_athlete(self, api_client, coach_user):
        """Test that an athlete registration returns a pending request."""
        response = api_client.post('/v1/auth/register', {
            'email': 'ana@example.com',
            'password': 'secret123',
            'first_name': 'Ana',
            'last_name': 'Pop',
            'role': 'athlete',
            'coach_id': str(coach_user.pk),
            'date_of_birth': years_ago(7).strftime('%d.%m.%Y'),
            'gender': 'female',
        }, format='json')

        assert response.status_code == 201
        data = response.json()['approval_request']
        assert data['status'] == 'pending'
        assert data['requested_role'] == 'athlete'
        assert data['athlete_profile']['category'] == 'U8'
        assert data['athlete_profile']['gender'] == 'F'
        assert User.objects.get(email='ana@example.com').is_active is False

    def test_register_missing_fields(self, api_client, db):
        """Test that missing fields return 400 with the field list."""
        response = api_client.post('/v1/auth/register', {'email': 'x@example.com'}, format='json')

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'VALIDATION_ERROR'
        assert 'password' in body['details']['fields']

    def test_register_duplicate_email(self, api_client, coach_user):
        response = api_client.post('/v1/auth/register', {
            'email': 'COACH@example.com',
            'password': 'secret123',
            'first_name': 'Dup',
            'last_name': 'Licate',
            'role': 'coach',
        }, format='json')

        assert response.status_code == 400
        assert response.json()['error'] == 'Email already registered'

    def test_register_superadmin_refused(self, api_client, db):
        response = api_client.post('/v1/auth/register', {
            'email': 'root@example.com',
            'password': 'secret123',
            'first_name': 'Root',
            'last_name': 'User',
            'role': 'superadmin',
        }, format='json')

        assert response.status_code == 400
        assert not ApprovalRequest.objects.exists()

    @override_settings(RATELIMIT_ENABLE=True)
    def test_register_rate_limited(self, api_client, db):
        """Test that the fourth registration from one address within an hour gets 429."""
        cache.clear()
        for _ in range(3):
            assert api_client.post('/v1/auth/register', {}, format='json').status_code == 400

        response = api_client.post('/v1/auth/register', {}, format='json')

        assert response.status_code == 429
        assert response['Retry-After'] == '3600'
        assert response.json()['code'] == 'RATE_LIMIT_EXCEEDED'
        cache.clear()


@pytest.mark.django_db
class TestLoginEndpoint:
    """Test POST /v1/auth/login."""

    def test_login(self, api_client, coach_user):
        response = api_client.post('/v1/auth/login', {
            'email': 'coach@example.com',
            'password': 'secret123',
        }, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['user']['email'] == 'coach@example.com'
        assert body['user']['role'] == 'coach'
        assert 'athletes.view' in body['permissions']
        assert body['token']

    def test_login_invalid_credentials(self, api_client, coach_user):
        response = api_client.post('/v1/auth/login', {
            'email': 'coach@example.com',
            'password': 'wrong-password',
        }, format='json')

        assert response.status_code == 401
        assert response.json()['code'] == 'AUTHENTICATION_FAILED'

    def test_login_pending_account(self, api_client, make_user):
        """Test that pending accounts get a distinct 403."""
        make_user('coach', email='new@example.com', is_active=False)

        response = api_client.post('/v1/auth/login', {
            'email': 'new@example.com',
            'password': 'secret123',
        }, format='json')

        assert response.status_code == 403
        assert response.json()['code'] == 'ACCOUNT_PENDING_APPROVAL'

    def test_password_never_echoed(self, api_client, coach_user):
        response = api_client.post('/v1/auth/login', {
            'email': 'coach@example.com',
            'password': 'secret123',
        }, format='json')

        assert 'password' not in response.json()['user']
        assert 'password_hash' not in response.json()['user']


@pytest.mark.django_db
class TestCurrentIdentityEndpoint:
    """Test GET /v1/auth/me."""

    def test_me(self, api_client, parent_user, auth_headers):
        response = api_client.get('/v1/auth/me', **auth_headers(parent_user))

        assert response.status_code == 200
        assert response.json()['user']['id'] == str(parent_user.pk)
        assert 'access_requests.create' in response.json()['permissions']

    def test_me_without_token(self, api_client, db):
        response = api_client.get('/v1/auth/me')

        assert response.status_code == 401

    def test_me_with_garbage_token(self, api_client, db):
        response = api_client.get('/v1/auth/me', HTTP_AUTHORIZATION='Bearer not-a-token')

        assert response.status_code == 401

    def test_me_after_deactivation(self, api_client, parent_user, auth_headers):
        """Test that a token for a deactivated account stops working."""
        headers = auth_headers(parent_user)
        User.objects.filter(pk=parent_user.pk).update(is_active=False)

        response = api_client.get('/v1/auth/me', **headers)

        assert response.status_code == 401

    def test_request_id_header(self, api_client, parent_user, auth_headers):
        response = api_client.get('/v1/auth/me', HTTP_X_REQUEST_ID='req-123', **auth_headers(parent_user))

        assert response['X-Request-ID'] == 'req-123'
