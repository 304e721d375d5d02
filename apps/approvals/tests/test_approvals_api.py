"""
Tests for approval workflow API endpoints.
"""
import uuid

import pytest

from apps.approvals.models import RequestStatus
from apps.approvals.services import RegistrationService
from apps.rbac.models import Permission, User, UserPermission


@pytest.fixture
def parent_request(coach_user, athlete):
    return RegistrationService.register({
        'email': 'new.parent@example.com',
        'password': 'secret123',
        'first_name': 'Petra',
        'last_name': 'Pop',
        'role': 'parent',
        'coach_id': str(coach_user.pk),
        'athlete_id': str(athlete.pk),
    })


@pytest.mark.django_db
class TestApprovalRequestEndpoints:
    """Test /v1/approval-requests endpoints."""

    def test_list_requires_authentication(self, api_client, parent_request):
        response = api_client.get('/v1/approval-requests')

        assert response.status_code == 401

    def test_coach_lists_own_requests(self, api_client, parent_request, coach_user, auth_headers):
        response = api_client.get('/v1/approval-requests', **auth_headers(coach_user))

        assert response.status_code == 200
        body = response.json()
        assert body['count'] == 1
        assert body['results'][0]['id'] == str(parent_request.pk)
        assert body['results'][0]['user']['email'] == 'new.parent@example.com'

    def test_other_coach_sees_nothing(self, api_client, parent_request, other_coach, auth_headers):
        response = api_client.get('/v1/approval-requests', **auth_headers(other_coach))

        assert response.json()['count'] == 0

    def test_invalid_status_filter(self, api_client, parent_request, coach_user, auth_headers):
        response = api_client.get('/v1/approval-requests?status=maybe', **auth_headers(coach_user))

        assert response.status_code == 400

    def test_approve(self, api_client, parent_request, coach_user, auth_headers):
        """Test that the coach approves the parent through the API."""
        response = api_client.post(
            f'/v1/approval-requests/{parent_request.pk}/approve', **auth_headers(coach_user)
        )

        assert response.status_code == 200
        assert response.json()['approval_request']['status'] == RequestStatus.APPROVED
        assert User.objects.get(email='new.parent@example.com').is_active is True

    def test_approve_twice_conflicts(self, api_client, parent_request, coach_user, auth_headers):
        url = f'/v1/approval-requests/{parent_request.pk}/approve'
        headers = auth_headers(coach_user)
        api_client.post(url, **headers)

        response = api_client.post(url, **headers)

        assert response.status_code == 409
        assert response.json()['code'] == 'CONFLICT'

    def test_approve_without_authority(self, api_client, parent_request, other_coach, auth_headers):
        response = api_client.post(
            f'/v1/approval-requests/{parent_request.pk}/approve', **auth_headers(other_coach)
        )

        assert response.status_code == 403
        assert response.json()['error'] == 'Insufficient permissions'

    def test_approve_unknown(self, api_client, superadmin_user, auth_headers):
        response = api_client.post(
            f'/v1/approval-requests/{uuid.uuid4()}/approve', **auth_headers(superadmin_user)
        )

        assert response.status_code == 404

    def test_reject_with_reason(self, api_client, parent_request, coach_user, auth_headers):
        response = api_client.post(
            f'/v1/approval-requests/{parent_request.pk}/reject',
            {'reason': 'Not a club member'},
            format='json',
            **auth_headers(coach_user)
        )

        assert response.status_code == 200
        data = response.json()['approval_request']
        assert data['status'] == RequestStatus.REJECTED
        assert data['rejection_reason'] == 'Not a club member'


@pytest.mark.django_db
class TestAccessRequestEndpoints:
    """Test /v1/access-requests."""

    def test_coach_lists_access_requests(self, api_client, parent_request, coach_user, auth_headers):
        response = api_client.get('/v1/access-requests', **auth_headers(coach_user))

        assert response.status_code == 200
        result = response.json()['results'][0]
        assert result['parent']['email'] == 'new.parent@example.com'
        assert result['athlete']['name'] == 'Ana Pop'

    def test_athlete_role_lacks_permission(self, api_client, make_user, auth_headers):
        """Test that the athlete baseline does not include access_requests.view."""
        athlete_account = make_user('athlete')

        response = api_client.get('/v1/access-requests', **auth_headers(athlete_account))

        assert response.status_code == 403

    def test_approval_requests_view_alias_grants_access(self, api_client, make_user, auth_headers):
        """Test that approval_requests.view satisfies access_requests.view."""
        athlete_account = make_user('athlete')
        permission, _ = Permission.objects.get_or_create_permission('approval_requests.view')
        UserPermission.objects.grant_permission(athlete_account, permission)

        response = api_client.get('/v1/access-requests', **auth_headers(athlete_account))

        assert response.status_code == 200
        assert response.json()['count'] == 0
