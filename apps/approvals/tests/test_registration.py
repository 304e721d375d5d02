"""
Tests for self-registration.
"""
import uuid
from datetime import date
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone

from apps.approvals.models import AccessRequest, ApprovalRequest, RequestStatus
from apps.approvals.services import RegistrationService
from apps.athletes.models import Athlete
from apps.core.exceptions import InternalError, ValidationError
from apps.rbac.models import User


def years_ago(years):
    today = timezone.localdate()
    return date(today.year - years, 1, 1)


def payload(role, **extra):
    data = {
        'email': f'new.{role}@example.com',
        'password': 'secret123',
        'first_name': 'New',
        'last_name': role.title(),
        'role': role,
    }
    data.update(extra)
    return data


@pytest.mark.django_db
class TestCoachRegistration:
    """Test coach self-registration."""

    def test_creates_inactive_user_and_pending_request(self, roles):
        approval = RegistrationService.register(payload('coach', message='Hello'))

        user = approval.user
        assert user.is_active is False
        assert user.needs_approval is True
        assert user.role == roles['coach']
        assert user.role_name == 'coach'
        assert user.check_password('secret123')
        assert approval.status == RequestStatus.PENDING
        assert approval.requested_role == 'coach'
        assert approval.approval_notes == 'Hello'
        assert approval.coach_id is None

    def test_email_is_normalized(self, roles):
        approval = RegistrationService.register(payload('coach', email='  New.Coach@Example.COM '))

        assert approval.user.email == 'new.coach@example.com'

    def test_email_already_registered(self, coach_user):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('coach', email='Coach@example.com'))
        assert exc_info.value.message == 'Email already registered'

    @pytest.mark.parametrize('field', ['email', 'password', 'first_name', 'last_name', 'role'])
    def test_missing_field(self, roles, field):
        data = payload('coach')
        data[field] = '  ' if field != 'password' else ''

        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(data)
        assert exc_info.value.details['fields'] == [field]

    def test_invalid_email(self, roles):
        with pytest.raises(ValidationError):
            RegistrationService.register(payload('coach', email='not-an-email'))

    def test_short_password(self, roles):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('coach', password='12345'))
        assert exc_info.value.details == {'field': 'password'}

    @pytest.mark.parametrize('role', ['superadmin', 'janitor'])
    def test_role_not_open_for_registration(self, roles, role):
        with pytest.raises(ValidationError):
            RegistrationService.register(payload(role))
        assert not User.objects.filter(email=f'new.{role}@example.com').exists()

    def test_store_failure_rolls_back(self, roles):
        """Test that a failing write leaves no partial registration behind."""
        with patch.object(ApprovalRequest.objects, 'create', side_effect=OperationalError('database is locked')):
            with pytest.raises(InternalError) as exc_info:
                RegistrationService.register(payload('coach'))

        assert exc_info.value.retryable is True
        assert not User.objects.filter(email='new.coach@example.com').exists()


@pytest.mark.django_db
class TestParentRegistration:
    """Test parent registration (mirrored access request)."""

    def test_creates_request_and_access_request(self, coach_user, athlete):
        """Test that a parent registration also records a pending access request."""
        approval = RegistrationService.register(
            payload('parent', coach_id=str(coach_user.pk), athlete_id=str(athlete.pk), message='My daughter')
        )

        assert approval.coach == coach_user
        assert approval.athlete == athlete
        access = AccessRequest.objects.get(parent=approval.user)
        assert access.status == RequestStatus.PENDING
        assert access.coach == coach_user
        assert access.athlete == athlete
        assert access.message == 'My daughter'
        assert access.request_date == approval.request_date

    def test_requires_coach(self, athlete):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('parent', athlete_id=str(athlete.pk)))
        assert exc_info.value.details == {'field': 'coach_id'}

    def test_requires_athlete(self, coach_user):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('parent', coach_id=str(coach_user.pk)))
        assert exc_info.value.details == {'field': 'athlete_id'}

    def test_coach_must_be_a_coach(self, parent_user, athlete):
        """Test that the named coach must hold the coach role."""
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(
                payload('parent', coach_id=str(parent_user.pk), athlete_id=str(athlete.pk))
            )
        assert exc_info.value.message == 'Coach not found'

    def test_malformed_ids(self, coach_user, athlete):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('parent', coach_id='abc', athlete_id=str(athlete.pk)))
        assert exc_info.value.message == 'Invalid coach_id'

        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(payload('parent', coach_id=str(coach_user.pk), athlete_id=str(uuid.uuid4())))
        assert exc_info.value.message == 'Athlete not found'

        assert not AccessRequest.objects.exists()


@pytest.mark.django_db
class TestAthleteRegistration:
    """Test athlete registration (derived profile)."""

    def test_age_seven_is_u8(self, coach_user):
        """Test that the derived profile is stored on the request, not on an Athlete."""
        dob = years_ago(7)

        approval = RegistrationService.register(
            payload('athlete', coach_id=str(coach_user.pk), date_of_birth=dob.isoformat(), gender='M')
        )

        assert approval.athlete_profile == {
            'dateOfBirth': dob.isoformat(),
            'gender': 'M',
            'age': 7,
            'category': 'U8',
        }
        assert approval.coach == coach_user
        assert approval.athlete is None
        assert not Athlete.objects.exists()

    def test_age_nineteen_rejected(self, coach_user):
        """Test that an out-of-range age refuses the registration outright."""
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(
                payload('athlete', coach_id=str(coach_user.pk),
                        date_of_birth=years_ago(19).isoformat(), gender='M')
            )

        assert exc_info.value.details['age'] == 19
        assert not User.objects.filter(email='new.athlete@example.com').exists()
        assert not ApprovalRequest.objects.exists()

    def test_requires_coach(self, roles):
        with pytest.raises(ValidationError):
            RegistrationService.register(payload('athlete', date_of_birth='2015-01-01', gender='F'))

    def test_requires_gender(self, coach_user):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationService.register(
                payload('athlete', coach_id=str(coach_user.pk), date_of_birth=years_ago(10).isoformat())
            )
        assert exc_info.value.details == {'field': 'gender'}
