"""
Pytest configuration and fixtures.
"""
import pytest


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def roles(db):
    """Create the four system roles."""
    from apps.rbac.models import Role, RoleName
    return {name: Role.objects.system_role(name) for name in RoleName.SYSTEM_ROLES}


@pytest.fixture
def make_user(roles):
    """Factory for users of a given role (active unless told otherwise)."""
    from apps.rbac.models import User

    counter = {'n': 0}

    def _make(role_name, email=None, password='secret123', is_active=True, **extra):
        counter['n'] += 1
        email = email or f'{role_name}{counter["n"]}@example.com'
        extra.setdefault('first_name', role_name.title())
        extra.setdefault('last_name', f'User{counter["n"]}')
        return User.objects.create_user(
            email,
            password,
            role=roles[role_name],
            is_active=is_active,
            needs_approval=not is_active,
            **extra
        )

    return _make


@pytest.fixture
def superadmin_user(make_user):
    return make_user('superadmin', email='admin@example.com', first_name='Super', last_name='Admin')


@pytest.fixture
def coach_user(make_user):
    return make_user('coach', email='coach@example.com', first_name='Carol', last_name='Coach')


@pytest.fixture
def other_coach(make_user):
    return make_user('coach', email='coach2@example.com', first_name='Oscar', last_name='Other')


@pytest.fixture
def parent_user(make_user):
    return make_user('parent', email='parent@example.com', first_name='Paula', last_name='Parent')


@pytest.fixture
def athlete(coach_user):
    """Athlete record coached by ``coach_user``."""
    from datetime import date
    from apps.athletes.models import Athlete
    return Athlete.objects.create(
        first_name='Ana',
        last_name='Pop',
        date_of_birth=date(2015, 3, 12),
        gender='F',
        coach=coach_user,
    )


@pytest.fixture
def principal_for():
    """Build a Principal for a user, optionally with a token snapshot."""
    from apps.rbac.guard import Principal

    def _principal(user, permissions=None):
        return Principal.from_user(user, permissions)

    return _principal


@pytest.fixture
def auth_headers():
    """Authorization headers carrying a freshly issued token for a user."""
    from apps.rbac.services import AuthService

    def _headers(user):
        token = AuthService._session_for(user)['token']
        return {'HTTP_AUTHORIZATION': f'Bearer {token}'}

    return _headers


@pytest.fixture
def seeded(db):
    """Run the permission seed command."""
    from django.core.management import call_command
    from io import StringIO
    call_command('seed_permissions', stdout=StringIO())
