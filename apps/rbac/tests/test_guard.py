"""
Tests for the authorization guard and principals.
"""
import uuid
from unittest.mock import Mock, patch

import pytest

from apps.core.exceptions import AuthorizationError
from apps.rbac.guard import AuthorizationGuard, Principal


@pytest.fixture
def resolver():
    return Mock()


class TestPrincipal:
    """Test Principal construction."""

    def test_from_user_copies_identity(self):
        """Test that from_user copies id, role and email."""
        user = Mock(pk=uuid.uuid4(), role_name='coach', role_id=uuid.uuid4(), email='c@example.com')

        principal = Principal.from_user(user, ['results.view'])

        assert principal.user_id == user.pk
        assert principal.role_name == 'coach'
        assert principal.role_id == user.role_id
        assert principal.permissions == ('results.view',)
        assert principal.email == 'c@example.com'

    def test_from_user_without_snapshot(self):
        """Test that a principal built without permissions has no snapshot."""
        user = Mock(pk=uuid.uuid4(), role_name='parent', role_id=None, email='p@example.com')

        assert Principal.from_user(user).permissions is None

    def test_is_superadmin(self):
        assert Principal(user_id='1', role_name='superadmin').is_superadmin
        assert not Principal(user_id='1', role_name='coach').is_superadmin


class TestAuthorizationGuard:
    """Test AuthorizationGuard.authorize and require."""

    def test_authorize_delegates_to_resolver(self, resolver):
        """Test that authorize passes names, resource and snapshot flag through."""
        resolver.is_allowed.return_value = True
        guard = AuthorizationGuard(resolver)
        principal = Principal(user_id='1', role_name='coach')

        assert guard.authorize(principal, ('results.view',), resource=('athlete', 'a1'), use_snapshot=False)
        resolver.is_allowed.assert_called_once_with(
            principal, ['results.view'], resource=('athlete', 'a1'), use_snapshot=False
        )

    def test_authorize_without_principal(self, resolver):
        """Test that an absent principal is denied without consulting the resolver."""
        guard = AuthorizationGuard(resolver)

        assert guard.authorize(None, ['results.view']) is False
        resolver.is_allowed.assert_not_called()

    def test_require_passes_silently(self, resolver):
        resolver.is_allowed.return_value = True
        guard = AuthorizationGuard(resolver)

        assert guard.require(Principal(user_id='1', role_name='coach'), ['results.view']) is None

    @patch('apps.rbac.guard.SecurityLogger.log_permission_denied')
    def test_require_raises_generic_error(self, log_denied, resolver):
        """Test that a denial raises AuthorizationError without naming the permission."""
        resolver.is_allowed.return_value = False
        guard = AuthorizationGuard(resolver)
        principal = Principal(user_id='1', role_name='parent')

        with pytest.raises(AuthorizationError) as exc_info:
            guard.require(principal, ['roles.manage'], path='/v1/roles')

        assert exc_info.value.message == 'Insufficient permissions'
        assert 'roles.manage' not in str(exc_info.value)
        log_denied.assert_called_once_with(principal, ['roles.manage'], path='/v1/roles')

    def test_default_resolver(self):
        """Test that the guard falls back to the process-wide resolver."""
        from apps.rbac.resolver import get_default_resolver

        assert AuthorizationGuard().resolver is get_default_resolver()


@pytest.mark.django_db
class TestGuardWithStore:
    """Test the guard against real grants."""

    def test_parent_cannot_manage_roles(self, parent_user, principal_for):
        guard = AuthorizationGuard()

        assert guard.authorize(principal_for(parent_user), ['roles.manage']) is False

    def test_superadmin_can_manage_roles(self, superadmin_user, principal_for):
        guard = AuthorizationGuard()

        assert guard.authorize(principal_for(superadmin_user), ['roles.manage']) is True
