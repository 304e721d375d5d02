"""
Tests for the email authentication backend used by the Django admin.
"""
import pytest

from apps.rbac.backends import EmailAuthBackend


@pytest.mark.django_db
class TestEmailAuthBackend:
    """Test EmailAuthBackend."""

    def test_admin_login_with_email(self, superadmin_user):
        user = EmailAuthBackend().authenticate(None, username='ADMIN@example.com', password='secret123')

        assert user == superadmin_user

    def test_wrong_password(self, coach_user):
        assert EmailAuthBackend().authenticate(None, username='coach@example.com', password='nope') is None

    def test_unknown_email(self, db):
        assert EmailAuthBackend().authenticate(None, username='ghost@example.com', password='secret123') is None

    def test_pending_account_refused(self, make_user):
        make_user('coach', email='new@example.com', is_active=False)

        assert EmailAuthBackend().authenticate(None, email='new@example.com', password='secret123') is None

    def test_get_user(self, coach_user):
        backend = EmailAuthBackend()

        assert backend.get_user(coach_user.pk) == coach_user
        assert backend.get_user('00000000-0000-0000-0000-000000000000') is None
