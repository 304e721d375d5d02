"""
Custom authentication backend for the club access service.

Provides email-based authentication compatible with Django admin.
"""
from django.contrib.auth.backends import BaseBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailAuthBackend(BaseBackend):
    """
    Authenticate using email address instead of username.

    Accounts awaiting approval are refused; superadmins are always usable.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        # Django admin passes email as 'username'
        email = username or kwargs.get('email')

        if not email or not password:
            return None

        user = User.objects.by_email(email)
        if user is None:
            # Run the hasher once to reduce timing difference for unknown emails
            User().set_password(password)
            return None

        if user.check_password(password) and user.is_usable:
            return user

        return None

    def get_user(self, user_id):
        return User.objects.filter(pk=user_id).first()
