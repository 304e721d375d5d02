"""
Custom DRF authentication classes.
"""
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header


class TokenAuthentication(BaseAuthentication):
    """
    Bearer token authentication.

    On success ``request.user`` is the User row and ``request.auth`` is the
    verified Principal, including the token's permission snapshot.
    Requests without an Authorization header stay anonymous so public
    endpoints keep working.
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        from apps.core.exceptions import AuthenticationError
        from apps.rbac.models import User
        from apps.rbac.tokens import TokenService

        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header')

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token header')

        try:
            principal = TokenService.verify(token)
        except AuthenticationError as exc:
            raise exceptions.AuthenticationFailed(exc.message)

        user = User.objects.filter(pk=principal.user_id).first()
        if user is None or not user.is_usable:
            raise exceptions.AuthenticationFailed('Invalid token')

        return (user, principal)

    def authenticate_header(self, request):
        return self.keyword
