"""
DRF permission classes and decorators for permission enforcement.

This module provides:
- HasPermissions: DRF permission class backed by the AuthorizationGuard
- @requires_permissions: Decorator to declare required permissions on views
"""
import logging
from functools import wraps
from rest_framework.permissions import BasePermission

from apps.core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def _required_for(request, view):
    handler = getattr(view, request.method.lower(), None)
    required = getattr(handler, 'required_permissions', None)
    if required is None:
        required = getattr(view, 'required_permissions', None)
    if isinstance(required, str):
        required = (required,)
    return tuple(required or ())


class HasPermissions(BasePermission):
    """
    DRF permission class that enforces permission requirements on API endpoints.

    Any one of the declared permissions suffices. The principal comes from
    ``request.auth`` (set by TokenAuthentication). Views handling sensitive
    writes set ``fresh_permissions = True`` so the token snapshot is ignored
    and grants are read from the database.

    Usage in views:
        class RoleListView(APIView):
            permission_classes = [HasPermissions]
            required_permissions = ['roles.view']

    Or per method:
        class RoleListView(APIView):
            permission_classes = [HasPermissions]

            @requires_permissions('roles.manage')
            def post(self, request):
                pass
    """

    message = 'Insufficient permissions'

    def has_permission(self, request, view):
        required = _required_for(request, view)
        if not required:
            return True

        principal = request.auth
        if principal is None:
            return False

        from apps.rbac.guard import AuthorizationGuard

        guard = getattr(view, 'authorization_guard', None) or AuthorizationGuard()
        use_snapshot = not getattr(view, 'fresh_permissions', False)
        try:
            guard.require(principal, required, use_snapshot=use_snapshot, path=request.path)
        except AuthorizationError:
            logger.warning(
                "Permission denied",
                extra={
                    'user_id': str(principal.user_id),
                    'required_permissions': list(required),
                    'view': view.__class__.__name__,
                    'method': request.method,
                    'path': request.path,
                },
            )
            return False

        logger.debug(
            "Permission granted",
            extra={'required_permissions': list(required), 'view': view.__class__.__name__},
        )
        return True


def requires_permissions(*permissions):
    """
    Decorator to declare required permissions on view classes or methods.

    The attribute is read by HasPermissions before the handler runs.

    Args:
        *permissions: permission names; holding any one of them suffices
    """
    def decorator(view_or_method):
        if isinstance(view_or_method, type):
            view_or_method.required_permissions = tuple(permissions)
            return view_or_method

        @wraps(view_or_method)
        def wrapped(self, request, *args, **kwargs):
            return view_or_method(self, request, *args, **kwargs)

        wrapped.required_permissions = tuple(permissions)
        return wrapped

    return decorator

