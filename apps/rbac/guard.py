"""
Authorization guard: the single entry point route handlers use to check
permissions for a verified principal.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from apps.core.exceptions import AuthorizationError
from apps.core.logging import SecurityLogger
from apps.rbac.models import RoleName

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    """
    Verified identity attached to a request.

    ``permissions`` is the snapshot embedded in the token at issuance, or
    None when the principal was built from the database.
    """

    user_id: object
    role_name: str
    role_id: Optional[object] = None
    permissions: Optional[Tuple[str, ...]] = None
    email: str = ''

    @property
    def is_superadmin(self):
        return self.role_name == RoleName.SUPERADMIN

    @classmethod
    def from_user(cls, user, permissions: Optional[Iterable[str]] = None):
        return cls(
            user_id=user.pk,
            role_name=user.role_name,
            role_id=user.role_id,
            permissions=tuple(permissions) if permissions is not None else None,
            email=user.email,
        )


class AuthorizationGuard:
    """
    Wraps the permission resolver.

    ``authorize`` is a pure decision. ``require`` raises AuthorizationError
    with a generic message; which permission was missing is only logged.
    """

    def __init__(self, resolver=None):
        if resolver is None:
            from apps.rbac.resolver import get_default_resolver
            resolver = get_default_resolver()
        self.resolver = resolver

    def authorize(self, principal: Optional[Principal], permission_names: Iterable[str],
                  resource=None, use_snapshot: bool = True) -> bool:
        if principal is None:
            return False
        return self.resolver.is_allowed(
            principal,
            list(permission_names),
            resource=resource,
            use_snapshot=use_snapshot,
        )

    def require(self, principal: Optional[Principal], permission_names: Iterable[str],
                resource=None, use_snapshot: bool = True, path: str = None):
        names = list(permission_names)
        if not self.authorize(principal, names, resource=resource, use_snapshot=use_snapshot):
            SecurityLogger.log_permission_denied(principal, names, path=path)
            raise AuthorizationError("Insufficient permissions")
