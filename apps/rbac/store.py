"""
Permission store: read-only accessor over roles, permissions and grants.

The store never writes grant tables and never locks them. A read that
races an administrator's grant edit may see either state.

Grant lookups fail closed: when the schema descriptor says a table is
missing, or a query raises a database error, the lookup reports "no grant"
and the failure is logged.
"""
import logging
from contextlib import contextmanager
from typing import Iterable, Optional, Set, Tuple

from django.db import DatabaseError, transaction, DEFAULT_DB_ALIAS
from django.db.models import Q
from django.utils import timezone

from apps.core.logging import SecurityLogger
from apps.rbac.models import (
    User, Role, Permission, RolePermission, UserPermission, ComponentPermission
)
from apps.rbac.schema import SchemaIntrospector

logger = logging.getLogger(__name__)


class _GrantLookupFailed(Exception):
    pass


class PermissionStore:
    """
    Read accessor used by the permission resolver.

    Args:
        introspector: schema capability cache owned by this store. A fresh
            one is created per store when omitted.
        using: database alias to read from.
    """

    def __init__(self, introspector: Optional[SchemaIntrospector] = None, using: str = DEFAULT_DB_ALIAS):
        self.using = using
        self.introspector = introspector or SchemaIntrospector(using=using)

    @property
    def capabilities(self):
        return self.introspector.capabilities

    @contextmanager
    def _guarded(self, operation: str):
        # Savepoint keeps an enclosing transaction usable after a failed read
        try:
            with transaction.atomic(using=self.using):
                yield
        except DatabaseError as exc:
            logger.error(
                f"Grant lookup failed: {operation}",
                extra={'operation': operation, 'error': str(exc)},
            )
            SecurityLogger.log_store_failure(operation, exc)
            raise _GrantLookupFailed(operation) from exc

    def _active_permission_q(self, prefix: str = 'permission__') -> Q:
        if self.capabilities.has_permission_is_active:
            return Q(**{f'{prefix}is_active': True})
        return Q()

    def _unexpired_q(self, now=None) -> Q:
        if not self.capabilities.has_user_permission_expiry:
            return Q()
        now = now or timezone.now()
        return Q(expires_at__isnull=True) | Q(expires_at__gt=now)

    # Identity -----------------------------------------------------------

    def get_user(self, user_id) -> Optional[User]:
        return User.objects.using(self.using).select_related('role').filter(pk=user_id).first()

    def get_role_by_name(self, name: str) -> Optional[Role]:
        if not name:
            return None
        return Role.objects.using(self.using).filter(name=name).first()

    def resolve_role_id(self, role_id=None, role_name: str = None):
        """
        Canonical role id for a principal.

        Principals carry a role id; the name lookup only serves tokens that
        were issued before users referenced their role by id.
        """
        if role_id:
            return role_id
        role = self.get_role_by_name(role_name)
        return role.pk if role else None

    # Aggregation --------------------------------------------------------

    def role_permission_names(self, role_id) -> Set[str]:
        """Active permission names granted to a role."""
        if not role_id or not self.capabilities.can_resolve_roles:
            return set()
        try:
            with self._guarded('role_permission_names'):
                return set(
                    RolePermission.objects.using(self.using)
                    .filter(Q(role_id=role_id) & self._active_permission_q())
                    .values_list('permission__name', flat=True)
                )
        except _GrantLookupFailed:
            return set()

    def user_permission_names(self, user_id) -> Set[str]:
        """Active, unexpired, unscoped permission names granted directly to a user."""
        if not user_id or not self.capabilities.can_resolve_users:
            return set()
        filters = Q(user_id=user_id) & self._active_permission_q() & self._unexpired_q()
        if self.capabilities.has_user_permission_scope:
            filters &= Q(resource_id__isnull=True)
        try:
            with self._guarded('user_permission_names'):
                return set(
                    UserPermission.objects.using(self.using)
                    .filter(filters)
                    .values_list('permission__name', flat=True)
                )
        except _GrantLookupFailed:
            return set()

    # Decision -----------------------------------------------------------

    def has_role_grant(self, role_id, names: Iterable[str]) -> bool:
        """Whether the role holds any of the named active permissions."""
        names = list(names)
        if not role_id or not names or not self.capabilities.can_resolve_roles:
            return False
        try:
            with self._guarded('has_role_grant'):
                return (
                    RolePermission.objects.using(self.using)
                    .filter(Q(role_id=role_id, permission__name__in=names) & self._active_permission_q())
                    .exists()
                )
        except _GrantLookupFailed:
            return False

    def has_user_grant(self, user_id, names: Iterable[str], resource: Optional[Tuple[str, object]] = None) -> bool:
        """
        Whether the user holds a direct grant for any of the named permissions.

        Unscoped grants always count. A resource-scoped grant only counts
        when the decision names the same resource.
        """
        names = list(names)
        if not user_id or not names or not self.capabilities.can_resolve_users:
            return False
        filters = Q(user_id=user_id, permission__name__in=names) & self._active_permission_q() & self._unexpired_q()
        if self.capabilities.has_user_permission_scope:
            scope = Q(resource_id__isnull=True)
            if resource is not None:
                resource_type, resource_id = resource
                scope |= Q(resource_type=resource_type, resource_id=resource_id)
            filters &= scope
        try:
            with self._guarded('has_user_grant'):
                return UserPermission.objects.using(self.using).filter(filters).exists()
        except _GrantLookupFailed:
            return False

    # UI surface ---------------------------------------------------------

    def component_permissions(self, role_id):
        """Per-component CRUD flags for a role, keyed by component name."""
        if not role_id or not self.capabilities.has_component_permissions:
            return {}
        try:
            with self._guarded('component_permissions'):
                rows = (
                    ComponentPermission.objects.using(self.using)
                    .filter(role_id=role_id)
                    .select_related('component')
                )
                return {
                    row.component.name: {
                        'view': row.can_view,
                        'create': row.can_create,
                        'edit': row.can_edit,
                        'delete': row.can_delete,
                        'export': row.can_export,
                    }
                    for row in rows
                }
        except _GrantLookupFailed:
            return {}
