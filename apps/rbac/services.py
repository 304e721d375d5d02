"""
RBAC and Authentication services.

Implements:
- AuthService: credential login, identity refresh, token issuance
- RBACService: role CRUD, role and user grant management
"""
import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models.deletion import ProtectedError

from apps.core.exceptions import (
    AccountPendingApproval, AuthenticationError, ConflictError, NotFoundError, ValidationError
)
from apps.core.logging import SecurityLogger
from apps.rbac.guard import Principal
from apps.rbac.models import Permission, Role, RolePermission, User, UserPermission
from apps.rbac.resolver import get_default_resolver
from apps.rbac.tokens import TokenService

logger = logging.getLogger(__name__)


class AuthService:
    """
    Service for authentication operations: login and identity refresh.

    Both operations embed the user's effective permissions in the issued
    token so later requests can take the resolver's fast path.
    """

    @classmethod
    def _session_for(cls, user: User) -> Dict[str, Any]:
        permissions = get_default_resolver().effective_permissions_for(
            user.pk, user.role_id, user.role_name
        )
        principal = Principal.from_user(user, permissions)
        return {
            'user': user,
            'permissions': permissions,
            'token': TokenService.issue(principal, permissions),
        }

    @classmethod
    def login(cls, email: str, password: str, ip_address: str = None) -> Dict[str, Any]:
        """
        Authenticate with email and password.

        Returns:
            Dict with user, permissions and token

        Raises:
            AuthenticationError: unknown email or wrong password
            AccountPendingApproval: the account has not been approved yet
        """
        user = User.objects.by_email(email)
        if user is None or not user.check_password(password or ''):
            SecurityLogger.log_failed_login(email, ip_address=ip_address, reason='invalid_credentials')
            raise AuthenticationError("Invalid credentials")

        if not user.is_usable:
            SecurityLogger.log_failed_login(email, ip_address=ip_address, reason='pending_approval')
            raise AccountPendingApproval(
                "Account pending approval",
                details={'needs_approval': user.needs_approval},
            )

        user.update_last_login()
        logger.info("User logged in", extra={'user_id': str(user.pk), 'role': user.role_name})
        return cls._session_for(user)

    @classmethod
    def current_identity(cls, principal: Principal) -> Dict[str, Any]:
        """
        Reload the principal's user and re-issue a token with fresh permissions.

        Raises:
            AuthenticationError: the user no longer exists or was deactivated
        """
        user = User.objects.select_related('role').filter(pk=principal.user_id).first()
        if user is None or not user.is_usable:
            raise AuthenticationError("Invalid token")
        return cls._session_for(user)


class RBACService:
    """
    Service for administering roles and grants.

    The resolver reads these tables without locking; a decision racing an
    edit may observe either state.
    """

    @classmethod
    def get_role(cls, role_id) -> Role:
        role = Role.objects.filter(pk=role_id).first()
        if role is None:
            raise NotFoundError("Role not found", details={'role_id': str(role_id)})
        return role

    @classmethod
    def get_user(cls, user_id) -> User:
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            raise NotFoundError("User not found", details={'user_id': str(user_id)})
        return user

    @classmethod
    def get_permission(cls, name: str) -> Permission:
        permission = Permission.objects.by_name(name)
        if permission is None:
            raise NotFoundError("Permission not found", details={'permission': name})
        return permission

    @classmethod
    def list_roles(cls):
        return Role.objects.all()

    @classmethod
    def create_role(cls, name: str, description: str = '') -> Role:
        """
        Create a custom role.

        Raises:
            ValidationError: empty name
            ConflictError: a role with that name exists
        """
        name = (name or '').strip()
        if not name:
            raise ValidationError("Role name is required")
        try:
            with transaction.atomic():
                role = Role.objects.create(name=name, description=description or '', is_system=False)
        except IntegrityError:
            raise ConflictError("Role already exists", details={'name': name})
        logger.info("Role created", extra={'role_id': str(role.pk), 'role_name': role.name})
        return role

    @classmethod
    def update_role(cls, role: Role, name: Optional[str] = None, description: Optional[str] = None) -> Role:
        """
        Rename or re-describe a role. System roles keep their name.
        """
        update_fields = []
        if name is not None and name.strip() != role.name:
            if role.is_system:
                raise ConflictError("System roles cannot be renamed")
            if not name.strip():
                raise ValidationError("Role name is required")
            role.name = name.strip()
            update_fields.append('name')
        if description is not None:
            role.description = description
            update_fields.append('description')
        if not update_fields:
            return role

        try:
            with transaction.atomic():
                role.save(update_fields=update_fields + ['updated_at'])
                if 'name' in update_fields:
                    User.objects.filter(role=role).update(role_name=role.name)
        except IntegrityError:
            raise ConflictError("Role already exists", details={'name': role.name})
        return role

    @classmethod
    def delete_role(cls, role: Role):
        """
        Delete a custom role that no user references.
        """
        if role.is_system:
            raise ConflictError("System roles cannot be deleted")
        try:
            role.delete()
        except ProtectedError:
            raise ConflictError("Role is assigned to users")
        logger.info("Role deleted", extra={'role_name': role.name})

    @classmethod
    def get_role_permissions(cls, role: Role) -> List[str]:
        return sorted(
            RolePermission.objects.for_role(role).values_list('permission__name', flat=True)
        )

    @classmethod
    def get_role_components(cls, role: Role) -> Dict[str, Dict[str, bool]]:
        return get_default_resolver().store.component_permissions(role.pk)

    @classmethod
    def grant_role_permission(cls, role: Role, permission_name: str) -> RolePermission:
        permission = cls.get_permission(permission_name)
        role_permission, created = RolePermission.objects.grant_permission(role, permission)
        if created:
            logger.info(
                "Role permission granted",
                extra={'role_name': role.name, 'permission': permission.name},
            )
        return role_permission

    @classmethod
    def revoke_role_permission(cls, role: Role, permission_name: str):
        permission = cls.get_permission(permission_name)
        deleted, _ = RolePermission.objects.revoke_permission(role, permission)
        if not deleted:
            raise NotFoundError("Role does not hold this permission")

    @classmethod
    def get_user_permissions(cls, user: User):
        return UserPermission.objects.for_user(user).select_related('permission').order_by('permission__name')

    @classmethod
    def grant_user_permission(cls, user: User, permission_name: str, granted_by: Optional[User] = None,
                              resource_type: str = '', resource_id=None, expires_at=None) -> UserPermission:
        """
        Grant a permission directly to a user, optionally scoped and expiring.
        """
        if bool(resource_type) != bool(resource_id):
            raise ValidationError("resource_type and resource_id must be given together")
        permission = cls.get_permission(permission_name)
        grant, _ = UserPermission.objects.grant_permission(
            user,
            permission,
            granted_by=granted_by,
            resource_type=resource_type or '',
            resource_id=resource_id,
            expires_at=expires_at,
        )
        logger.info(
            "User permission granted",
            extra={
                'user_id': str(user.pk),
                'permission': permission.name,
                'scoped': grant.is_scoped,
            },
        )
        return grant

    @classmethod
    def revoke_user_permission(cls, user: User, permission_name: str, resource_type: str = '',
                               resource_id=None):
        permission = cls.get_permission(permission_name)
        deleted, _ = UserPermission.objects.filter(
            user=user,
            permission=permission,
            resource_type=resource_type or '',
            resource_id=resource_id,
        ).delete()
        if not deleted:
            raise NotFoundError("User does not hold this permission")
