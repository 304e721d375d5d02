"""
RBAC models for club access control.

Implements:
- User (declared role name + canonical Role reference, approval flags)
- Role (named permission bundle, system roles are protected)
- Permission (global dot-namespaced action names)
- RolePermission (maps permissions to roles)
- UserPermission (per-user grants, optionally resource-scoped and expiring)
- Component / ComponentPermission (per-role UI surface CRUD flags)
"""
import logging
from django.db import models
from django.db.models import Q
from django.contrib.auth.hashers import make_password, check_password
from django.utils import timezone
from apps.core.models import BaseModel

logger = logging.getLogger(__name__)


class RoleName:
    """Names of the built-in roles."""

    SUPERADMIN = 'superadmin'
    COACH = 'coach'
    PARENT = 'parent'
    ATHLETE = 'athlete'

    SYSTEM_ROLES = (SUPERADMIN, COACH, PARENT, ATHLETE)
    SELF_REGISTRATION = (COACH, PARENT, ATHLETE)


class UserManager(models.Manager):
    """
    Manager for User queries.

    Compatible with Django's authentication system.
    """

    def active(self):
        """Return only active users."""
        return self.filter(is_active=True)

    def by_email(self, email):
        """Find user by email (case-insensitive)."""
        return self.filter(email__iexact=(email or '').strip()).first()

    def pending_approval(self):
        """Return users whose account still awaits approval."""
        return self.filter(needs_approval=True)

    def create_user(self, email, password=None, **extra_fields):
        """
        Create a new user with hashed password.

        A ``role`` given without ``role_name`` (or the reverse) is completed
        on save, so callers may pass either.
        """
        if not email:
            raise ValueError('Email address is required')

        email = self.normalize_email(email)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('needs_approval', False)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create a superadmin account."""
        extra_fields['role'] = Role.objects.system_role(RoleName.SUPERADMIN)
        extra_fields.setdefault('is_active', True)
        return self.create_user(email, password, **extra_fields)

    @classmethod
    def normalize_email(cls, email):
        """Lowercase and strip the email address."""
        return (email or '').strip().lower()

    def get_by_natural_key(self, email):
        return self.get(**{self.model.USERNAME_FIELD: email})


class User(BaseModel):
    """
    Club member identity.

    ``role`` is the canonical reference to a Role row; ``role_name`` is the
    declared role kept as a display value and synchronised from ``role`` on
    every save. Users created before roles were referenced by id are
    migrated with the ``backfill_user_roles`` command.

    A user is usable iff ``is_active`` or the role is superadmin.
    ``needs_approval`` is stored independently of ``is_active``; only the
    approval workflow changes either flag.
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        help_text="User email address (unique)"
    )
    password_hash = models.CharField(
        max_length=255,
        help_text="Hashed password",
        db_column='password_hash'
    )
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)

    # Role
    role_name = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Declared role name (display value derived from role)"
    )
    role = models.ForeignKey(
        'rbac.Role',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='users',
        help_text="Canonical role reference"
    )

    # Approval state
    is_active = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the account may use active screens"
    )
    needs_approval = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the account still awaits approval"
    )
    approved_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_users',
        help_text="User who approved this account"
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    # Linked athlete profile (athlete accounts only)
    athlete = models.ForeignKey(
        'athletes.Athlete',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='accounts',
        help_text="Athlete profile linked when an athlete account is approved"
    )

    last_login_at = models.DateTimeField(null=True, blank=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role_name', 'is_active'], name='users_role_active_idx'),
            models.Index(fields=['needs_approval', 'created_at'], name='users_approval_created_idx'),
        ]

    def __str__(self):
        return self.email

    def save(self, *args, **kwargs):
        """Keep role_name in sync with the canonical role reference."""
        if self.role_id and self.role is not None:
            self.role_name = self.role.name
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'role' in update_fields and 'role_name' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['role_name']
        super().save(*args, **kwargs)

    @property
    def password(self):
        return self.password_hash

    @password.setter
    def password(self, value):
        self.password_hash = value

    def check_password(self, raw_password):
        """Check if provided password matches stored hash."""
        return check_password(raw_password, self.password_hash)

    def set_password(self, raw_password):
        """Set user password (hashes automatically)."""
        self.password_hash = make_password(raw_password)

    def get_full_name(self):
        """Return full name or email if name not set."""
        if self.first_name or self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.email

    def update_last_login(self):
        """Update last_login_at to current time."""
        self.last_login_at = timezone.now()
        self.save(update_fields=['last_login_at'])

    @property
    def is_superadmin(self):
        return self.role_name == RoleName.SUPERADMIN

    @property
    def is_usable(self):
        """Whether the account can authenticate into active screens."""
        return self.is_active or self.is_superadmin

    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_staff(self):
        return self.is_superadmin

    @property
    def is_superuser(self):
        return self.is_superadmin

    def has_perm(self, perm, obj=None):
        return self.is_superadmin

    def has_perms(self, perm_list, obj=None):
        return self.is_superadmin

    def has_module_perms(self, app_label):
        return self.is_superadmin

    def natural_key(self):
        return (self.email,)


class RoleManager(models.Manager):
    """Manager for Role queries."""

    def system_roles(self):
        return self.filter(is_system=True)

    def custom_roles(self):
        return self.filter(is_system=False)

    def by_name(self, name):
        """Find role by name."""
        return self.filter(name=name).first()

    def system_role(self, name):
        """Get or create a built-in role (idempotent)."""
        role, _ = self.get_or_create(
            name=name,
            defaults={'is_system': name in RoleName.SYSTEM_ROLES},
        )
        return role


class Role(BaseModel):
    """
    Named permission bundle.

    Built-in roles (superadmin, coach, parent, athlete) are flagged
    ``is_system`` and cannot be renamed or deleted.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Role name (e.g., 'coach')"
    )
    description = models.TextField(blank=True)
    is_system = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this is a built-in role"
    )

    objects = RoleManager()

    class Meta:
        db_table = 'roles'
        ordering = ['name']

    def __str__(self):
        return self.name


class PermissionManager(models.Manager):
    """Manager for Permission queries."""

    def active(self):
        return self.filter(is_active=True)

    def by_name(self, name):
        """Find permission by name."""
        return self.filter(name=name).first()

    def get_or_create_permission(self, name, description='', category=''):
        """Get or create permission (idempotent)."""
        if not category:
            category = name.split('.', 1)[0]
        return self.get_or_create(
            name=name,
            defaults={'description': description, 'category': category},
        )


class Permission(BaseModel):
    """
    Global action permission, named with a dot namespace (``results.edit``).

    Inactive permissions are ignored by resolution.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        db_index=True,
        help_text="Unique permission name (e.g., 'athletes.edit')"
    )
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, db_index=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    objects = PermissionManager()

    class Meta:
        db_table = 'permissions'
        ordering = ['category', 'name']

    def __str__(self):
        return self.name


class RolePermissionManager(models.Manager):
    """Manager for RolePermission queries."""

    def for_role(self, role):
        return self.filter(role=role)

    def grant_permission(self, role, permission):
        """Grant permission to role (idempotent)."""
        return self.get_or_create(role=role, permission=permission)

    def revoke_permission(self, role, permission):
        """Revoke permission from role."""
        return self.filter(role=role, permission=permission).delete()


class RolePermission(BaseModel):
    """Maps permissions to roles."""

    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='role_permissions',
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name='role_permissions',
    )

    objects = RolePermissionManager()

    class Meta:
        db_table = 'role_permissions'
        unique_together = [('role', 'permission')]
        ordering = ['role', 'permission']

    def __str__(self):
        return f"{self.role.name} -> {self.permission.name}"


class UserPermissionManager(models.Manager):
    """Manager for UserPermission queries."""

    def for_user(self, user):
        return self.filter(user=user)

    def unexpired(self, now=None):
        """Grants without expiry or expiring in the future."""
        now = now or timezone.now()
        return self.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))

    def grant_permission(self, user, permission, granted_by=None, resource_type='',
                         resource_id=None, expires_at=None):
        """Grant permission to user (idempotent per resource scope)."""
        return self.update_or_create(
            user=user,
            permission=permission,
            resource_type=resource_type,
            resource_id=resource_id,
            defaults={'granted_by': granted_by, 'expires_at': expires_at},
        )


class UserPermission(BaseModel):
    """
    Direct user grant, independent of the user's role.

    A grant may be scoped to a single resource (``resource_type`` +
    ``resource_id``) and may expire.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='user_permissions',
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name='user_permissions',
    )
    resource_type = models.CharField(max_length=50, blank=True, default='')
    resource_id = models.UUIDField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    granted_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='permission_grants_made',
    )

    objects = UserPermissionManager()

    class Meta:
        db_table = 'user_permissions'
        unique_together = [('user', 'permission', 'resource_type', 'resource_id')]
        ordering = ['user', 'permission']

    def __str__(self):
        return f"{self.permission.name} to {self.user.email}"

    @property
    def is_scoped(self):
        return self.resource_id is not None


class Component(BaseModel):
    """UI component that can be gated per role."""

    name = models.CharField(max_length=100, unique=True)
    display_name = models.CharField(max_length=255)
    component_type = models.CharField(max_length=50, default='page')

    class Meta:
        db_table = 'components'
        ordering = ['display_name']

    def __str__(self):
        return self.display_name


class ComponentPermission(BaseModel):
    """
    Per-role CRUD flags for a UI component.

    Orthogonal to action permissions: only the UI surface consults these.
    """

    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='component_permissions',
    )
    component = models.ForeignKey(
        Component,
        on_delete=models.CASCADE,
        related_name='component_permissions',
    )
    can_view = models.BooleanField(default=False)
    can_create = models.BooleanField(default=False)
    can_edit = models.BooleanField(default=False)
    can_delete = models.BooleanField(default=False)
    can_export = models.BooleanField(default=False)

    class Meta:
        db_table = 'component_permissions'
        unique_together = [('role', 'component')]

    def __str__(self):
        return f"{self.role.name} -> {self.component.name}"
