"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Authentication (registration, login)
- Users
- Roles and role grants
- Permissions and direct user grants
"""
from rest_framework import serializers

from apps.rbac.models import Permission, Role, RoleName, User, UserPermission


# ===== AUTHENTICATION SERIALIZERS =====

class RegistrationSerializer(serializers.Serializer):
    """
    Shape of a registration payload.

    Presence, ranges and references are checked by RegistrationService so
    that every rule lives in one place.
    """

    email = serializers.CharField(required=False, allow_blank=True, max_length=254)
    password = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        style={'input_type': 'password'}
    )
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    role = serializers.CharField(required=False, allow_blank=True, max_length=20)
    coach_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    athlete_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    date_of_birth = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    gender = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


# ===== USER SERIALIZERS =====

class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (public fields only)."""

    full_name = serializers.SerializerMethodField()
    role = serializers.CharField(source='role_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name',
            'role', 'role_id', 'is_active', 'needs_approval',
            'approved_at', 'athlete_id', 'created_at',
        ]
        read_only_fields = fields

    def get_full_name(self, obj):
        return obj.get_full_name()


# ===== PERMISSION SERIALIZERS =====

class PermissionSerializer(serializers.ModelSerializer):
    """Serializer for Permission model."""

    class Meta:
        model = Permission
        fields = ['id', 'name', 'description', 'category', 'is_active']
        read_only_fields = fields


class UserPermissionSerializer(serializers.ModelSerializer):
    """Serializer for direct user grants."""

    permission = serializers.CharField(source='permission.name', read_only=True)
    granted_by = serializers.UUIDField(source='granted_by_id', read_only=True)

    class Meta:
        model = UserPermission
        fields = [
            'id', 'permission', 'resource_type', 'resource_id',
            'expires_at', 'granted_by', 'created_at',
        ]
        read_only_fields = fields


class UserPermissionCreateSerializer(serializers.Serializer):
    """Serializer for granting or revoking a direct user permission."""

    permission = serializers.CharField(max_length=100)
    resource_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    resource_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


# ===== ROLE SERIALIZERS =====

class RoleSerializer(serializers.ModelSerializer):
    """
    Serializer for Role model.

    Includes permission names when ``include_permissions`` is set in context.
    """

    permissions = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = ['id', 'name', 'description', 'is_system', 'permissions', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_permissions(self, obj):
        if not self.context.get('include_permissions'):
            return None
        return sorted(obj.role_permissions.values_list('permission__name', flat=True))

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if data.get('permissions') is None:
            data.pop('permissions', None)
        return data


class RoleCreateSerializer(serializers.Serializer):
    """Serializer for creating or updating a custom role."""

    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_name(self, value):
        value = value.strip()
        if value in RoleName.SYSTEM_ROLES and not self.partial:
            raise serializers.ValidationError("This name is reserved for a system role.")
        return value


class RolePermissionSerializer(serializers.Serializer):
    """Serializer for granting or revoking a role permission."""

    permission = serializers.CharField(max_length=100)
