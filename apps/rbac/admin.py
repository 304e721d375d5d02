"""
Django admin configuration for RBAC app.
"""
from django.contrib import admin
from .models import (
    User,
    Permission,
    Role,
    RolePermission,
    UserPermission,
    Component,
    ComponentPermission,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    """
    Admin for club members.

    Approval flags are read-only here; accounts are activated through the
    approval workflow.
    """
    list_display = ['email', 'first_name', 'last_name', 'role_name', 'is_active', 'needs_approval', 'created_at']
    list_filter = ['role_name', 'is_active', 'needs_approval', 'created_at']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['-created_at']
    raw_id_fields = ['role', 'approved_by', 'athlete']

    fieldsets = (
        (None, {
            'fields': ('email', 'first_name', 'last_name')
        }),
        ('Role', {
            'fields': ('role', 'role_name')
        }),
        ('Approval', {
            'fields': ('is_active', 'needs_approval', 'approved_by', 'approved_at')
        }),
        ('Athlete', {
            'fields': ('athlete',)
        }),
        ('Activity', {
            'fields': ('last_login_at', 'created_at', 'updated_at')
        }),
    )

    readonly_fields = [
        'role_name', 'is_active', 'needs_approval', 'approved_by', 'approved_at',
        'last_login_at', 'created_at', 'updated_at',
    ]


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 0
    raw_id_fields = ['permission']


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_system', 'created_at']
    list_filter = ['is_system']
    search_fields = ['name']
    inlines = [RolePermissionInline]

    def get_readonly_fields(self, request, obj=None):
        # System roles keep their name
        if obj is not None and obj.is_system:
            return ['name', 'is_system']
        return ['is_system']


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['name', 'description']


@admin.register(UserPermission)
class UserPermissionAdmin(admin.ModelAdmin):
    list_display = ['user', 'permission', 'resource_type', 'resource_id', 'expires_at', 'granted_by']
    list_filter = ['resource_type']
    search_fields = ['user__email', 'permission__name']
    raw_id_fields = ['user', 'permission', 'granted_by']


admin.site.register(Component)
admin.site.register(ComponentPermission)
