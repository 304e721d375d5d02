"""
URL routing for RBAC endpoints.
"""
from django.urls import path
from apps.rbac.views import (
    RoleListView, RoleDetailView, RolePermissionsView, RoleComponentsView,
    PermissionListView, UserPermissionsView
)

urlpatterns = [
    # Roles
    path('roles', RoleListView.as_view(), name='role-list'),
    path('roles/<uuid:role_id>', RoleDetailView.as_view(), name='role-detail'),
    path('roles/<uuid:role_id>/permissions', RolePermissionsView.as_view(), name='role-permissions'),
    path('roles/<uuid:role_id>/components', RoleComponentsView.as_view(), name='role-components'),

    # Permissions
    path('permissions', PermissionListView.as_view(), name='permission-list'),
    path('users/<uuid:user_id>/permissions', UserPermissionsView.as_view(), name='user-permissions'),
]
