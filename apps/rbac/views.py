"""
RBAC REST API views.

Implements endpoints for:
- Role management (CRUD, role grants, component flags)
- Permission catalogue
- Direct user grants
"""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import ValidationError
from apps.core.permissions import requires_permissions, HasPermissions
from apps.rbac.models import Permission
from apps.rbac.services import RBACService
from apps.rbac.serializers import (
    PermissionSerializer, RoleSerializer, RoleCreateSerializer,
    RolePermissionSerializer, UserPermissionSerializer, UserPermissionCreateSerializer
)


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


def _validated(serializer):
    if not serializer.is_valid():
        raise ValidationError("Validation error", details=serializer.errors)
    return serializer.validated_data


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Roles'],
        summary='List roles',
        description='''
List system and custom roles.

**Required permission:** `roles.view`

Query parameters:
- `type`: Filter by 'system' or 'custom'
- `include_permissions`: Set to 'true' to include permission names
        ''',
        parameters=[
            OpenApiParameter('type', OpenApiTypes.STR, description='Filter by role type: system or custom'),
            OpenApiParameter('include_permissions', OpenApiTypes.BOOL, description='Include permission names'),
        ],
        responses={200: RoleSerializer(many=True)}
    ),
    post=extend_schema(
        tags=['RBAC - Roles'],
        summary='Create custom role',
        description='''
Create a custom role. System roles cannot be created via API.

**Required permission:** `roles.manage`
        ''',
        request=RoleCreateSerializer,
        responses={
            201: RoleSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        }
    ),
)
class RoleListView(APIView):
    """
    GET /v1/roles
    POST /v1/roles
    """
    permission_classes = [HasPermissions]
    pagination_class = StandardResultsSetPagination

    @requires_permissions('roles.view')
    def get(self, request):
        roles = RBACService.list_roles().order_by('-is_system', 'name')

        role_type = request.query_params.get('type')
        if role_type == 'system':
            roles = roles.filter(is_system=True)
        elif role_type == 'custom':
            roles = roles.filter(is_system=False)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(roles, request, view=self)
        serializer = RoleSerializer(
            page,
            many=True,
            context={'include_permissions': request.query_params.get('include_permissions') == 'true'}
        )
        return paginator.get_paginated_response(serializer.data)

    @requires_permissions('roles.manage')
    def post(self, request):
        data = _validated(RoleCreateSerializer(data=request.data))
        role = RBACService.create_role(data['name'], data.get('description', ''))
        return Response(RoleSerializer(role).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Roles'],
        summary='Get role details',
        responses={200: RoleSerializer, 404: OpenApiTypes.OBJECT}
    ),
    patch=extend_schema(
        tags=['RBAC - Roles'],
        summary='Update role',
        description='System roles keep their name; only the description can change.',
        request=RoleCreateSerializer,
        responses={200: RoleSerializer, 409: OpenApiTypes.OBJECT}
    ),
    delete=extend_schema(
        tags=['RBAC - Roles'],
        summary='Delete custom role',
        description='System roles and roles assigned to users cannot be deleted.',
        responses={204: None, 409: OpenApiTypes.OBJECT}
    ),
)
class RoleDetailView(APIView):
    """
    GET / PATCH / DELETE /v1/roles/{role_id}
    """
    permission_classes = [HasPermissions]
    fresh_permissions = True

    @requires_permissions('roles.view')
    def get(self, request, role_id):
        role = RBACService.get_role(role_id)
        return Response(RoleSerializer(role, context={'include_permissions': True}).data)

    @requires_permissions('roles.manage')
    def patch(self, request, role_id):
        role = RBACService.get_role(role_id)
        data = _validated(RoleCreateSerializer(data=request.data, partial=True))
        role = RBACService.update_role(role, name=data.get('name'), description=data.get('description'))
        return Response(RoleSerializer(role).data)

    @requires_permissions('roles.manage')
    def delete(self, request, role_id):
        RBACService.delete_role(RBACService.get_role(role_id))
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Roles'],
        summary='List role permissions',
        responses={200: OpenApiTypes.OBJECT}
    ),
    post=extend_schema(
        tags=['RBAC - Roles'],
        summary='Grant permission to role',
        request=RolePermissionSerializer,
        responses={201: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT}
    ),
    delete=extend_schema(
        tags=['RBAC - Roles'],
        summary='Revoke permission from role',
        request=RolePermissionSerializer,
        responses={204: None, 404: OpenApiTypes.OBJECT}
    ),
)
class RolePermissionsView(APIView):
    """
    GET / POST / DELETE /v1/roles/{role_id}/permissions
    """
    permission_classes = [HasPermissions]
    fresh_permissions = True

    @requires_permissions('roles.view')
    def get(self, request, role_id):
        role = RBACService.get_role(role_id)
        return Response({
            'role_id': str(role.id),
            'permissions': RBACService.get_role_permissions(role),
        })

    @requires_permissions('roles.manage')
    def post(self, request, role_id):
        role = RBACService.get_role(role_id)
        data = _validated(RolePermissionSerializer(data=request.data))
        RBACService.grant_role_permission(role, data['permission'])
        return Response(
            {'role_id': str(role.id), 'permissions': RBACService.get_role_permissions(role)},
            status=status.HTTP_201_CREATED
        )

    @requires_permissions('roles.manage')
    def delete(self, request, role_id):
        role = RBACService.get_role(role_id)
        data = _validated(RolePermissionSerializer(data=request.data))
        RBACService.revoke_role_permission(role, data['permission'])
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    tags=['RBAC - Roles'],
    summary='List role component flags',
    description='Per-component view/create/edit/delete/export flags used by the UI.',
    responses={200: OpenApiTypes.OBJECT}
)
@requires_permissions('roles.view')
class RoleComponentsView(APIView):
    """
    GET /v1/roles/{role_id}/components
    """
    permission_classes = [HasPermissions]

    def get(self, request, role_id):
        role = RBACService.get_role(role_id)
        return Response({
            'role_id': str(role.id),
            'components': RBACService.get_role_components(role),
        })


@extend_schema(
    tags=['RBAC - Permissions'],
    summary='List permissions',
    description='''
List the global permission catalogue.

**Required permission:** `permissions.view`
    ''',
    parameters=[
        OpenApiParameter('category', OpenApiTypes.STR, description='Filter by category'),
    ],
    responses={200: PermissionSerializer(many=True)}
)
@requires_permissions('permissions.view')
class PermissionListView(APIView):
    """
    GET /v1/permissions
    """
    permission_classes = [HasPermissions]

    def get(self, request):
        permissions = Permission.objects.all()
        category = request.query_params.get('category')
        if category:
            permissions = permissions.filter(category=category)
        serializer = PermissionSerializer(permissions, many=True)
        return Response({'count': len(serializer.data), 'permissions': serializer.data})


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Permissions'],
        summary='List user grants',
        description='Direct grants plus the effective permission set of the user.',
        responses={200: OpenApiTypes.OBJECT}
    ),
    post=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Grant permission to user',
        description='Optionally scoped to one resource and given an expiry.',
        request=UserPermissionCreateSerializer,
        responses={201: UserPermissionSerializer, 400: OpenApiTypes.OBJECT}
    ),
    delete=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Revoke permission from user',
        request=UserPermissionCreateSerializer,
        responses={204: None, 404: OpenApiTypes.OBJECT}
    ),
)
class UserPermissionsView(APIView):
    """
    GET / POST / DELETE /v1/users/{user_id}/permissions
    """
    permission_classes = [HasPermissions]
    fresh_permissions = True

    @requires_permissions('permissions.view')
    def get(self, request, user_id):
        from apps.rbac.resolver import get_default_resolver

        user = RBACService.get_user(user_id)
        grants = RBACService.get_user_permissions(user)
        return Response({
            'user_id': str(user.id),
            'grants': UserPermissionSerializer(grants, many=True).data,
            'effective_permissions': get_default_resolver().resolve_effective_permissions(user.id),
        })

    @requires_permissions('permissions.manage')
    def post(self, request, user_id):
        user = RBACService.get_user(user_id)
        data = _validated(UserPermissionCreateSerializer(data=request.data))
        grant = RBACService.grant_user_permission(
            user,
            data['permission'],
            granted_by=request.user,
            resource_type=data['resource_type'],
            resource_id=data['resource_id'],
            expires_at=data['expires_at'],
        )
        return Response(UserPermissionSerializer(grant).data, status=status.HTTP_201_CREATED)

    @requires_permissions('permissions.manage')
    def delete(self, request, user_id):
        user = RBACService.get_user(user_id)
        data = _validated(UserPermissionCreateSerializer(data=request.data))
        RBACService.revoke_user_permission(
            user,
            data['permission'],
            resource_type=data['resource_type'],
            resource_id=data['resource_id'],
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
