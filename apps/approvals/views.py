"""
Approval workflow REST API views.

Implements endpoints for:
- Listing approval requests visible to the caller
- Approving and rejecting approval requests
- Listing, creating and answering parent access requests
"""
from rest_framework.views import APIView
from rest_framework import status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.approvals.models import RequestStatus
from apps.approvals.serializers import (
    AccessRequestCreateSerializer, AccessRequestSerializer, ApprovalRequestSerializer, RejectSerializer
)
from apps.approvals.services import AccessRequestService, ApprovalWorkflowService
from apps.core.exceptions import ValidationError
from apps.core.permissions import HasPermissions, requires_permissions
from apps.rbac.views import StandardResultsSetPagination

STATUS_PARAMETER = OpenApiParameter(
    'status', OpenApiTypes.STR, enum=RequestStatus.values, description='Filter by status'
)


def _status_filter(request):
    value = request.query_params.get('status')
    if value and value not in RequestStatus.values:
        raise ValidationError("Invalid status", details={'field': 'status'})
    return value


@extend_schema(
    tags=['Approvals'],
    summary='List approval requests',
    description='''
Superadmins see every request, coaches see parent and athlete requests
addressed to them, everyone else sees their own.
    ''',
    parameters=[STATUS_PARAMETER],
    responses={200: ApprovalRequestSerializer(many=True)}
)
class ApprovalRequestListView(APIView):
    """
    GET /v1/approval-requests
    """
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        queryset = ApprovalWorkflowService.list_for_actor(request.auth, status=_status_filter(request))
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(ApprovalRequestSerializer(page, many=True).data)


@extend_schema(
    tags=['Approvals'],
    summary='Approve request',
    description='''
Activate the account behind a pending request.

Parent requests may be approved by their coach or a superadmin; all other
requests only by a superadmin. A request that is no longer pending returns
409 `CONFLICT`.
    ''',
    request=None,
    responses={
        200: ApprovalRequestSerializer,
        403: OpenApiTypes.OBJECT,
        404: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
    }
)
class ApprovalRequestApproveView(APIView):
    """
    POST /v1/approval-requests/{request_id}/approve
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        approval = ApprovalWorkflowService.approve(request_id, request.auth)
        return Response({
            'approval_request': ApprovalRequestSerializer(approval).data,
            'message': 'Request approved',
        })


@extend_schema(
    tags=['Approvals'],
    summary='Reject request',
    description='Same authority rules as approval. The account stays inactive.',
    request=RejectSerializer,
    responses={
        200: ApprovalRequestSerializer,
        403: OpenApiTypes.OBJECT,
        404: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
    }
)
class ApprovalRequestRejectView(APIView):
    """
    POST /v1/approval-requests/{request_id}/reject
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        serializer = RejectSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Validation error", details=serializer.errors)
        approval = ApprovalWorkflowService.reject(
            request_id,
            request.auth,
            reason=serializer.validated_data.get('reason'),
        )
        return Response({
            'approval_request': ApprovalRequestSerializer(approval).data,
            'message': 'Request rejected',
        })


@extend_schema(
    tags=['Approvals'],
    summary='List access requests',
    description='''
**Required permission:** `access_requests.view`
    ''',
    parameters=[STATUS_PARAMETER],
    responses={200: AccessRequestSerializer(many=True)}
)
@requires_permissions('access_requests.view')
class AccessRequestListView(APIView):
    """
    GET /v1/access-requests
    POST /v1/access-requests
    """
    permission_classes = [HasPermissions]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        queryset = AccessRequestService.list_for_actor(request.auth, status=_status_filter(request))
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(AccessRequestSerializer(page, many=True).data)

    @extend_schema(
        tags=['Approvals'],
        summary='Request access to an athlete',
        description='''
Parents ask to follow a further athlete. The coach defaults to the
athlete's coach. A pending or approved request for the same athlete and
coach returns 409 `CONFLICT`.

**Required permission:** `access_requests.create`
        ''',
        request=AccessRequestCreateSerializer,
        responses={
            201: AccessRequestSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        }
    )
    @requires_permissions('access_requests.create')
    def post(self, request):
        serializer = AccessRequestCreateSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Validation error", details=serializer.errors)
        access = AccessRequestService.create(
            request.auth,
            serializer.validated_data['athlete_id'],
            coach_id=serializer.validated_data.get('coach_id'),
            message=serializer.validated_data.get('message', ''),
        )
        return Response(AccessRequestSerializer(access).data, status=status.HTTP_201_CREATED)


@requires_permissions('access_requests.edit')
class AccessRequestDecisionView(APIView):
    """
    Base for answering an access request. Only the addressed coach or a
    superadmin may answer; a request no longer pending returns 409.
    """
    permission_classes = [HasPermissions]
    approve = True

    def post(self, request, request_id):
        access = AccessRequestService.decide(request_id, request.auth, approve=self.approve)
        return Response({
            'access_request': AccessRequestSerializer(access).data,
            'message': f'Access request {access.status}',
        })


@extend_schema(
    tags=['Approvals'],
    summary='Approve access request',
    description='**Required permission:** `access_requests.edit`',
    request=None,
    responses={
        200: AccessRequestSerializer,
        403: OpenApiTypes.OBJECT,
        404: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
    }
)
class AccessRequestApproveView(AccessRequestDecisionView):
    """
    POST /v1/access-requests/{request_id}/approve
    """
    approve = True


@extend_schema(
    tags=['Approvals'],
    summary='Reject access request',
    description='**Required permission:** `access_requests.edit`',
    request=None,
    responses={
        200: AccessRequestSerializer,
        403: OpenApiTypes.OBJECT,
        404: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
    }
)
class AccessRequestRejectView(AccessRequestDecisionView):
    """
    POST /v1/access-requests/{request_id}/reject
    """
    approve = False
