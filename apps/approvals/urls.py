"""
URL routing for approval workflow endpoints.
"""
from django.urls import path
from apps.approvals.views import (
    ApprovalRequestListView, ApprovalRequestApproveView, ApprovalRequestRejectView,
    AccessRequestListView, AccessRequestApproveView, AccessRequestRejectView
)

urlpatterns = [
    path('approval-requests', ApprovalRequestListView.as_view(), name='approval-request-list'),
    path(
        'approval-requests/<str:request_id>/approve',
        ApprovalRequestApproveView.as_view(),
        name='approval-request-approve'
    ),
    path(
        'approval-requests/<str:request_id>/reject',
        ApprovalRequestRejectView.as_view(),
        name='approval-request-reject'
    ),
    path('access-requests', AccessRequestListView.as_view(), name='access-request-list'),
    path(
        'access-requests/<str:request_id>/approve',
        AccessRequestApproveView.as_view(),
        name='access-request-approve'
    ),
    path(
        'access-requests/<str:request_id>/reject',
        AccessRequestRejectView.as_view(),
        name='access-request-reject'
    ),
]
