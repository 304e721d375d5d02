"""
Django admin configuration for approvals app.

Decisions go through the workflow service, so status fields are read-only.
"""
from django.contrib import admin

from .models import AccessRequest, ApprovalRequest


@admin.register(ApprovalRequest)
class ApprovalRequestAdmin(admin.ModelAdmin):
    list_display = ['user', 'requested_role', 'status', 'coach', 'request_date', 'response_date']
    list_filter = ['status', 'requested_role']
    search_fields = ['user__email', 'coach__email']
    raw_id_fields = ['user', 'coach', 'athlete', 'approved_by']
    readonly_fields = ['status', 'approved_by', 'response_date', 'created_at', 'updated_at']


@admin.register(AccessRequest)
class AccessRequestAdmin(admin.ModelAdmin):
    list_display = ['parent', 'athlete', 'coach', 'status', 'request_date']
    list_filter = ['status']
    search_fields = ['parent__email', 'coach__email', 'athlete__last_name']
    raw_id_fields = ['parent', 'athlete', 'coach']
    readonly_fields = ['status', 'response_date', 'created_at', 'updated_at']
