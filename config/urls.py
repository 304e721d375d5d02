"""
URL configuration for the club access service.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),

    # API Documentation
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('schema/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # Authentication endpoints
    path('v1/auth/', include('apps.rbac.urls_auth')),  # Register, login, me

    # RBAC endpoints
    path('v1/', include('apps.rbac.urls')),  # Roles, permissions, user grants

    # Approval workflow endpoints
    path('v1/', include('apps.approvals.urls')),  # Approval and access requests
]
