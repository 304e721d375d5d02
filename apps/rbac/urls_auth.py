"""
URL routing for authentication endpoints.
"""
from django.urls import path
from apps.rbac.views_auth import RegistrationView, LoginView, CurrentIdentityView

app_name = 'auth'

urlpatterns = [
    path('register', RegistrationView.as_view(), name='register'),
    path('login', LoginView.as_view(), name='login'),
    path('me', CurrentIdentityView.as_view(), name='me'),
]
