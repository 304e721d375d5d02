"""
Authentication REST API views.

Implements endpoints for:
- Self-registration (creates a pending approval request)
- Login
- Identity refresh
"""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_ratelimit.decorators import ratelimit
from django.utils.decorators import method_decorator
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.approvals.serializers import ApprovalRequestSerializer
from apps.approvals.services import RegistrationService
from apps.core.exceptions import ValidationError
from apps.core.logging import SecurityLogger
from apps.rbac.services import AuthService
from apps.rbac.serializers import RegistrationSerializer, LoginSerializer, UserSerializer


def _rate_limited(request, endpoint, retry_after, email=None):
    SecurityLogger.log_rate_limit_exceeded(
        endpoint=endpoint,
        ip_address=request.META.get('REMOTE_ADDR', 'unknown'),
        user_email=email,
    )
    response = Response(
        {
            'error': 'Rate limit exceeded. Please try again later.',
            'code': 'RATE_LIMIT_EXCEEDED',
            'retry_after': retry_after
        },
        status=status.HTTP_429_TOO_MANY_REQUESTS
    )
    response['Retry-After'] = str(retry_after)
    return response


def _session_response(result, http_status=status.HTTP_200_OK):
    return Response(
        {
            'user': UserSerializer(result['user']).data,
            'permissions': result['permissions'],
            'token': result['token'],
        },
        status=http_status
    )


@extend_schema(
    tags=['Authentication'],
    summary='Register account',
    description='''
Register a coach, parent or athlete account.

The account is created inactive and a pending approval request is returned.
Parents must name their coach and athlete; athletes must name their coach and
give a date of birth (age 4 to 18) and gender.

**No authentication required** - this is a public endpoint.

**Rate limit**: 3 requests/hour per IP address
    ''',
    request=RegistrationSerializer,
    responses={
        201: ApprovalRequestSerializer,
        400: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Athlete Registration',
            value={
                'email': 'ana@example.com',
                'password': 'secret123',
                'first_name': 'Ana',
                'last_name': 'Pop',
                'role': 'athlete',
                'coach_id': '123e4567-e89b-12d3-a456-426614174000',
                'date_of_birth': '12.03.2017',
                'gender': 'F'
            },
            request_only=True
        ),
    ]
)
@method_decorator(ratelimit(key='ip', rate='3/h', method='POST', block=False), name='dispatch')
class RegistrationView(APIView):
    """
    POST /v1/auth/register

    Create an inactive account awaiting approval.
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        if getattr(request, 'limited', False):
            return _rate_limited(request, '/v1/auth/register', 3600)

        serializer = RegistrationSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Validation error", details=serializer.errors)

        approval = RegistrationService.register(serializer.validated_data)

        return Response(
            {
                'approval_request': ApprovalRequestSerializer(approval).data,
                'message': 'Registration received. Your account awaits approval.'
            },
            status=status.HTTP_201_CREATED
        )


@extend_schema(
    tags=['Authentication'],
    summary='Login user',
    description='''
Authenticate with email and password.

Returns a signed token embedding the user's effective permissions.
Accounts still awaiting approval receive 403 `ACCOUNT_PENDING_APPROVAL`.

**No authentication required** - this is a public endpoint.

**Rate limits**:
- 5 requests/minute per IP address
- 10 requests/hour per email address
    ''',
    request=LoginSerializer,
    responses={
        200: OpenApiTypes.OBJECT,
        401: OpenApiTypes.OBJECT,
        403: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
)
@method_decorator(ratelimit(key='ip', rate='5/m', method='POST', block=False), name='dispatch')
@method_decorator(ratelimit(key='post:email', rate='10/h', method='POST', block=False), name='dispatch')
class LoginView(APIView):
    """
    POST /v1/auth/login

    Authenticate user and return a token.
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        if getattr(request, 'limited', False):
            email = request.data.get('email') if hasattr(request, 'data') else None
            return _rate_limited(request, '/v1/auth/login', 60, email=email)

        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Validation error", details=serializer.errors)

        result = AuthService.login(
            email=serializer.validated_data['email'],
            password=serializer.validated_data['password'],
            ip_address=request.META.get('REMOTE_ADDR'),
        )
        return _session_response(result)


@extend_schema(
    tags=['Authentication'],
    summary='Current identity',
    description='''
Reload the authenticated user, recompute effective permissions and
re-issue the token.
    ''',
    responses={
        200: OpenApiTypes.OBJECT,
        401: OpenApiTypes.OBJECT,
    },
)
class CurrentIdentityView(APIView):
    """
    GET /v1/auth/me
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return _session_response(AuthService.current_identity(request.auth))
