"""
Authentication REST API views.

Implements endpoints for:
- User registration
- Login
- Current user profile
"""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from django_ratelimit.decorators import ratelimit
from django.utils.decorators import method_decorator
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import error_payload
from apps.core.logging import SecurityLogger
from apps.core.permissions import HasGrant
from apps.rbac.services import AuthService
from apps.rbac.serializers import (
    RegistrationSerializer, LoginSerializer, UserProfileSerializer, UserSerializer
)


def _rate_limited_response(request, endpoint, retry_after, username=None):
    SecurityLogger.log_rate_limit_exceeded(
        endpoint=endpoint,
        ip_address=request.META.get('REMOTE_ADDR', 'unknown'),
        username=username,
    )
    response = Response(
        error_payload(
            'RATE_LIMIT_EXCEEDED',
            'Rate limit exceeded. Please try again later.',
            {'retry_after': retry_after},
            getattr(request, 'request_id', None),
        ),
        status=status.HTTP_429_TOO_MANY_REQUESTS
    )
    response['Retry-After'] = str(retry_after)
    return response


@extend_schema(
    tags=['Authentication'],
    summary='Register new user',
    description='''
Register a user inside an existing operator with one of its roles.

Returns the user and an access token for immediate use.

**No authentication required** - this is a public endpoint.

**Rate limit**: 3 requests/hour per IP
    ''',
    request=RegistrationSerializer,
    responses={
        201: OpenApiTypes.OBJECT,
        400: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Registration Request',
            value={
                'username': 'jperez',
                'email': 'jperez@transportes.cl',
                'password': 'SecurePass123!',
                'first_name': 'Juan',
                'last_name': 'Pérez',
                'operator_id': '123e4567-e89b-12d3-a456-426614174001',
                'role_id': '123e4567-e89b-12d3-a456-426614174002',
            },
            request_only=True
        ),
        OpenApiExample(
            'Username Already Exists',
            value={
                'error': {'code': 'CONFLICT', 'message': 'Username already exists', 'details': {}}
            },
            response_only=True,
            status_codes=['409']
        ),
    ]
)
@method_decorator(ratelimit(key='ip', rate='3/h', method='POST', block=False), name='dispatch')
class RegistrationView(APIView):
    """
    POST /api/auth/register

    No authentication required.
    Rate limited to 3 requests per hour per IP.
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        if getattr(request, 'limited', False):
            return _rate_limited_response(request, '/api/auth/register', retry_after=3600)

        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = AuthService.register(
            username=data['username'],
            email=data['email'],
            password=data['password'],
            operator_id=data['operator_id'],
            role_id=data['role_id'],
            first_name=data['first_name'],
            last_name=data['last_name'],
        )

        return Response(
            {
                'user': UserSerializer(result['user']).data,
                'access_token': result['access_token'],
            },
            status=status.HTTP_201_CREATED
        )


@extend_schema(
    tags=['Authentication'],
    summary='Login user',
    description='''
Authenticate with username and password.

Returns an access token and the user profile. Inactive users and users of
inactive or expired operators cannot log in.

**No authentication required** - this is a public endpoint.

**Rate limits**:
- 5 requests/minute per IP address
- 10 requests/hour per username
    ''',
    request=LoginSerializer,
    responses={
        200: OpenApiTypes.OBJECT,
        401: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Login Request',
            value={'username': 'jperez', 'password': 'SecurePass123!'},
            request_only=True
        ),
        OpenApiExample(
            'Invalid Credentials',
            value={
                'error': {'code': 'UNAUTHORIZED', 'message': 'Invalid username or password', 'details': {}}
            },
            response_only=True,
            status_codes=['401']
        ),
    ]
)
@method_decorator(ratelimit(key='ip', rate='5/m', method='POST', block=False), name='dispatch')
@method_decorator(ratelimit(key='post:username', rate='10/h', method='POST', block=False), name='dispatch')
class LoginView(APIView):
    """
    POST /api/auth/login

    No authentication required.
    Rate limited to:
    - 5 requests per minute per IP address
    - 10 requests per hour per username
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        if getattr(request, 'limited', False):
            return _rate_limited_response(
                request,
                '/api/auth/login',
                retry_after=60,
                username=request.data.get('username') if hasattr(request, 'data') else None,
            )

        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        username = serializer.validated_data['username']
        result = AuthService.login(username, serializer.validated_data['password'], request=request)

        if result is None:
            SecurityLogger.log_failed_login(
                username=username,
                ip_address=request.META.get('REMOTE_ADDR', 'unknown'),
                user_agent=request.META.get('HTTP_USER_AGENT', ''),
                reason='invalid_credentials_or_inactive',
            )
            return Response(
                error_payload(
                    'UNAUTHORIZED',
                    'Invalid username or password',
                    request_id=getattr(request, 'request_id', None),
                ),
                status=status.HTTP_401_UNAUTHORIZED
            )

        return Response({
            'access_token': result['access_token'],
            'user': UserSerializer(result['user']).data,
        })


class UserProfileView(APIView):
    """
    GET /api/auth/me

    Profile of the authenticated user with its resolved permissions.
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Authentication'],
        summary='Get current user profile',
        responses={200: UserProfileSerializer, 401: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        serializer = UserProfileSerializer(request.user, context={'caller': request.caller})
        return Response(serializer.data)
