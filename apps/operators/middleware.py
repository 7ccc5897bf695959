"""
Operator context middleware.

Authenticates the bearer token, checks the user and its operator are
active, and attaches the caller context (operator, super flag, permission
set) that views hand to services.
"""
import logging
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from apps.core.exceptions import error_payload
from apps.core.middleware import set_log_context

logger = logging.getLogger(__name__)


class OperatorContextMiddleware(MiddlewareMixin):
    """
    Resolve the authenticated caller for every API request.

    This middleware:
    1. Skips public paths (login, register, API docs, admin)
    2. Validates the ``Authorization: Bearer <jwt>`` header
    3. Rejects inactive users and inactive or expired operators
    4. Attaches request.user, request.operator and request.caller
    5. Records the user's last activity

    Requests outside ``/api/`` are left alone.
    """

    PUBLIC_PATHS = [
        '/api/auth/login',
        '/api/auth/register',
        '/api/schema',
        '/api/docs',
        '/api/health',
        '/admin/',
    ]

    def process_request(self, request):
        request.caller = None
        request.operator = None

        if not request.path.startswith('/api/') or self._is_public_path(request.path):
            return None

        from apps.rbac.services import AuthService, RBACService, UserService

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return self._error_response(
                request,
                'UNAUTHORIZED',
                'Authorization header with Bearer token is required',
                status=401
            )

        user = AuthService.get_user_from_jwt(auth_header[len('Bearer '):].strip())
        if user is None:
            return self._error_response(request, 'UNAUTHORIZED', 'Invalid or expired token', status=401)

        if not user.is_active:
            logger.info("Inactive user attempted access", extra={'user_id': str(user.id)})
            return self._error_response(request, 'UNAUTHORIZED', 'User account is inactive', status=401)

        operator = user.operator
        if not operator.is_active():
            logger.info(
                "Inactive operator attempted access",
                extra={'user_id': str(user.id), 'operator_id': str(operator.id)}
            )
            return self._error_response(
                request,
                'OPERATOR_INACTIVE',
                'Your operator is inactive or expired',
                status=403,
                details={
                    'status': operator.status,
                    'expiration': operator.expiration.isoformat() if operator.expiration else None,
                }
            )

        request.user = user
        request.operator = operator
        request.caller = RBACService.build_caller(user)
        set_log_context(operator_id=str(operator.id), user_id=str(user.id))

        UserService.touch_last_activity(user)

        logger.debug(
            f"Caller context set: {user.username} @ {operator.name} "
            f"with {len(request.caller.permissions)} permissions"
        )
        return None

    def _is_public_path(self, path):
        return any(path.startswith(public_path) for public_path in self.PUBLIC_PATHS)

    def _error_response(self, request, code, message, status, details=None):
        return JsonResponse(
            error_payload(code, message, details, getattr(request, 'request_id', None)),
            status=status
        )
