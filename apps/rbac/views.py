"""
RBAC REST API views.

Implements endpoints for:
- Role management (CRUD, full-replace permission assignment)
- Grant catalog listing
- User management
- Audit log viewing
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter

from apps.core.pagination import AuditLogPagination, StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_bool, query_date, query_int
from apps.rbac.serializers import (
    AuditLogSerializer, GrantSerializer, RoleCreateSerializer, RolePermissionsSerializer,
    RoleSerializer, RoleUpdateSerializer, UserCreateSerializer, UserSerializer,
    UserUpdateSerializer,
)
from apps.rbac.services import AuditService, RoleService, UserService


# ===== ROLES =====

class RoleListView(APIView):
    """
    GET /api/roles - List roles of the caller's operator (all operators for super users)
    POST /api/roles - Create a role with its permissions
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Roles'],
        summary='List roles',
        parameters=[
            OpenApiParameter('search', str, description='Filter by name'),
            OpenApiParameter('operatorId', str, description='Super users only: restrict to one operator'),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: RoleSerializer(many=True)},
    )
    @requires_permission('roles', 'read')
    def get(self, request):
        queryset = RoleService.list_roles(
            request.caller,
            search=request.query_params.get('search'),
            operator_id=request.query_params.get('operatorId'),
        )
        return paginate(self, request, queryset, RoleSerializer)

    @extend_schema(
        tags=['Roles'],
        summary='Create role',
        description='Permissions are "resource.action" strings; unknown grants are created.',
        request=RoleCreateSerializer,
        responses={201: RoleSerializer},
    )
    @requires_permission('roles', 'create')
    def post(self, request):
        serializer = RoleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        role = RoleService.create_role(
            request.caller,
            name=data['name'],
            permissions=data['permissions'],
            operator_id=data.get('operator_id'),
            description=data['description'],
            request=request,
        )
        role = RoleService.get_role(request.caller, role.id)
        return Response(RoleSerializer(role).data, status=status.HTTP_201_CREATED)


class RoleDetailView(APIView):
    """
    GET/PATCH/DELETE /api/roles/{role_id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Roles'], summary='Get role', responses={200: RoleSerializer})
    @requires_permission('roles', 'read')
    def get(self, request, role_id):
        role = RoleService.get_role(request.caller, role_id)
        return Response(RoleSerializer(role).data)

    @extend_schema(
        tags=['Roles'],
        summary='Update role',
        description='When "permissions" is given it replaces the whole grant set of the role.',
        request=RoleUpdateSerializer,
        responses={200: RoleSerializer},
    )
    @requires_permission('roles', 'update')
    def patch(self, request, role_id):
        serializer = RoleUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        RoleService.update_role(
            request.caller,
            role_id,
            name=data.get('name'),
            permissions=data.get('permissions'),
            description=data.get('description'),
            request=request,
        )
        role = RoleService.get_role(request.caller, role_id)
        return Response(RoleSerializer(role).data)

    put = patch

    @extend_schema(tags=['Roles'], summary='Delete role', responses={204: None, 409: dict})
    @requires_permission('roles', 'delete')
    def delete(self, request, role_id):
        RoleService.delete_role(request.caller, role_id, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RolePermissionsView(APIView):
    """
    GET /api/roles/{role_id}/permissions - Permission strings of a role
    PUT /api/roles/{role_id}/permissions - Replace the role's permissions
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Roles'], summary='Get role permissions', responses={200: dict})
    @requires_permission('roles', 'read')
    def get(self, request, role_id):
        role = RoleService.get_role(request.caller, role_id)
        return Response({'role_id': str(role.id), 'permissions': role.get_permission_strings()})

    @extend_schema(
        tags=['Roles'],
        summary='Replace role permissions',
        request=RolePermissionsSerializer,
        responses={200: RoleSerializer},
    )
    @requires_permission('roles', 'update')
    def put(self, request, role_id):
        serializer = RolePermissionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        RoleService.update_role(
            request.caller,
            role_id,
            permissions=serializer.validated_data['permissions'],
            request=request,
        )
        role = RoleService.get_role(request.caller, role_id)
        return Response(RoleSerializer(role).data)


@extend_schema_view(
    get=extend_schema(tags=['Roles'], summary='List grant catalog', responses={200: GrantSerializer(many=True)})
)
@requires_permission('roles', 'read')
class GrantListView(APIView):
    """
    GET /api/roles/permissions - Every grant in the catalog
    """
    permission_classes = [HasGrant]

    def get(self, request):
        grants = RoleService.list_grants()
        return Response({'data': GrantSerializer(grants, many=True).data})


# ===== USERS =====

class UserListView(APIView):
    """
    GET /api/users - List users of the caller's operator
    POST /api/users - Create a user
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Users'],
        summary='List users',
        parameters=[
            OpenApiParameter('search', str),
            OpenApiParameter('roleId', str),
            OpenApiParameter('isActive', bool),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: UserSerializer(many=True)},
    )
    @requires_permission('users', 'read')
    def get(self, request):
        queryset = UserService.list_users(
            request.caller,
            search=request.query_params.get('search'),
            role_id=request.query_params.get('roleId'),
            is_active=query_bool(request, 'isActive'),
        )
        return paginate(self, request, queryset, UserSerializer)

    @extend_schema(tags=['Users'], summary='Create user', request=UserCreateSerializer, responses={201: UserSerializer})
    @requires_permission('users', 'create')
    def post(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserService.create_user(request.caller, serializer.validated_data, request=request)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class UserDetailView(APIView):
    """
    GET/PATCH/DELETE /api/users/{user_id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Users'], summary='Get user', responses={200: UserSerializer})
    @requires_permission('users', 'read')
    def get(self, request, user_id):
        user = UserService.get_user(request.caller, user_id)
        return Response(UserSerializer(user).data)

    @extend_schema(tags=['Users'], summary='Update user', request=UserUpdateSerializer, responses={200: UserSerializer})
    @requires_permission('users', 'update')
    def patch(self, request, user_id):
        serializer = UserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserService.update_user(request.caller, user_id, serializer.validated_data, request=request)
        return Response(UserSerializer(user).data)

    put = patch

    @extend_schema(tags=['Users'], summary='Delete user', responses={204: None})
    @requires_permission('users', 'delete')
    def delete(self, request, user_id):
        UserService.delete_user(request.caller, user_id, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ===== AUDIT LOG =====

class AuditLogListView(APIView):
    """
    GET /api/audit - Audit log entries of the caller's operator
    """
    permission_classes = [HasGrant]
    pagination_class = AuditLogPagination

    @extend_schema(
        tags=['Audit'],
        summary='List audit log entries',
        parameters=[
            OpenApiParameter('userId', str),
            OpenApiParameter('operatorId', str, description='Super users only'),
            OpenApiParameter('action', str),
            OpenApiParameter('resource', str),
            OpenApiParameter('startDate', str, description='YYYY-MM-DD'),
            OpenApiParameter('endDate', str, description='YYYY-MM-DD'),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: AuditLogSerializer(many=True)},
    )
    @requires_permission('audit', 'read')
    def get(self, request):
        params = request.query_params
        queryset = AuditService.list_entries(
            request.caller,
            user_id=params.get('userId'),
            action=params.get('action'),
            resource=params.get('resource'),
            start_date=query_date(request, 'startDate'),
            end_date=query_date(request, 'endDate'),
            operator_id=params.get('operatorId'),
        )
        return paginate(self, request, queryset, AuditLogSerializer)


class AuditLogDetailView(APIView):
    """
    GET /api/audit/{entry_id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Audit'], summary='Get audit log entry', responses={200: AuditLogSerializer})
    @requires_permission('audit', 'read')
    def get(self, request, entry_id):
        entry = AuditService.get_entry(request.caller, entry_id)
        return Response(AuditLogSerializer(entry).data)


class UserActivityView(APIView):
    """
    GET /api/audit/users/{user_id}/activity - Recent entries of one user
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Audit'],
        summary='Recent activity of a user',
        parameters=[OpenApiParameter('limit', int)],
        responses={200: AuditLogSerializer(many=True)},
    )
    @requires_permission('audit', 'read')
    def get(self, request, user_id):
        limit = min(query_int(request, 'limit', default=20, minimum=1), 100)
        entries = AuditService.get_user_activity(request.caller, user_id, limit=limit)
        return Response({'data': AuditLogSerializer(entries, many=True).data})
