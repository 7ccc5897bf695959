"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Authentication (registration, login, profile)
- Users
- Roles and grants
- Audit logs
"""
from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password

from apps.rbac.models import AuditLog, Grant, Role, User


# ===== AUTHENTICATION SERIALIZERS =====

class RegistrationSerializer(serializers.Serializer):
    """Serializer for user registration."""

    username = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    operator_id = serializers.UUIDField()
    role_id = serializers.UUIDField()

    def validate_username(self, value):
        if not value.strip():
            raise serializers.ValidationError("Username cannot be empty.")
        return value.strip()

    def validate_password(self, value):
        """Validate password strength."""
        validate_password(value)
        return value


class LoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    username = serializers.CharField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})


# ===== USER SERIALIZERS =====

class OperatorSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    is_super = serializers.BooleanField()


class RoleSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for users, with operator and role summaries."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    operator = OperatorSummarySerializer(read_only=True)
    role = RoleSummarySerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name',
            'operator', 'role', 'is_active', 'last_login_at', 'last_activity_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class UserProfileSerializer(UserSerializer):
    """Serializer for GET /api/auth/me, adds the resolved permissions."""

    is_super = serializers.BooleanField(read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['is_super', 'permissions']
        read_only_fields = fields

    def get_permissions(self, obj):
        caller = self.context.get('caller')
        if caller is not None:
            return sorted(caller.permissions)
        return obj.role.get_permission_strings()


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    operator_id = serializers.UUIDField(required=False, allow_null=True)
    role_id = serializers.UUIDField()
    is_active = serializers.BooleanField(required=False, default=True)

    def validate_password(self, value):
        validate_password(value)
        return value


class UserUpdateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=50, required=False)
    email = serializers.EmailField(required=False)
    password = serializers.CharField(write_only=True, required=False, style={'input_type': 'password'})
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    operator_id = serializers.UUIDField(required=False, allow_null=True)
    role_id = serializers.UUIDField(required=False)
    is_active = serializers.BooleanField(required=False)

    def validate_password(self, value):
        validate_password(value)
        return value


# ===== ROLE AND GRANT SERIALIZERS =====

class GrantSerializer(serializers.ModelSerializer):
    """Serializer for grants."""

    permission = serializers.CharField(read_only=True)

    class Meta:
        model = Grant
        fields = ['id', 'resource', 'action', 'permission']
        read_only_fields = fields


class RoleSerializer(serializers.ModelSerializer):
    """
    Serializer for roles, enriched with permission strings and user counts.

    ``status`` is true when the role has at least one active user or no
    users at all.
    """

    operator_id = serializers.UUIDField(read_only=True)
    permissions = serializers.SerializerMethodField()
    user_count = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            'id', 'name', 'description', 'operator_id', 'is_system_role',
            'permissions', 'user_count', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return sorted(role_grant.grant.permission for role_grant in obj.role_grants.all())

    def _counts(self, obj):
        user_count = getattr(obj, 'user_count', None)
        active_count = getattr(obj, 'active_user_count', None)
        if user_count is None or active_count is None:
            user_count = obj.users.count()
            active_count = obj.users.filter(is_active=True).count()
        return user_count, active_count

    def get_user_count(self, obj):
        return self._counts(obj)[0]

    def get_status(self, obj):
        user_count, active_count = self._counts(obj)
        return active_count > 0 or user_count == 0


class RoleCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    operator_id = serializers.UUIDField(required=False, allow_null=True)
    permissions = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Role name cannot be empty.")
        return value.strip()


class RoleUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    permissions = serializers.ListField(child=serializers.CharField(), required=False)


class RolePermissionsSerializer(serializers.Serializer):
    """Full-replace payload for a role's grant set."""

    permissions = serializers.ListField(child=serializers.CharField(), allow_empty=True)


# ===== AUDIT LOG SERIALIZERS =====

class AuditLogSerializer(serializers.ModelSerializer):
    """Serializer for audit log entries."""

    user = serializers.SerializerMethodField()
    operator = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            'id', 'user', 'operator', 'action', 'resource', 'resource_id',
            'details', 'ip_address', 'user_agent', 'request_id', 'created_at'
        ]
        read_only_fields = fields

    def get_user(self, obj):
        if obj.user is None:
            return None
        return {
            'id': str(obj.user.id),
            'username': obj.user.username,
            'first_name': obj.user.first_name,
            'last_name': obj.user.last_name,
        }

    def get_operator(self, obj):
        if obj.operator is None:
            return None
        return {'id': str(obj.operator.id), 'name': obj.operator.name}
