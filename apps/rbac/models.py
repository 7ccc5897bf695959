"""
RBAC models for operator-scoped access control.

Implements:
- User (belongs to one operator, holds one role)
- Grant (global catalog of resource/action pairs)
- Role (per-operator named bundle of grants)
- RoleGrant (maps grants to roles)
- AuditLog (audit trail of mutations and logins)
"""
import logging
from django.db import models, transaction
from django.db.models import Count, Q
from django.contrib.auth.hashers import make_password, check_password
from apps.core.models import BaseModel
from apps.core.tenancy import OperatorScopedQuerySet

logger = logging.getLogger(__name__)


class UserQuerySet(OperatorScopedQuerySet):
    """QuerySet for User queries."""

    def active(self):
        """Return only active users."""
        return self.filter(is_active=True)


class UserManager(models.Manager.from_queryset(UserQuerySet)):
    """
    Manager for User queries.

    Compatible with Django's authentication system and admin interface.
    """

    def create_user(self, username, email, operator, role, password=None, **extra_fields):
        """Create a new user with hashed password."""
        if not username:
            raise ValueError('Username is required')

        extra_fields.setdefault('is_active', True)
        user = self.model(
            username=username,
            email=self.normalize_email(email),
            operator=operator,
            role=role,
            **extra_fields
        )
        if password:
            user.set_password(password)
        user.save(using=self._db)
        return user

    @staticmethod
    def normalize_email(email):
        """Normalize the email address by lowercasing the domain part."""
        email = (email or '').strip()
        try:
            email_name, domain_part = email.rsplit('@', 1)
        except ValueError:
            return email
        return email_name + '@' + domain_part.lower()

    def get_by_natural_key(self, username):
        """Required for Django's authentication system."""
        return self.get(**{self.model.USERNAME_FIELD: username})


class User(BaseModel):
    """
    Platform user. Belongs to exactly one operator and holds one role.

    The effective permission set is the grant set of the role; users of a
    super operator bypass grant checks and operator scoping.

    This is the AUTH_USER_MODEL for the entire application, including Django admin.
    """

    username = models.CharField(
        max_length=50,
        unique=True,
        help_text="Login name (unique globally)"
    )
    email = models.EmailField(
        unique=True,
        help_text="User email address (unique globally)"
    )
    password_hash = models.CharField(
        max_length=255,
        help_text="Hashed password",
        db_column='password_hash'
    )
    first_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="User first name"
    )
    last_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="User last name"
    )
    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.PROTECT,
        related_name='users',
        help_text="Operator this user belongs to"
    )
    role = models.ForeignKey(
        'rbac.Role',
        on_delete=models.PROTECT,
        related_name='users',
        help_text="Role granting this user's permissions"
    )

    # Status
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether user account is active"
    )
    is_superuser = models.BooleanField(
        default=False,
        help_text="Django admin access (unrelated to super operators)"
    )

    # Activity Tracking
    last_login_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last login timestamp"
    )
    last_activity_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last authenticated request timestamp"
    )

    USERNAME_FIELD = 'username'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['email']

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['username']
        indexes = [
            models.Index(fields=['operator', 'is_active']),
            models.Index(fields=['role']),
        ]

    def __str__(self):
        return self.username

    @property
    def password(self):
        """Alias for password_hash, Django admin expects a 'password' field."""
        return self.password_hash

    @password.setter
    def password(self, value):
        self.password_hash = value

    def check_password(self, raw_password):
        """Check if provided password matches stored hash."""
        return check_password(raw_password, self.password_hash)

    def set_password(self, raw_password):
        """Set user password (hashes automatically)."""
        self.password_hash = make_password(raw_password)

    def get_full_name(self):
        """Return full name or username if name not set."""
        if self.first_name or self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.username

    @property
    def is_super(self):
        """Users of a super operator bypass grant checks and operator scoping."""
        return bool(self.operator_id and self.operator.is_super)

    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_staff(self):
        return self.is_superuser

    def has_perm(self, perm, obj=None):
        return self.is_superuser

    def has_perms(self, perm_list, obj=None):
        return self.is_superuser

    def has_module_perms(self, app_label):
        return self.is_superuser

    def get_all_permissions(self, obj=None):
        """Django permissions are unused; grants are handled via RBAC."""
        return set()

    def natural_key(self):
        return (self.username,)


class GrantManager(models.Manager):
    """Manager for Grant queries."""

    def get_or_create_grant(self, resource, action):
        """Look up a grant, creating it on first use (idempotent)."""
        return self.get_or_create(resource=resource, action=action)


class Grant(BaseModel):
    """
    Atomic permission unit identified by (resource, action).

    Grants are global; roles of every operator point at the same rows.
    """

    resource = models.CharField(
        max_length=100,
        help_text="Resource name (e.g., 'operations', 'drivers')"
    )
    action = models.CharField(
        max_length=50,
        help_text="Action on the resource (e.g., 'create', 'read')"
    )

    objects = GrantManager()

    class Meta:
        db_table = 'grants'
        ordering = ['resource', 'action']
        constraints = [
            models.UniqueConstraint(fields=['resource', 'action'], name='unique_grant_resource_action'),
        ]

    def __str__(self):
        return self.permission

    @property
    def permission(self):
        """Permission string in ``resource.action`` form."""
        return f"{self.resource}.{self.action}"


class RoleQuerySet(OperatorScopedQuerySet):
    """QuerySet for Role queries with operator scoping."""

    def by_name(self, operator_id, name):
        return self.filter(operator_id=operator_id, name=name).first()

    def with_user_counts(self):
        """Annotate total and active user counts."""
        return self.annotate(
            user_count=Count('users', distinct=True),
            active_user_count=Count('users', filter=Q(users__is_active=True), distinct=True),
        )


class Role(BaseModel):
    """
    Per-operator named bundle of grants.

    System roles (seeded per operator) are flagged with ``is_system_role``
    and cannot be renamed or deleted.
    """

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='roles',
        help_text="Operator this role belongs to"
    )
    name = models.CharField(
        max_length=100,
        help_text="Role name (unique within the operator)"
    )
    description = models.TextField(
        blank=True,
        help_text="Role description"
    )
    is_system_role = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this is a protected system-seeded role"
    )

    objects = models.Manager.from_queryset(RoleQuerySet)()

    class Meta:
        db_table = 'roles'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['operator', 'name'], name='unique_role_name_per_operator'),
        ]

    def __str__(self):
        return self.name

    def get_grants(self):
        """Get all grants of this role."""
        return Grant.objects.filter(role_grants__role=self).distinct()

    def get_permission_strings(self):
        return sorted(grant.permission for grant in self.get_grants())


class RoleGrantManager(models.Manager):
    """Manager for RoleGrant queries."""

    def for_role(self, role):
        return self.filter(role=role)

    def grant_permission(self, role, grant):
        """Grant to role (idempotent)."""
        return self.get_or_create(role=role, grant=grant)


class RoleGrant(models.Model):
    """Link between a role and one of its grants."""

    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='role_grants'
    )
    grant = models.ForeignKey(
        Grant,
        on_delete=models.PROTECT,
        related_name='role_grants'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = RoleGrantManager()

    class Meta:
        db_table = 'role_grants'
        constraints = [
            models.UniqueConstraint(fields=['role', 'grant'], name='unique_role_grant'),
        ]

    def __str__(self):
        return f"{self.role.name} - {self.grant.permission}"


class AuditLogQuerySet(OperatorScopedQuerySet):
    """QuerySet for AuditLog queries with operator scoping."""

    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def by_action(self, action):
        return self.filter(action=action)


class AuditLog(BaseModel):
    """
    Audit trail for role, user and fleet mutations and for logins.
    """

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="Operator this action belongs to (null for platform-level)"
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action (null for system actions)"
    )
    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Action performed (e.g., 'role_created', 'login')"
    )
    resource = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Resource affected (e.g., 'roles', 'operations')"
    )
    resource_id = models.CharField(
        max_length=64,
        blank=True,
        help_text="ID of the affected record"
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context"
    )
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the request"
    )
    user_agent = models.TextField(
        blank=True,
        help_text="User agent string"
    )
    request_id = models.CharField(
        max_length=64,
        blank=True,
        help_text="Request ID for tracing"
    )

    objects = models.Manager.from_queryset(AuditLogQuerySet)()

    class Meta:
        db_table = 'audit_log'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['operator', 'created_at']),
            models.Index(fields=['user', 'created_at']),
            models.Index(fields=['resource', 'resource_id']),
        ]

    def __str__(self):
        user_str = self.user.username if self.user else 'System'
        return f"{user_str} - {self.action}"

    @classmethod
    def log_action(cls, action, user=None, operator=None, resource='',
                   resource_id=None, details=None, request=None):
        """
        Convenience method to create an audit log entry.

        Args:
            action: Action being performed
            user: User performing the action
            operator: Operator (instance or id) the action belongs to
            resource: Resource name
            resource_id: ID of the affected record
            details: Additional context
            request: Django request object (for IP, user agent, request ID)

        Returns:
            AuditLog instance, or None if the entry could not be written
        """
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None

        log_data = {
            'action': action,
            'user': user,
            'resource': resource or '',
            'resource_id': str(resource_id) if resource_id else '',
            'details': details or {},
        }
        if isinstance(operator, models.Model):
            log_data['operator'] = operator
        else:
            log_data['operator_id'] = operator

        if request is not None:
            log_data['ip_address'] = cls._get_client_ip(request)
            log_data['user_agent'] = request.META.get('HTTP_USER_AGENT', '')
            log_data['request_id'] = getattr(request, 'request_id', '') or ''

        try:
            with transaction.atomic():
                return cls.objects.create(**log_data)
        except Exception as e:
            # Audit logging must not break the main operation
            logger.error(
                f"Failed to create audit log: {e}",
                extra={'action': action},
                exc_info=True
            )
            return None

    @staticmethod
    def _get_client_ip(request):
        """Extract client IP from request."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
