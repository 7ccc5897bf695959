"""
RBAC API URLs.

Provides endpoints for:
- Role management (CRUD, permission replacement)
- Grant catalog
- User management
- Audit log viewing
"""
from django.urls import path
from apps.rbac.views import (
    AuditLogDetailView,
    AuditLogListView,
    GrantListView,
    RoleDetailView,
    RoleListView,
    RolePermissionsView,
    UserActivityView,
    UserDetailView,
    UserListView,
)

app_name = 'rbac'

urlpatterns = [
    # Role endpoints
    path('roles', RoleListView.as_view(), name='role-list'),
    path('roles/permissions', GrantListView.as_view(), name='grant-list'),
    path('roles/<uuid:role_id>', RoleDetailView.as_view(), name='role-detail'),
    path('roles/<uuid:role_id>/permissions', RolePermissionsView.as_view(), name='role-permissions'),

    # User endpoints
    path('users', UserListView.as_view(), name='user-list'),
    path('users/<uuid:user_id>', UserDetailView.as_view(), name='user-detail'),

    # Audit log endpoints
    path('audit', AuditLogListView.as_view(), name='audit-log-list'),
    path('audit/<uuid:entry_id>', AuditLogDetailView.as_view(), name='audit-log-detail'),
    path('audit/users/<uuid:user_id>/activity', UserActivityView.as_view(), name='user-activity'),
]
