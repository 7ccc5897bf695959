"""
Django admin configuration for RBAC app.
"""
from django.contrib import admin
from .models import AuditLog, Grant, Role, RoleGrant, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['username', 'email', 'operator', 'role', 'is_active', 'last_login_at', 'created_at']
    list_filter = ['is_active', 'operator']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering = ['-created_at']
    readonly_fields = ['password_hash', 'created_at', 'updated_at', 'last_login_at', 'last_activity_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'email', 'password_hash')
        }),
        ('Personal Info', {
            'fields': ('first_name', 'last_name')
        }),
        ('Access', {
            'fields': ('operator', 'role', 'is_active', 'is_superuser')
        }),
        ('Activity', {
            'fields': ('last_login_at', 'last_activity_at', 'created_at', 'updated_at')
        }),
    )


class RoleGrantInline(admin.TabularInline):
    model = RoleGrant
    extra = 0


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'operator', 'is_system_role', 'created_at']
    list_filter = ['is_system_role', 'operator']
    search_fields = ['name']
    inlines = [RoleGrantInline]


@admin.register(Grant)
class GrantAdmin(admin.ModelAdmin):
    list_display = ['resource', 'action', 'created_at']
    search_fields = ['resource', 'action']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'resource', 'resource_id', 'user', 'operator', 'created_at']
    list_filter = ['action', 'resource']
    search_fields = ['resource_id', 'user__username']
    readonly_fields = [field.name for field in AuditLog._meta.fields]
