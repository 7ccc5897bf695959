from django.contrib import admin

from apps.operators.models import Operator


@admin.register(Operator)
class OperatorAdmin(admin.ModelAdmin):
    list_display = ['name', 'rut', 'is_super', 'status', 'expiration', 'created_at']
    list_filter = ['is_super', 'status']
    search_fields = ['name', 'rut']
