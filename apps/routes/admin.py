from django.contrib import admin

from apps.routes.models import Route


@admin.register(Route)
class RouteAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'origin', 'destination', 'distance', 'route_type', 'operator', 'status']
    list_filter = ['status', 'route_type', 'difficulty', 'tolls_required', 'operator']
    search_fields = ['name', 'code', 'origin', 'destination']
