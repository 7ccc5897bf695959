from django.contrib import admin

from apps.operations.models import Operation


@admin.register(Operation)
class OperationAdmin(admin.ModelAdmin):
    list_display = [
        'operation_number', 'operator', 'status', 'driver', 'vehicle',
        'origin', 'destination', 'scheduled_start_date'
    ]
    list_filter = ['status', 'operation_type', 'operator']
    search_fields = ['operation_number', 'origin', 'destination', 'driver__rut', 'vehicle__plate_number']
    date_hierarchy = 'scheduled_start_date'
    raw_id_fields = ['driver', 'vehicle', 'client', 'provider', 'route']
