from django.contrib import admin

from apps.fleet.models import Driver, DriverDocument, DriverVehicle, Vehicle, VehicleDocument


class DriverDocumentInline(admin.TabularInline):
    model = DriverDocument
    extra = 0
    fields = ['document_type', 'document_name', 'issue_date', 'expiration_date']


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ['rut', 'first_name', 'last_name', 'operator', 'license_type', 'status', 'is_external']
    list_filter = ['status', 'is_external', 'license_type', 'operator']
    search_fields = ['rut', 'first_name', 'last_name', 'email']
    inlines = [DriverDocumentInline]


class VehicleDocumentInline(admin.TabularInline):
    model = VehicleDocument
    extra = 0
    fields = ['document_type', 'document_name', 'issue_date', 'expiration_date']


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['plate_number', 'brand', 'model', 'vehicle_type', 'operator', 'status']
    list_filter = ['status', 'vehicle_type', 'operator']
    search_fields = ['plate_number', 'brand', 'model', 'vin']
    inlines = [VehicleDocumentInline]


@admin.register(DriverVehicle)
class DriverVehicleAdmin(admin.ModelAdmin):
    list_display = ['driver', 'vehicle', 'assigned_at', 'unassigned_at', 'is_active']
    list_filter = ['is_active']
    search_fields = ['driver__rut', 'vehicle__plate_number']
