from django.contrib import admin

from apps.partners.models import Client, Provider


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'tax_id', 'industry', 'operator', 'city', 'status']
    list_filter = ['status', 'industry', 'operator']
    search_fields = ['business_name', 'tax_id', 'contact_name']


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'tax_id', 'business_type', 'rating', 'operator', 'status']
    list_filter = ['status', 'rating', 'operator']
    search_fields = ['business_name', 'tax_id', 'contact_name']
