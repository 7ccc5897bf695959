"""
Django admin configuration for core app.
"""
from django.contrib import admin


# Customize admin site header and title
admin.site.site_header = "FleetOps Administration"
admin.site.site_title = "FleetOps Admin"
admin.site.index_title = "Welcome to FleetOps Administration"
