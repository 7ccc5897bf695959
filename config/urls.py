"""
URL configuration for the FleetOps API.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # Authentication endpoints
    path('api/auth/', include('apps.rbac.urls_auth')),  # Register, login, me

    path('api/', include('apps.core.urls')),  # Health
    path('api/', include('apps.operators.urls')),  # Operators and their statistics
    path('api/', include('apps.rbac.urls')),  # Roles, users, audit log
    path('api/', include('apps.fleet.urls')),  # Drivers, vehicles (and /trucks), documents
    path('api/', include('apps.partners.urls')),  # Clients and providers
    path('api/', include('apps.routes.urls')),  # Route catalog
    path('api/', include('apps.operations.urls')),  # Operations, assignments, batch upload, reports
]
