"""
Fleet API URLs: drivers, vehicles and the legacy trucks alias.
"""
from django.urls import path
from apps.fleet import views

app_name = 'fleet'


def vehicle_patterns(prefix, name, list_view, detail_view, document_list_view, document_create_view,
                     document_detail_view, expiring_view, status_view, history_view, upcoming_view):
    return [
        path(f'{prefix}', list_view.as_view(), name=f'{name}-list'),
        path(f'{prefix}/documents', document_create_view.as_view(), name=f'{name}-document-create'),
        path(f'{prefix}/documents/expiring', expiring_view.as_view(), name=f'{name}-documents-expiring'),
        path(f'{prefix}/documents/<uuid:document_id>', document_detail_view.as_view(),
             name=f'{name}-document-detail'),
        path(f'{prefix}/<uuid:vehicle_id>', detail_view.as_view(), name=f'{name}-detail'),
        path(f'{prefix}/<uuid:vehicle_id>/documents', document_list_view.as_view(), name=f'{name}-documents'),
        path(f'{prefix}/<uuid:vehicle_id>/operational-status', status_view.as_view(),
             name=f'{name}-operational-status'),
        path(f'{prefix}/<uuid:vehicle_id>/operations/history', history_view.as_view(),
             name=f'{name}-operation-history'),
        path(f'{prefix}/<uuid:vehicle_id>/operations/upcoming', upcoming_view.as_view(),
             name=f'{name}-upcoming-operations'),
    ]


urlpatterns = [
    path('drivers', views.DriverListView.as_view(), name='driver-list'),
    path('drivers/documents/<uuid:document_id>', views.DriverDocumentDetailView.as_view(),
         name='driver-document-detail'),
    path('drivers/<uuid:driver_id>', views.DriverDetailView.as_view(), name='driver-detail'),
    path('drivers/<uuid:driver_id>/documents', views.DriverDocumentListView.as_view(), name='driver-documents'),
]

urlpatterns += vehicle_patterns(
    'vehicles', 'vehicle',
    views.VehicleListView, views.VehicleDetailView, views.VehicleDocumentListView,
    views.VehicleDocumentCreateView, views.VehicleDocumentDetailView, views.ExpiringDocumentListView,
    views.VehicleOperationalStatusView, views.VehicleOperationHistoryView, views.VehicleUpcomingOperationsView,
)

urlpatterns += vehicle_patterns(
    'trucks', 'truck',
    views.TruckListView, views.TruckDetailView, views.TruckDocumentListView,
    views.TruckDocumentCreateView, views.TruckDocumentDetailView, views.TruckExpiringDocumentListView,
    views.TruckOperationalStatusView, views.TruckOperationHistoryView, views.TruckUpcomingOperationsView,
)
