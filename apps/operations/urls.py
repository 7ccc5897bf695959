"""
Operation API URLs.
"""
from django.urls import path
from apps.operations import views

app_name = 'operations'

urlpatterns = [
    path('operations', views.OperationListView.as_view(), name='operation-list'),

    path('operations/batch-upload', views.BatchUploadView.as_view(), name='batch-upload'),
    path('operations/batch-upload/file', views.BatchUploadFileView.as_view(), name='batch-upload-file'),
    path('operations/batch-upload/parse', views.BatchUploadParseView.as_view(), name='batch-upload-parse'),
    path('operations/batch-upload/template', views.BatchUploadTemplateView.as_view(), name='batch-upload-template'),
    path('operations/excel-template', views.BatchUploadTemplateView.as_view(), name='excel-template'),

    path('operations/assignments', views.AssignmentCreateView.as_view(), name='assignment-create'),
    path('operations/assignments/<uuid:assignment_id>/unassign', views.AssignmentUnassignView.as_view(),
         name='assignment-unassign'),
    path('operations/assignments/driver/<uuid:driver_id>', views.DriverAssignmentListView.as_view(),
         name='driver-assignments'),
    path('operations/assignments/driver/<uuid:driver_id>/active', views.DriverActiveAssignmentView.as_view(),
         name='driver-active-assignment'),

    path('operations/driver/<uuid:driver_id>/history', views.DriverOperationHistoryView.as_view(),
         name='driver-history'),
    path('operations/driver/<uuid:driver_id>/statistics', views.DriverStatisticsView.as_view(),
         name='driver-statistics'),

    path('operations/<uuid:operation_id>', views.OperationDetailView.as_view(), name='operation-detail'),
    path('operations/<uuid:operation_id>/report', views.OperationReportView.as_view(), name='operation-report'),
    path('operations/<uuid:operation_id>/generate-report', views.OperationReportView.as_view(),
         name='operation-generate-report'),
]
