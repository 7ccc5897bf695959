"""
Operator API URLs.
"""
from django.urls import path
from apps.operators.views import OperatorDetailView, OperatorListView, OperatorStatisticsView

app_name = 'operators'

urlpatterns = [
    path('operators', OperatorListView.as_view(), name='operator-list'),
    path('operators/<uuid:operator_id>', OperatorDetailView.as_view(), name='operator-detail'),
    path('operators/<uuid:operator_id>/statistics', OperatorStatisticsView.as_view(), name='operator-statistics'),
]
