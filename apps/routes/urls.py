"""
Route API URLs.
"""
from django.urls import path
from apps.routes.views import RouteDetailView, RouteListView, RouteStatisticsView

app_name = 'routes'

urlpatterns = [
    path('routes', RouteListView.as_view(), name='route-list'),
    path('routes/<uuid:route_id>', RouteDetailView.as_view(), name='route-detail'),
    path('routes/<uuid:route_id>/statistics', RouteStatisticsView.as_view(), name='route-statistics'),
]
