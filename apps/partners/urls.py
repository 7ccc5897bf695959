"""
Client and provider API URLs.
"""
from django.urls import path
from apps.partners import views

app_name = 'partners'

urlpatterns = [
    path('clients', views.ClientListView.as_view(), name='client-list'),
    path('clients/top', views.TopClientsView.as_view(), name='client-top'),
    path('clients/by-industry', views.ClientsByIndustryView.as_view(), name='client-by-industry'),
    path('clients/<uuid:client_id>', views.ClientDetailView.as_view(), name='client-detail'),
    path('clients/<uuid:client_id>/permanent', views.ClientPermanentDeleteView.as_view(),
         name='client-permanent-delete'),
    path('clients/<uuid:client_id>/statistics', views.ClientStatisticsView.as_view(), name='client-statistics'),
    path('clients/<uuid:client_id>/operations', views.ClientOperationsView.as_view(), name='client-operations'),
    path('clients/<uuid:client_id>/operations/recent', views.ClientRecentOperationsView.as_view(),
         name='client-recent-operations'),

    path('providers', views.ProviderListView.as_view(), name='provider-list'),
    path('providers/<uuid:provider_id>', views.ProviderDetailView.as_view(), name='provider-detail'),
    path('providers/<uuid:provider_id>/permanent', views.ProviderPermanentDeleteView.as_view(),
         name='provider-permanent-delete'),
    path('providers/<uuid:provider_id>/statistics', views.ProviderStatisticsView.as_view(),
         name='provider-statistics'),
    path('providers/<uuid:provider_id>/operations', views.ProviderOperationsView.as_view(),
         name='provider-operations'),
]
