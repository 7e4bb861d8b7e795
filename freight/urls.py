"""
URL configuration for freight operations.

Provides API endpoints for shipments, fleet, dispatch manifests,
settlements and office inventory.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import (
    ShipmentViewSet, AssociateViewSet, VehicleViewSet,
    DispatchViewSet, SettlementViewSet, InventoryView
)

# Create router and register viewsets
router = DefaultRouter()
router.register(r'shipments', ShipmentViewSet, basename='shipment')
router.register(r'associates', AssociateViewSet, basename='associate')
router.register(r'vehicles', VehicleViewSet, basename='vehicle')
router.register(r'dispatches', DispatchViewSet, basename='dispatch')
router.register(r'settlements', SettlementViewSet, basename='settlement')

# URL patterns
urlpatterns = [
    path('inventory/', InventoryView.as_view(), name='inventory'),
] + router.urls
