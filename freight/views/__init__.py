"""
Freight Operations Views
"""

from .shipment_views import ShipmentViewSet
from .fleet_views import AssociateViewSet, VehicleViewSet
from .dispatch_views import DispatchViewSet
from .settlement_views import SettlementViewSet
from .inventory_views import InventoryView

__all__ = [
    'ShipmentViewSet',
    'AssociateViewSet',
    'VehicleViewSet',
    'DispatchViewSet',
    'SettlementViewSet',
    'InventoryView',
]
