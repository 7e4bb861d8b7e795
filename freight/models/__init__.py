"""
Freight Operations Models
"""

from .shipment import (
    Shipment, MerchandiseLine, MasterStatus, PaymentStatus, ShippingStatus, PaymentType
)
from .fleet import Associate, Vehicle, VehicleStatus
from .dispatch import Dispatch, DispatchItem, DispatchStatus
from .settlement import Settlement, SettlementItem
from .audit import AuditLog

__all__ = [
    # Shipment models
    'Shipment', 'MerchandiseLine',
    'MasterStatus', 'PaymentStatus', 'ShippingStatus', 'PaymentType',

    # Fleet models
    'Associate', 'Vehicle', 'VehicleStatus',

    # Dispatch models
    'Dispatch', 'DispatchItem', 'DispatchStatus',

    # Settlement models
    'Settlement', 'SettlementItem',

    # Audit
    'AuditLog',
]
