"""
Freight Operations Services
"""

from .workflow import (
    validate_shipping_workflow, validate_master_workflow,
    validate_payment_workflow, validate_dispatch_workflow
)
from .financials import Breakdown, compute_financials, chargeable_weight
from .settlement import SettlementBreakdown, compute_settlement
from .visibility import Actor, VisibilityFilter, visible_shipments
from .inventory import InventoryItem, derive_inventory
from .shipment_service import ShipmentService, LoadReport, AssignmentResult
from .dispatch_service import DispatchService, DispatchResult
from .settlement_service import SettlementService

__all__ = [
    # Workflow validators
    'validate_shipping_workflow', 'validate_master_workflow',
    'validate_payment_workflow', 'validate_dispatch_workflow',

    # Pure calculators and policies
    'Breakdown', 'compute_financials', 'chargeable_weight',
    'SettlementBreakdown', 'compute_settlement',
    'Actor', 'VisibilityFilter', 'visible_shipments',
    'InventoryItem', 'derive_inventory',

    # Services
    'ShipmentService', 'LoadReport', 'AssignmentResult',
    'DispatchService', 'DispatchResult',
    'SettlementService',
]
