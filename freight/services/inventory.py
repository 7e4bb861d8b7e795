"""
Shipment inventory: the goods each office is holding, derived from shipments.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from ..models import MasterStatus, ShippingStatus
from .financials import _get, _lines, _quantity, line_chargeable_weight


@dataclass(frozen=True)
class InventoryItem:
    shipment_id: str
    invoice_number: str
    category: str
    description: str
    quantity: Decimal
    chargeable_weight: Decimal
    shipping_status: str
    office_id: Optional[str]


def holding_office(shipment: Any, arrival_office: Optional[str] = None) -> Optional[str]:
    """
    Office physically holding a shipment, None while on the road or missing.

    A received shipment sits where its last received manifest ended, which
    may be an intermediate office; ``arrival_office`` carries that office
    and the shipment's own destination is used when it is unknown.
    """
    status = _get(shipment, 'shipping_status')
    if status == ShippingStatus.PENDING_DISPATCH:
        return _get(shipment, 'origin_office_id')
    if status == ShippingStatus.AT_DESTINATION_OFFICE:
        return arrival_office or _get(shipment, 'destination_office_id')
    return None


def derive_inventory(shipments: Iterable[Any],
                     arrival_offices: Optional[Mapping[str, str]] = None) -> List[InventoryItem]:
    """
    One item per merchandise line of every active, undelivered shipment.

    ``arrival_offices`` maps shipment ids to the destination of their last
    received manifest.
    """
    arrival_offices = arrival_offices or {}
    items = []
    for shipment in shipments:
        if _get(shipment, 'master_status') == MasterStatus.VOIDED:
            continue
        if _get(shipment, 'shipping_status') == ShippingStatus.DELIVERED:
            continue
        for line in _lines(shipment):
            items.append(InventoryItem(
                shipment_id=str(_get(shipment, 'id')),
                invoice_number=_get(shipment, 'invoice_number', ''),
                category=_get(line, 'category', '') or '',
                description=_get(line, 'description', '') or '',
                quantity=_quantity(_get(line, 'quantity')),
                chargeable_weight=line_chargeable_weight(line),
                shipping_status=_get(shipment, 'shipping_status'),
                office_id=holding_office(shipment, arrival_offices.get(str(_get(shipment, 'id')))),
            ))
    return items
