"""
Tests for inventory derivation.
"""

from decimal import Decimal

from ..models import MasterStatus, ShippingStatus
from ..services.inventory import derive_inventory, holding_office


def shipment(shipment_id, status, master=MasterStatus.ACTIVE, lines=None):
    return {
        'id': shipment_id,
        'invoice_number': f'INV-{shipment_id}',
        'origin_office_id': 'A',
        'destination_office_id': 'B',
        'master_status': master,
        'shipping_status': status,
        'merchandise': lines if lines is not None else [{'category': 'BOX', 'weight': '2', 'quantity': 3}],
    }


class TestInventory:

    def test_holding_office_follows_shipping_status(self):
        assert holding_office(shipment('1', ShippingStatus.PENDING_DISPATCH)) == 'A'
        assert holding_office(shipment('1', ShippingStatus.AT_DESTINATION_OFFICE)) == 'B'
        assert holding_office(shipment('1', ShippingStatus.IN_TRANSIT)) is None
        assert holding_office(shipment('1', ShippingStatus.REPORTED_MISSING)) is None

    def test_received_shipment_is_held_where_its_manifest_ended(self):
        received = shipment('1', ShippingStatus.AT_DESTINATION_OFFICE)
        assert holding_office(received, 'C') == 'C'
        assert holding_office(shipment('1', ShippingStatus.PENDING_DISPATCH), 'C') == 'A'

        items = derive_inventory([received], {'1': 'C'})
        assert items[0].office_id == 'C'

    def test_one_item_per_line(self):
        items = derive_inventory([shipment('1', ShippingStatus.PENDING_DISPATCH, lines=[
            {'category': 'BOX', 'weight': '2', 'quantity': 3},
            {'category': 'ENVELOPE', 'weight': '0.5'},
        ])])

        assert [i.category for i in items] == ['BOX', 'ENVELOPE']
        assert items[0].chargeable_weight == Decimal('6')
        assert items[1].quantity == Decimal('1')
        assert items[0].office_id == 'A'

    def test_voided_and_delivered_are_skipped(self):
        items = derive_inventory([
            shipment('1', ShippingStatus.PENDING_DISPATCH, master=MasterStatus.VOIDED),
            shipment('2', ShippingStatus.DELIVERED),
            shipment('3', ShippingStatus.AT_DESTINATION_OFFICE),
        ])
        assert [i.shipment_id for i in items] == ['3']
