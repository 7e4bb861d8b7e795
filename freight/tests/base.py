"""
Shared fixtures for database-backed freight tests.
"""

from decimal import Decimal
from django.contrib.auth import get_user_model

from ..config import RateConfig
from ..models import Associate, Vehicle
from ..services import ShipmentService

RATES = RateConfig(
    cost_per_kg=Decimal('10'),
    insurance_default_rate=Decimal('0.02'),
    postal_contribution_rate=Decimal('0.06'),
    foreign_currency_surcharge_rate=Decimal('0.03'),
    cooperative_share_rate=Decimal('0.25'),
    handling_fee=Decimal('10'),
    vat_rate=Decimal('0'),
)


class FreightFixturesMixin:
    """Users, an associate with a vehicle, and a shipment factory."""

    def setUp(self):
        """Set up test data."""
        User = get_user_model()
        self.operator = User.objects.create_user(
            username='operator_a', password='testpass123', role='operator', office_id='A'
        )
        self.receiver = User.objects.create_user(
            username='operator_b', password='testpass123', role='operator', office_id='B'
        )
        self.manager = User.objects.create_user(
            username='manager', password='testpass123', role='office_manager', office_id='A'
        )
        self.admin = User.objects.create_user(
            username='admin', password='testpass123', role='admin'
        )

        self.associate = Associate.objects.create(code='AS-01', name='Transportes Uno')
        self.vehicle = Vehicle.objects.create(
            plate='ABC123', associate=self.associate, cargo_capacity_kg=Decimal('500')
        )

    def create_shipment(self, weight='100', origin='A', destination='B', **fields):
        data = {
            'origin_office_id': origin,
            'destination_office_id': destination,
            'receiver_name': 'Receiver',
            'merchandise': [{'category': 'BOX', 'weight': Decimal(weight), 'quantity': Decimal('1')}],
        }
        data.update(fields)
        return ShipmentService.create_shipment(data, self.operator, rates=RATES)

    def create_loaded_shipments(self, count=3, weight='100'):
        shipments = [self.create_shipment(weight=weight) for _ in range(count)]
        ShipmentService.assign_to_vehicle([s.id for s in shipments], self.vehicle.id, self.operator)
        return shipments
