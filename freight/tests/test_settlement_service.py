"""
Tests for stored settlements.
"""

from decimal import Decimal
from django.test import TestCase

from ..exceptions import NotFoundException, StateConflictException, ValidationException
from ..models import PaymentType, Settlement, SettlementItem
from ..services import DispatchService, SettlementService, ShipmentService
from .base import RATES, FreightFixturesMixin


class SettlementServiceTest(FreightFixturesMixin, TestCase):
    """Test settlement creation and recomputation."""

    def create_insured(self, **fields):
        # freight 1000, insurance 230, handling 10, postal 60
        return self.create_shipment(
            weight='100', has_insurance=True, declared_value=Decimal('11500'),
            insurance_percentage=Decimal('2'), **fields
        )

    def load(self, *shipments):
        ShipmentService.assign_to_vehicle([s.id for s in shipments], self.vehicle.id, self.operator)

    def test_create_settlement(self):
        shipment = self.create_insured()
        self.load(shipment)

        settlement = SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)

        self.assertTrue(settlement.settlement_number.startswith('R-'))
        self.assertEqual(settlement.associate, self.associate)
        self.assertEqual(settlement.cooperative_share, Decimal('250.00'))
        self.assertEqual(settlement.associate_share, Decimal('450.00'))
        self.assertEqual(settlement.amount_receivable, Decimal('450.00'))
        self.assertEqual(settlement.discrepancy_count, 0)
        self.assertEqual(settlement.breakdown['paid_at_origin']['shipment_count'], 1)

    def test_collect_at_destination_total(self):
        paid = self.create_insured()
        collect = self.create_insured(payment_type=PaymentType.COLLECT_AT_DESTINATION)
        self.load(paid, collect)

        settlement = SettlementService.create_settlement(
            [paid.id, collect.id], self.vehicle.id, self.manager, rates=RATES
        )
        self.assertEqual(settlement.amount_receivable, Decimal('450.00'))
        self.assertEqual(settlement.total_at_destination, Decimal('1300.00'))

    def test_shipment_settled_once(self):
        shipment = self.create_insured()
        self.load(shipment)
        SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)

        with self.assertRaises(StateConflictException):
            SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)

    def test_shipment_on_other_vehicle_rejected(self):
        shipment = self.create_insured()
        with self.assertRaises(StateConflictException):
            SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)
        self.assertFalse(Settlement.objects.exists())

    def test_empty_settlement_rejected(self):
        with self.assertRaises(ValidationException):
            SettlementService.create_settlement([], self.vehicle.id, self.manager, rates=RATES)

    def test_voiding_a_member_recomputes(self):
        first = self.create_insured()
        second = self.create_insured()
        self.load(first, second)
        settlement = SettlementService.create_settlement(
            [first.id, second.id], self.vehicle.id, self.manager, rates=RATES
        )
        self.assertEqual(settlement.amount_receivable, Decimal('900.00'))

        ShipmentService.void_shipment(str(second.id), self.manager, rates=RATES)

        settlement.refresh_from_db()
        self.assertEqual(settlement.amount_receivable, Decimal('450.00'))
        self.assertEqual(settlement.discrepancy_count, 1)
        self.assertIsNotNone(settlement.recomputed_at)
        self.assertEqual(settlement.breakdown['excluded_shipment_ids'], [str(second.id)])

    def test_recompute_is_idempotent(self):
        shipment = self.create_insured()
        self.load(shipment)
        settlement = SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)

        first = SettlementService.recompute(str(settlement.id), rates=RATES)
        second = SettlementService.recompute(str(settlement.id), rates=RATES)
        self.assertEqual(first.breakdown, second.breakdown)
        self.assertEqual(second.amount_receivable, Decimal('450.00'))

    def test_create_for_vehicle_skips_settled_and_voided(self):
        settled = self.create_insured()
        voided = self.create_insured()
        fresh = self.create_insured()
        self.load(settled, voided, fresh)
        SettlementService.create_settlement([settled.id], self.vehicle.id, self.manager, rates=RATES)
        ShipmentService.void_shipment(str(voided.id), self.manager, rates=RATES)

        settlement = SettlementService.create_for_vehicle(self.vehicle.id, self.manager, rates=RATES)
        self.assertEqual([str(i) for i in settlement.shipment_ids], [str(fresh.id)])

    def test_create_for_dispatch(self):
        first = self.create_insured()
        second = self.create_insured()
        self.load(first, second)
        dispatch = DispatchService.create_dispatch(
            [first.id, second.id], self.vehicle.id, 'B', self.operator
        ).dispatch

        settlement = SettlementService.create_for_dispatch(str(dispatch.id), self.manager, rates=RATES)
        self.assertEqual(SettlementItem.objects.filter(settlement=settlement).count(), 2)

    def test_preview_counts_unknown_ids(self):
        shipment = self.create_insured()
        breakdown = SettlementService.preview([shipment.id, 'missing'], rates=RATES)

        self.assertEqual(breakdown.amount_receivable, Decimal('450'))
        self.assertEqual(breakdown.excluded_shipment_ids, ['missing'])
        self.assertFalse(Settlement.objects.exists())

    def test_delete_frees_shipments(self):
        shipment = self.create_insured()
        self.load(shipment)
        settlement = SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)

        SettlementService.delete_settlement(str(settlement.id), self.manager)
        self.assertFalse(Settlement.objects.exists())

        again = SettlementService.create_settlement([shipment.id], self.vehicle.id, self.manager, rates=RATES)
        self.assertEqual(again.amount_receivable, Decimal('450.00'))

    def test_unknown_settlement(self):
        with self.assertRaises(NotFoundException):
            SettlementService.recompute('00000000-0000-0000-0000-000000000000', rates=RATES)
