"""
Tests for the settlement distributor.
"""

from decimal import Decimal

from ..config import RateConfig
from ..models import MasterStatus, PaymentType
from ..services.settlement import compute_settlement, distribute

RATES = RateConfig(
    cost_per_kg=Decimal('10'),
    insurance_default_rate=Decimal('0.02'),
    postal_contribution_rate=Decimal('0.06'),
    cooperative_share_rate=Decimal('0.25'),
    handling_fee=Decimal('10'),
    vat_rate=Decimal('0'),
)


def shipment(shipment_id, weight='100', payment_type=PaymentType.PAID_AT_ORIGIN, **fields):
    data = {
        'id': shipment_id,
        'master_status': MasterStatus.ACTIVE,
        'payment_type': payment_type,
        'payment_currency': 'VES',
        'merchandise': [{'weight': weight}],
    }
    data.update(fields)
    return data


def insured(shipment_id, **fields):
    # 100 kg at 10/kg: freight 1000, postal 60, handling 10, insurance 230
    return shipment(
        shipment_id, has_insurance=True, declared_value='11500', insurance_percentage='2', **fields
    )


class TestDistribute:
    """Per-shipment split between cooperative and associate"""

    def test_split(self):
        cooperative, associate = distribute(Decimal('1000'), Decimal('300'), Decimal('0.25'))
        assert cooperative == Decimal('250')
        assert associate == Decimal('450')

    def test_associate_share_can_go_negative(self):
        cooperative, associate = distribute(Decimal('100'), Decimal('200'), Decimal('0.25'))
        assert cooperative == Decimal('25')
        assert associate == Decimal('-125')


class TestComputeSettlement:
    """Aggregation of shipments into a settlement breakdown"""

    def test_single_paid_at_origin_shipment(self):
        result = compute_settlement([insured('s1')], RATES)

        assert result.paid_at_origin.freight == Decimal('1000')
        assert result.cooperative_share == Decimal('250')
        assert result.associate_share == Decimal('450')
        assert result.amount_receivable == Decimal('450')
        assert result.total_at_destination == Decimal('0')
        assert result.included_shipment_ids == ['s1']

    def test_collect_at_destination_is_tracked_separately(self):
        shipments = [
            insured('s1'),
            insured('s2', payment_type=PaymentType.COLLECT_AT_DESTINATION),
        ]
        result = compute_settlement(shipments, RATES)

        assert result.paid_at_origin.shipment_count == 1
        assert result.collect_at_destination.shipment_count == 1
        assert result.amount_receivable == Decimal('450')
        assert result.associate_share == Decimal('900')
        # subtotal 1000 + 230 + 10, postal 60
        assert result.total_at_destination == Decimal('1300')

    def test_voided_shipments_are_excluded_and_counted(self):
        shipments = [insured('s1'), insured('s2', master_status=MasterStatus.VOIDED)]
        result = compute_settlement(shipments, RATES)

        assert result.paid_at_origin.freight == Decimal('1000')
        assert result.excluded_shipment_ids == ['s2']
        assert result.discrepancy_count == 1

    def test_order_does_not_matter(self):
        shipments = [
            insured('s1'),
            shipment('s2', weight='33.3'),
            shipment('s3', weight='7', payment_type=PaymentType.COLLECT_AT_DESTINATION),
        ]
        forward = compute_settlement(shipments, RATES)
        backward = compute_settlement(list(reversed(shipments)), RATES)
        assert forward.as_dict() == backward.as_dict()

    def test_recomputation_is_idempotent(self):
        shipments = [insured('s1'), shipment('s2', weight='12.5')]
        assert compute_settlement(shipments, RATES).as_dict() == compute_settlement(shipments, RATES).as_dict()

    def test_heavy_deductions_give_negative_receivable(self):
        data = shipment('s1', weight='1', has_insurance=True, declared_value='10000', insurance_percentage='5')
        result = compute_settlement([data], RATES)
        assert result.amount_receivable < 0

    def test_foreign_receivable_uses_exchange_rate(self):
        rates = RATES.with_overrides(exchange_rate=Decimal('45'))
        result = compute_settlement([insured('s1')], rates)
        assert result.amount_receivable_foreign == Decimal('10')

    def test_foreign_receivable_absent_without_rate(self):
        assert compute_settlement([insured('s1')], RATES).amount_receivable_foreign is None

    def test_empty_batch(self):
        result = compute_settlement([], RATES)
        assert result.amount_receivable == Decimal('0')
        assert result.as_dict()['discrepancy_count'] == 0
