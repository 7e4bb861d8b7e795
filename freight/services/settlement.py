"""
Settlement distributor.

Splits the freight revenue of a batch of shipments between the cooperative
and the associate that carried them. Pure: the same shipments and rates
always produce the same breakdown.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Tuple

from ..config import RateConfig
from ..models import MasterStatus, PaymentType
from .financials import Breakdown, ZERO, CENT, compute_financials, _get


@dataclass
class BucketTotals:
    """Accumulated figures for one payment type."""
    freight: Decimal = ZERO
    insurance: Decimal = ZERO
    postal_contribution: Decimal = ZERO
    handling: Decimal = ZERO
    vat: Decimal = ZERO
    total: Decimal = ZERO
    cooperative_share: Decimal = ZERO
    associate_share: Decimal = ZERO
    shipment_count: int = 0

    def add(self, financials: Breakdown, cooperative_share: Decimal, associate_share: Decimal):
        self.freight += financials.freight
        self.insurance += financials.insurance_cost
        self.postal_contribution += financials.postal_contribution
        self.handling += financials.handling
        self.vat += financials.vat
        self.total += financials.total
        self.cooperative_share += cooperative_share
        self.associate_share += associate_share
        self.shipment_count += 1

    def as_dict(self, rounded: bool = True):
        data = {}
        for name in ('freight', 'insurance', 'postal_contribution', 'handling', 'vat',
                     'total', 'cooperative_share', 'associate_share'):
            value = getattr(self, name)
            data[name] = value.quantize(CENT, rounding=ROUND_HALF_UP) if rounded else value
        data['shipment_count'] = self.shipment_count
        return data


@dataclass
class SettlementBreakdown:
    paid_at_origin: BucketTotals = field(default_factory=BucketTotals)
    collect_at_destination: BucketTotals = field(default_factory=BucketTotals)
    total_at_destination: Decimal = ZERO
    amount_receivable_foreign: Optional[Decimal] = None
    included_shipment_ids: List[str] = field(default_factory=list)
    excluded_shipment_ids: List[str] = field(default_factory=list)

    @property
    def amount_receivable(self) -> Decimal:
        """Money the associate collected at origin and still owes the cooperative."""
        return self.paid_at_origin.associate_share

    @property
    def cooperative_share(self) -> Decimal:
        return self.paid_at_origin.cooperative_share + self.collect_at_destination.cooperative_share

    @property
    def associate_share(self) -> Decimal:
        return self.paid_at_origin.associate_share + self.collect_at_destination.associate_share

    @property
    def discrepancy_count(self) -> int:
        return len(self.excluded_shipment_ids)

    def as_dict(self):
        def cents(value):
            return value.quantize(CENT, rounding=ROUND_HALF_UP)

        return {
            'paid_at_origin': self.paid_at_origin.as_dict(),
            'collect_at_destination': self.collect_at_destination.as_dict(),
            'total_at_destination': cents(self.total_at_destination),
            'amount_receivable': cents(self.amount_receivable),
            'amount_receivable_foreign': (
                cents(self.amount_receivable_foreign) if self.amount_receivable_foreign is not None else None
            ),
            'cooperative_share': cents(self.cooperative_share),
            'associate_share': cents(self.associate_share),
            'included_shipment_ids': list(self.included_shipment_ids),
            'excluded_shipment_ids': list(self.excluded_shipment_ids),
            'discrepancy_count': self.discrepancy_count,
        }


def distribute(freight: Decimal, deductions: Decimal, cooperative_share_rate: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Split one shipment's freight.

    Returns (cooperative_share, associate_share). The associate share goes
    negative when deductions exceed the associate's part of the freight.
    """
    cooperative_share = freight * cooperative_share_rate
    associate_share = freight - cooperative_share - deductions
    return cooperative_share, associate_share


def _shipment_key(shipment: Any) -> str:
    return str(_get(shipment, 'id', ''))


def compute_settlement(shipments: Iterable[Any], rates: RateConfig) -> SettlementBreakdown:
    """
    Aggregate shipments into a settlement breakdown.

    Voided shipments are left out of every sum and reported through
    ``excluded_shipment_ids``. Shipments are accumulated in id order so the
    result does not depend on input order.
    """
    result = SettlementBreakdown()

    for shipment in sorted(shipments, key=_shipment_key):
        shipment_id = _shipment_key(shipment)
        if _get(shipment, 'master_status', MasterStatus.ACTIVE) == MasterStatus.VOIDED:
            result.excluded_shipment_ids.append(shipment_id)
            continue

        financials = compute_financials(shipment, rates)
        deductions = (
            financials.postal_contribution + financials.insurance_cost
            + financials.handling + financials.vat
        )
        cooperative_share, associate_share = distribute(
            financials.freight, deductions, rates.cooperative_share_rate
        )

        if _get(shipment, 'payment_type') == PaymentType.COLLECT_AT_DESTINATION:
            bucket = result.collect_at_destination
            result.total_at_destination += financials.total
        else:
            bucket = result.paid_at_origin
        bucket.add(financials, cooperative_share, associate_share)
        result.included_shipment_ids.append(shipment_id)

    if rates.exchange_rate:
        result.amount_receivable_foreign = result.amount_receivable / rates.exchange_rate

    return result
