"""
Financial calculator for shipments.

Pure functions: given a shipment (model instance or plain mapping) and a
RateConfig, compute chargeable weight, freight, insurance, handling, postal
contribution, VAT, foreign-currency surcharge and total. Malformed numeric
input is read as zero so the calculation never fails.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, ClassVar, Iterable, Tuple

from ..config import RateConfig

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')
GRAM = Decimal('0.001')

VOLUMETRIC_DIVISOR = Decimal('5000')


@dataclass(frozen=True)
class Breakdown:
    freight: Decimal = ZERO
    insurance_cost: Decimal = ZERO
    handling: Decimal = ZERO
    discount: Decimal = ZERO
    subtotal: Decimal = ZERO
    postal_contribution: Decimal = ZERO
    vat: Decimal = ZERO
    foreign_currency_surcharge: Decimal = ZERO
    total: Decimal = ZERO
    chargeable_weight: Decimal = ZERO

    FIELDS: ClassVar[Tuple[str, ...]] = (
        'freight', 'insurance_cost', 'handling', 'discount', 'subtotal',
        'postal_contribution', 'vat', 'foreign_currency_surcharge', 'total',
    )

    def quantized(self) -> "Breakdown":
        """Round money to cents and weight to grams."""
        values = {
            name: getattr(self, name).quantize(CENT, rounding=ROUND_HALF_UP)
            for name in self.FIELDS
        }
        values['chargeable_weight'] = self.chargeable_weight.quantize(GRAM, rounding=ROUND_HALF_UP)
        return replace(self, **values)

    def as_dict(self):
        data = {name: getattr(self, name) for name in self.FIELDS}
        data['chargeable_weight'] = self.chargeable_weight
        return data


def to_amount(value: Any) -> Decimal:
    """Read a non-negative amount, clamping missing or malformed input to zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def _quantity(value: Any) -> Decimal:
    # A line without a quantity counts as one unit.
    if value is None or (isinstance(value, str) and not value.strip()):
        return ONE
    return to_amount(value)


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _lines(shipment: Any) -> Iterable[Any]:
    lines = _get(shipment, 'merchandise')
    if lines is None:
        return []
    if hasattr(lines, 'all'):
        return lines.all()
    return lines


def line_chargeable_weight(line: Any) -> Decimal:
    """max(real, volumetric) weight of one line, times its quantity."""
    real_weight = to_amount(_get(line, 'weight'))
    volume = to_amount(_get(line, 'length')) * to_amount(_get(line, 'width')) * to_amount(_get(line, 'height'))
    volumetric_weight = volume / VOLUMETRIC_DIVISOR
    return max(real_weight, volumetric_weight) * _quantity(_get(line, 'quantity'))


def chargeable_weight(shipment: Any) -> Decimal:
    """Total chargeable weight of a shipment in kg."""
    if shipment is None:
        return ZERO
    return sum((line_chargeable_weight(line) for line in _lines(shipment)), ZERO)


def compute_financials(shipment: Any, rates: RateConfig) -> Breakdown:
    """
    Compute the financial breakdown of a single shipment.

    Args:
        shipment: Shipment instance or mapping with merchandise lines and
            pricing inputs
        rates: Company rate configuration

    Returns:
        Unrounded Breakdown; call ``quantized()`` before persisting
    """
    if shipment is None:
        return Breakdown()
    lines = list(_lines(shipment))
    if not lines:
        return Breakdown()

    total_weight = sum((line_chargeable_weight(line) for line in lines), ZERO)
    freight = total_weight * to_amount(rates.cost_per_kg)

    discount = ZERO
    if _get(shipment, 'has_discount', False):
        discount = freight * to_amount(_get(shipment, 'discount_percentage')) / HUNDRED

    insurance_cost = ZERO
    if _get(shipment, 'has_insurance', False):
        percentage = _get(shipment, 'insurance_percentage')
        if percentage is None:
            insurance_rate = to_amount(rates.insurance_default_rate)
        else:
            insurance_rate = to_amount(percentage) / HUNDRED
        insurance_cost = to_amount(_get(shipment, 'declared_value')) * insurance_rate

    handling = to_amount(rates.handling_fee) if total_weight > ZERO else ZERO

    subtotal = freight - discount + insurance_cost + handling

    # Levied on undiscounted freight.
    postal_contribution = freight * to_amount(rates.postal_contribution_rate)

    vat = subtotal * to_amount(rates.vat_rate)

    surcharge = ZERO
    currency = str(_get(shipment, 'payment_currency', '') or '').upper()
    if currency and currency == rates.foreign_currency:
        surcharge = (subtotal + postal_contribution + vat) * to_amount(rates.foreign_currency_surcharge_rate)

    total = subtotal + postal_contribution + vat + surcharge

    return Breakdown(
        freight=freight,
        insurance_cost=insurance_cost,
        handling=handling,
        discount=discount,
        subtotal=subtotal,
        postal_contribution=postal_contribution,
        vat=vat,
        foreign_currency_surcharge=surcharge,
        total=total,
        chargeable_weight=total_weight,
    )
