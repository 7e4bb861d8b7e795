"""
Company rate configuration.

Calculators never read settings themselves: callers build a RateConfig
(usually with ``RateConfig.from_settings()``) and pass it in.
"""

from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.conf import settings


def _decimal(value: Any, default: str) -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid rate value: {value!r}")


@dataclass(frozen=True)
class RateConfig:
    cost_per_kg: Decimal = Decimal("0")
    insurance_default_rate: Decimal = Decimal("0")
    postal_contribution_rate: Decimal = Decimal("0.06")
    foreign_currency_surcharge_rate: Decimal = Decimal("0.03")
    cooperative_share_rate: Decimal = Decimal("0.25")
    handling_fee: Decimal = Decimal("10")
    vat_rate: Decimal = Decimal("0")
    foreign_currency: str = "USD"
    exchange_rate: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateConfig":
        """Build a config from a mapping of strings/numbers, ignoring unknown keys."""
        defaults = cls()
        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            raw = data[f.name]
            if f.name == "foreign_currency":
                values[f.name] = str(raw or defaults.foreign_currency).upper()
            elif f.name == "exchange_rate":
                rate = _decimal(raw, "0")
                values[f.name] = rate if rate > 0 else None
            else:
                values[f.name] = _decimal(raw, str(getattr(defaults, f.name)))
        return cls(**values)

    @classmethod
    def from_settings(cls) -> "RateConfig":
        return cls.from_dict(getattr(settings, "FREIGHT_RATES", {}))

    def with_overrides(self, **overrides) -> "RateConfig":
        return replace(self, **overrides)
