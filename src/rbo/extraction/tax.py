from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

DEFAULT_TAX_RATE = 0.19
DEFAULT_MARGIN_MULTIPLIER = 1.3


def round_currency(value: float) -> int:
    """CLP has no minor unit: half rounds up, like the invoices do."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tax_inclusive(base_cost: float, tax_rate: float = DEFAULT_TAX_RATE) -> int:
    return round_currency(float(base_cost) * (1 + float(tax_rate)))


def price_from_cost(cost: float, margin_multiplier: float = DEFAULT_MARGIN_MULTIPLIER) -> int:
    return round_currency(float(cost) * float(margin_multiplier))
