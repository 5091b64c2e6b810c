"""Currency rounding helpers.

Amounts are stored as floats (as everywhere in the domain) but every derived
value is rounded half-up to whole pence, so 40.00 - 37.77 is 2.23 and not
2.2300000000000004.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round to two decimal places, halves away from zero."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_cents(value: float) -> int:
    return int(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def format_money(value: float, currency: str = "GBP") -> str:
    symbol = {"GBP": "£", "USD": "$", "EUR": "€"}.get(currency, f"{currency} ")
    return f"{symbol}{value:.2f}"


def is_whole_pence(value: float) -> bool:
    """True when ``value`` carries no fraction of a penny."""
    return round_money(value) == value
