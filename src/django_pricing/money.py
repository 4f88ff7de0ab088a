"""Fixed-point money arithmetic for pricing formulas.

Currency amounts are Decimals quantized to the currency's minor units.
Percentages are decimal fractions (0.05 == 5%) and are rounded only at
the point they are combined with a currency amount. All rounding is
banker's rounding (ROUND_HALF_EVEN).
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

from django_pricing import conf


# Currency precision rules for settlement/display
CURRENCY_DECIMALS = {
    'USD': 2, 'EUR': 2, 'GBP': 2, 'AED': 2,
    'CHF': 2, 'AUD': 2, 'HKD': 2, 'SGD': 2,
    'JPY': 0, 'KRW': 0,  # No decimal currencies
}

ONE = Decimal("1")

Number = Union[Decimal, int]


def to_decimal(value) -> Decimal:
    """Coerce to Decimal without passing through binary floating point."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def currency_exponent(currency: str) -> Decimal:
    """Return the quantization exponent for a currency (e.g. Decimal('0.01'))."""
    decimals = CURRENCY_DECIMALS.get(currency, 2)
    return Decimal(10) ** -decimals


def quantize_currency(amount: Number, currency: str) -> Decimal:
    """Quantize an amount to the currency's minor units."""
    return to_decimal(amount).quantize(currency_exponent(currency), rounding=ROUND_HALF_EVEN)


def round_percentage(pct: Number, places: int | None = None) -> Decimal:
    """Round a percentage fraction to a fixed number of decimal places."""
    if places is None:
        places = conf.get_percent_places()
    return to_decimal(pct).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_EVEN)


def percent_of(amount: Number, pct: Number) -> Decimal:
    """Return amount x pct, rounding the percentage first.

    Usage:
        vat = percent_of(Decimal("1000.00"), Decimal("0.05"))  # Decimal("50.0000")
    """
    return to_decimal(amount) * round_percentage(pct)


def apply_discount(amount: Number, pct: Number) -> Decimal:
    """Return amount x (1 - pct)."""
    return to_decimal(amount) * (ONE - round_percentage(pct))


def apply_markup(amount: Number, pct: Number) -> Decimal:
    """Return amount x (1 + pct)."""
    return to_decimal(amount) * (ONE + round_percentage(pct))


def apply_margin(amount: Number, pct: Number) -> Decimal:
    """Apply a margin by division: amount / (1 - pct).

    A 2.5% margin on 100 gives 100 / 0.975, so the margin is 2.5% of the
    resulting price rather than of the cost.

    Raises:
        ZeroDivisionError: If pct rounds to 1 (a 100% margin).
    """
    divisor = ONE - round_percentage(pct)
    if divisor == 0:
        raise ZeroDivisionError("margin of 100% has no finite price")
    return to_decimal(amount) / divisor


@dataclass(frozen=True)
class Money:
    """
    Immutable money value object.

    Usage:
        total = Money(Decimal("1080.00"), "USD")
        display = total.quantized()  # Uses banker's rounding
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        """Normalize amount to Decimal."""
        if not isinstance(self.amount, Decimal):
            # Use object.__setattr__ because dataclass is frozen
            object.__setattr__(self, 'amount', to_decimal(self.amount))

    def quantized(self) -> 'Money':
        """Return quantized to currency decimals for display/settlement."""
        return Money(quantize_currency(self.amount, self.currency), self.currency)

    def __str__(self):
        return f"{self.quantized().amount} {self.currency}"
