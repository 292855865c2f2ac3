"""
Pricing calculator.

All money is integer cents, tax rates are basis points (10% == 1000).
Figures are computed per allocation slice and summed; tax for a slice is
rounded once, half-up, from the exact unit tax so that summing slices never
accumulates per-unit rounding error.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

BPS_DENOMINATOR = 10_000


def _round_half_up(value: Fraction) -> int:
    # nearest-cent rounding (half-up); amounts here are never negative
    return int((value.numerator * 2 + value.denominator) // (value.denominator * 2))


def unit_tax(selling_price_cents: int, tax_rate_bps: int) -> Fraction:
    """Exact per-unit tax in cents (may be fractional)."""
    return Fraction(selling_price_cents * tax_rate_bps, BPS_DENOMINATOR)


def line_total(quantity: int, selling_price_cents: int) -> int:
    return quantity * selling_price_cents


def line_tax(quantity: int, unit_tax_cents: Fraction) -> int:
    return _round_half_up(quantity * Fraction(unit_tax_cents))


def line_cost(quantity: int, purchase_price_cents: int) -> int:
    return quantity * purchase_price_cents


@dataclass
class SaleTotals:
    """Running totals accumulated slice by slice during checkout."""
    subtotal_cents: int = 0
    tax_cents: int = 0
    cost_cents: int = 0

    def add(self, *, total_cents: int, tax_cents: int, cost_cents: int) -> None:
        self.subtotal_cents += total_cents
        self.tax_cents += tax_cents
        self.cost_cents += cost_cents

    def total_cents(self, discount_cents: int) -> int:
        # Discount is a flat sale-level subtraction, never distributed to lines
        return self.subtotal_cents + self.tax_cents - discount_cents

    def gross_profit_cents(self, discount_cents: int) -> int:
        return self.total_cents(discount_cents) - self.cost_cents
