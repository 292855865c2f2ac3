from fractions import Fraction

from grocerpos.services import pricing


def test_unit_tax_is_exact():
    # 10.00 at 10% -> 100 cents
    assert pricing.unit_tax(1000, 1000) == 100
    # 0.99 at 7.25% -> 7.1775 cents, kept exact
    assert pricing.unit_tax(99, 725) == Fraction(71775, 10000)


def test_line_tax_rounds_half_up_once_per_slice():
    unit = pricing.unit_tax(99, 725)
    # 3 x 7.1775 = 21.5325 -> 22
    assert pricing.line_tax(3, unit) == 22
    # 2 x 7.1775 = 14.355 -> 14
    assert pricing.line_tax(2, unit) == 14
    # exact half rounds up
    assert pricing.line_tax(1, Fraction(1, 2)) == 1


def test_line_total_and_cost():
    assert pricing.line_total(8, 1000) == 8000
    assert pricing.line_cost(3, 650) == 1950


def test_sale_totals_accumulate_and_apply_discount():
    totals = pricing.SaleTotals()
    totals.add(total_cents=5000, tax_cents=500, cost_cents=3000)
    totals.add(total_cents=3000, tax_cents=300, cost_cents=1950)

    assert totals.subtotal_cents == 8000
    assert totals.tax_cents == 800
    assert totals.cost_cents == 4950
    assert totals.total_cents(0) == 8800
    assert totals.gross_profit_cents(0) == 3850
    assert totals.total_cents(800) == 8000


def test_discount_larger_than_basket_goes_negative():
    totals = pricing.SaleTotals()
    totals.add(total_cents=1000, tax_cents=100, cost_cents=600)
    assert totals.total_cents(5000) == -3900
