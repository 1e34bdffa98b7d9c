"""
Pricing engine tests. Pure functions; no database.
"""

from decimal import Decimal

import pytest

from shoppos.services.cart_service import CartDiscount
from shoppos.services.pricing_service import (
    cart_totals,
    compute_change,
    describe_change,
    line_discount,
    line_totals,
)
from shoppos.validation import ValidationError, parse_money


D = Decimal


def pct(value) -> CartDiscount:
    return CartDiscount(id=1, name=f"{value}%", kind="percentage", value=D(str(value)))


def fixed(value) -> CartDiscount:
    return CartDiscount(id=2, name=f"-{value}", kind="fixed", value=D(str(value)))


class TestLineTotals:

    def test_no_discount(self):
        t = line_totals(D("150.00"), D("100.00"), 2)
        assert t.gross == D("300.00")
        assert t.discount == D("0.00")
        assert t.net == D("300.00")
        assert t.profit == D("100.00")

    def test_percentage(self):
        t = line_totals(D("100.00"), D("60.00"), 1, pct(10))
        assert t.discount == D("10.00")
        assert t.net == D("90.00")
        assert t.profit == D("30.00")

    def test_percentage_rounds_half_up_to_cent(self):
        # 3 x 3.35 = 10.05; 15% = 1.5075 -> 1.51
        assert line_discount(D("3.35"), 3, pct(15)) == D("1.51")

    def test_fixed_discount_applies_per_unit(self):
        # 5.00 off each of 3 units, not 5.00 off the line
        t = line_totals(D("20.00"), D("10.00"), 3, fixed(5))
        assert t.discount == D("15.00")
        assert t.net == D("45.00")

    def test_net_floors_at_zero(self):
        t = line_totals(D("10.00"), D("4.00"), 2, fixed(15))
        assert t.discount == D("30.00")
        assert t.net == D("0.00")

    def test_profit_may_be_negative(self):
        t = line_totals(D("100.00"), D("80.00"), 1, pct(50))
        assert t.net == D("50.00")
        assert t.profit == D("-30.00")

    def test_hundred_percent(self):
        t = line_totals(D("99.99"), D("0.00"), 1, pct(100))
        assert t.net == D("0.00")

    def test_unknown_kind_rejected(self):
        bogus = CartDiscount(id=3, name="x", kind="bogo", value=D("1"))
        with pytest.raises(ValueError):
            line_discount(D("1.00"), 1, bogus)


class TestCartTotals:

    def test_sums_lines(self):
        lines = [
            line_totals(D("150.00"), D("100.00"), 2),
            line_totals(D("100.00"), D("60.00"), 1, pct(10)),
        ]
        totals = cart_totals(lines, item_count=3)
        assert totals.gross == D("400.00")
        assert totals.discount == D("10.00")
        assert totals.net == D("390.00")
        assert totals.profit == D("130.00")
        assert totals.item_count == 3

    def test_net_is_gross_minus_discount_not_sum_of_line_nets(self):
        # Second line's discount (30) exceeds its gross (20): line net floors
        # at 0, but the cart discount still counts the full 30.
        lines = [
            line_totals(D("100.00"), D("50.00"), 1),
            line_totals(D("10.00"), D("5.00"), 2, fixed(15)),
        ]
        totals = cart_totals(lines)
        assert sum(l.net for l in lines) == D("100.00")
        assert totals.gross == D("120.00")
        assert totals.discount == D("30.00")
        assert totals.net == D("90.00")

    def test_equal_when_no_line_over_discounted(self):
        lines = [
            line_totals(D("150.00"), D("100.00"), 2, pct(10)),
            line_totals(D("50.00"), D("20.00"), 1, fixed(5)),
        ]
        totals = cart_totals(lines)
        assert totals.net == sum(l.net for l in lines)

    def test_empty(self):
        totals = cart_totals([])
        assert totals.net == D("0.00")
        assert totals.to_dict(include_profit=False) == {
            "gross": "0.00",
            "discount": "0.00",
            "net": "0.00",
            "item_count": 0,
        }


class TestChange:

    def test_change(self):
        change = compute_change(D("400"), D("300.00"))
        assert change == D("100.00")
        assert describe_change(change) == {"amount": "100.00", "label": "change"}

    def test_exact(self):
        assert describe_change(compute_change(D("300.00"), D("300.00"))) == {"amount": "0.00", "label": "change"}

    def test_short_is_shown_as_positive(self):
        change = compute_change(D("250.00"), D("300.00"))
        assert change == D("-50.00")
        assert describe_change(change) == {"amount": "50.00", "label": "short"}


class TestParseMoney:

    @pytest.mark.parametrize("raw, expected", [
        ("19.99", D("19.99")),
        (19.99, D("19.99")),
        (5, D("5.00")),
        ("2.345", D("2.35")),
    ])
    def test_valid(self, raw, expected):
        assert parse_money(raw, "price") == expected

    @pytest.mark.parametrize("raw", [None, True, "abc", "NaN", "Infinity", "1e30", "10000000"])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_money(raw, "price")
