# Overview: Pure pricing functions for cart lines and cart totals. No I/O.

"""
Pricing / Discount Engine

Line math for unit price p, quantity q, optional discount d:

    gross    = p * q
    discount = 0                       (no discount)
             = gross * d.value / 100   (percentage, rounded half-up to the cent)
             = d.value * q             (fixed: the amount comes off every unit)
    net      = max(0, gross - discount)
    profit   = net - buying_price * q  (negative means a loss; never clamped)

Cart totals sum gross, discount and profit over lines. The cart net is
gross - discount, NOT the sum of line nets: when one line's discount is
larger than its gross the line net floors at 0 but the cart discount still
counts the whole discount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

from ..models.discounts import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE


ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class DiscountLike(Protocol):
    kind: str
    value: Decimal


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineTotals:
    gross: Decimal
    discount: Decimal
    net: Decimal
    cost: Decimal
    profit: Decimal


@dataclass(frozen=True)
class CartTotals:
    gross: Decimal
    discount: Decimal
    net: Decimal
    profit: Decimal
    item_count: int

    def to_dict(self, *, include_profit: bool = True) -> dict:
        data = {
            "gross": str(self.gross),
            "discount": str(self.discount),
            "net": str(self.net),
            "item_count": self.item_count,
        }
        if include_profit:
            data["profit"] = str(self.profit)
        return data


def line_discount(unit_price: Decimal, quantity: int, discount: DiscountLike | None) -> Decimal:
    if discount is None:
        return ZERO
    gross = to_money(unit_price) * quantity
    value = Decimal(discount.value)
    if discount.kind == DISCOUNT_PERCENTAGE:
        return to_money(gross * value / HUNDRED)
    if discount.kind == DISCOUNT_FIXED:
        return to_money(value * quantity)
    raise ValueError(f"Unknown discount kind: {discount.kind}")


def line_totals(
    unit_price: Decimal,
    buying_price: Decimal,
    quantity: int,
    discount: DiscountLike | None = None,
) -> LineTotals:
    gross = to_money(unit_price) * quantity
    discount_amount = line_discount(unit_price, quantity, discount)
    net = max(ZERO, gross - discount_amount)
    cost = to_money(buying_price) * quantity
    return LineTotals(
        gross=gross,
        discount=discount_amount,
        net=net,
        cost=cost,
        profit=net - cost,
    )


def cart_totals(lines: Iterable[LineTotals], item_count: int = 0) -> CartTotals:
    gross = ZERO
    discount = ZERO
    profit = ZERO
    for line in lines:
        gross += line.gross
        discount += line.discount
        profit += line.profit
    return CartTotals(
        gross=gross,
        discount=discount,
        net=gross - discount,
        profit=profit,
        item_count=item_count,
    )


def compute_change(tendered: Decimal, net_total: Decimal) -> Decimal:
    """Cash change; negative means the customer is short."""
    return to_money(tendered) - net_total


def describe_change(change: Decimal) -> dict:
    """Display form of a change amount: always positive, labelled."""
    return {
        "amount": str(abs(change)),
        "label": "short" if change < 0 else "change",
    }
