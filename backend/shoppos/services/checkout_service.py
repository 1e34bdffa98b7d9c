# Overview: Checkout state machine; persists sale header, sale items and stock decrements.

"""
Checkout Orchestrator

States:

    idle --(cash)--> awaiting_tender --(tender >= net)--> committing --> complete
    idle --(card)------------------------------------->  committing --> complete
    awaiting_tender / committing --> failed

Committing runs four steps in order:

    1. sale      insert the Sale header with the cart totals
    2. items     insert one SaleItem per cart line (price/discount snapshot)
    3. stock     decrement stock once per distinct real product
    4. receipt   build the Receipt and clear the cart

Each of steps 1-3 is its own commit. A failure stops the sequence, moves the
checkout to failed and raises PersistenceFailure. Steps that already
committed are NOT rolled back: a failed checkout can leave a sale without
items, or items without the stock decrement. PersistenceFailure carries the
sale id and the completed steps so the sale can be reconciled by hand.

Stock was checked against the cart's product snapshots when items were
added; it is not re-checked here. Two tills selling the last unit at the
same time can both succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..models.sales import PAYMENT_CARD, PAYMENT_CASH, PAYMENT_METHODS
from ..validation import ValidationError, parse_money
from .cart_service import Cart, CartItem
from .permission_service import require_staff
from .pricing_service import CartTotals, compute_change, describe_change
from .session_service import StaffContext
from shoppos.time_utils import to_utc_z, utcnow


STATE_IDLE = "idle"
STATE_AWAITING_TENDER = "awaiting_tender"
STATE_COMMITTING = "committing"
STATE_COMPLETE = "complete"
STATE_FAILED = "failed"

STEP_SALE = "sale"
STEP_ITEMS = "items"
STEP_STOCK = "stock"


class CheckoutError(Exception):
    """Raised for checkout operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientTenderError(CheckoutError):
    """Cash tendered is below the cart net total. Retryable."""


class PersistenceFailure(CheckoutError):
    """A store write failed while committing. Earlier steps stay committed."""
    def __init__(
        self,
        message: str,
        *,
        step: str,
        completed_steps: list[str],
        sale_id: int | None = None,
    ):
        super().__init__(
            message,
            details={"step": step, "completed_steps": list(completed_steps), "sale_id": sale_id},
        )
        self.step = step
        self.completed_steps = list(completed_steps)
        self.sale_id = sale_id


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: int
    unit_price: Decimal
    discount_name: str | None
    discount_amount: Decimal
    subtotal: Decimal

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "discount_name": self.discount_name,
            "discount_amount": str(self.discount_amount),
            "subtotal": str(self.subtotal),
        }


@dataclass(frozen=True)
class Receipt:
    sale_id: int
    lines: list[ReceiptLine]
    subtotal: Decimal
    total_discount: Decimal
    total: Decimal
    payment_method: str
    created_at: datetime
    cashier_id: int
    cash_received: Decimal | None = None
    change: Decimal | None = None

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "total_discount": str(self.total_discount),
            "total": str(self.total),
            "payment_method": self.payment_method,
            "cash_received": str(self.cash_received) if self.cash_received is not None else None,
            "change": str(self.change) if self.change is not None else None,
            "cashier_id": self.cashier_id,
            "created_at": to_utc_z(self.created_at),
        }


def _insert_sale_header(cashier_id: int, totals: CartTotals, payment_method: str, created_at: datetime) -> int:
    sale = Sale(
        cashier_id=cashier_id,
        total_amount=totals.net,
        total_profit=totals.profit,
        discount_amount=totals.discount,
        payment_method=payment_method,
        created_at=created_at,
    )
    db.session.add(sale)
    db.session.commit()
    return sale.id


def _sale_item_row(sale_id: int, item: CartItem, created_at: datetime) -> SaleItem:
    totals = item.totals()
    discount = item.discount
    return SaleItem(
        sale_id=sale_id,
        product_id=None if item.product.is_synthetic else item.product.id,
        product_name=item.product.name,
        quantity=item.quantity,
        unit_price=item.product.selling_price,
        buying_price=item.product.buying_price,
        subtotal=totals.net,
        profit=totals.profit,
        discount_id=discount.id if discount else None,
        discount_type=discount.kind if discount else None,
        discount_value=discount.value if discount else None,
        discount_amount=totals.discount,
        original_subtotal=totals.gross,
        created_at=created_at,
    )


def _insert_sale_items(sale_id: int, items: list[CartItem], created_at: datetime) -> None:
    db.session.add_all([_sale_item_row(sale_id, item, created_at) for item in items])
    db.session.commit()


def _decrement_stock(product_id: int, quantity: int) -> None:
    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity - quantity)
    )
    db.session.commit()


def stock_decrements(items: list[CartItem]) -> dict[int, int]:
    """Quantity to take off each real product, in cart order."""
    totals: dict[int, int] = {}
    for item in items:
        if item.product.is_synthetic:
            continue
        totals[item.product.id] = totals.get(item.product.id, 0) + item.quantity
    return totals


@dataclass
class Checkout:
    """
    One checkout attempt for one cart.

    The staff context is passed in explicitly; the orchestrator never reads
    a global "current user".
    """
    cart: Cart
    context: StaffContext | None
    payment_method: str
    state: str = STATE_IDLE
    tendered: Decimal | None = None
    receipt: Receipt | None = None
    sale_id: int | None = None
    completed_steps: list[str] = field(default_factory=list)
    _totals: CartTotals | None = None

    @property
    def totals(self) -> CartTotals:
        if self._totals is None:
            return self.cart.totals()
        return self._totals

    def start(self) -> str:
        """
        Leave idle. Cash goes to awaiting_tender; card commits immediately.
        """
        if self.state != STATE_IDLE:
            raise CheckoutError(f"Checkout already {self.state}")
        if self.payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
        if self.cart.is_empty:
            raise CheckoutError("Cart is empty")
        require_staff(self.context)

        if self.payment_method == PAYMENT_CASH:
            self.state = STATE_AWAITING_TENDER
            return self.state

        self._commit()
        return self.state

    def preview_change(self, amount) -> dict:
        """Change for a tender amount without committing; may be 'short'."""
        return describe_change(compute_change(parse_money(amount, "tendered"), self.totals.net))

    def submit_tender(self, amount) -> Receipt:
        """
        Accept a cash amount. Below the net total the checkout stays in
        awaiting_tender and InsufficientTenderError is raised.
        """
        if self.state != STATE_AWAITING_TENDER:
            raise CheckoutError(f"Cannot accept tender while {self.state}")

        tendered = parse_money(amount, "tendered")
        change = compute_change(tendered, self.totals.net)
        if change < 0:
            raise InsufficientTenderError(
                "Insufficient cash received",
                details={"total": str(self.totals.net), **describe_change(change)},
            )

        self.tendered = tendered
        self._commit()
        return self.receipt

    def cancel(self) -> None:
        """
        Abandon before committing. Nothing was written, so nothing to undo.

        A failed checkout stays failed: its partial writes need manual
        reconciliation and must not be followed by a second attempt.
        """
        if self.state in (STATE_COMMITTING, STATE_COMPLETE, STATE_FAILED):
            raise CheckoutError(f"Cannot cancel a checkout that is {self.state}")
        self.state = STATE_IDLE
        self.tendered = None

    def _run_step(self, step: str, func, *args):
        try:
            result = func(*args)
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.state = STATE_FAILED
            current_app.logger.error(
                "Checkout failed at step %s (sale_id=%s, completed=%s): %s",
                step, self.sale_id, ",".join(self.completed_steps) or "-", exc,
            )
            raise PersistenceFailure(
                "Failed to process sale",
                step=step,
                completed_steps=self.completed_steps,
                sale_id=self.sale_id,
            ) from exc
        self.completed_steps.append(step)
        return result

    def _commit(self) -> None:
        self.state = STATE_COMMITTING
        self._totals = self.cart.totals()
        items = self.cart.snapshot()
        created_at = utcnow()
        cashier_id = self.context.user_id

        self.sale_id = self._run_step(
            STEP_SALE, _insert_sale_header, cashier_id, self._totals, self.payment_method, created_at
        )
        self._run_step(STEP_ITEMS, _insert_sale_items, self.sale_id, items, created_at)
        for product_id, quantity in stock_decrements(items).items():
            self._run_step(STEP_STOCK, _decrement_stock, product_id, quantity)

        change = None
        if self.payment_method == PAYMENT_CASH:
            change = compute_change(self.tendered, self._totals.net)

        self.receipt = Receipt(
            sale_id=self.sale_id,
            lines=[
                ReceiptLine(
                    name=item.product.name,
                    quantity=item.quantity,
                    unit_price=item.product.selling_price,
                    discount_name=item.discount.name if item.discount else None,
                    discount_amount=item.totals().discount,
                    subtotal=item.totals().net,
                )
                for item in items
            ],
            subtotal=self._totals.gross,
            total_discount=self._totals.discount,
            total=self._totals.net,
            payment_method=self.payment_method,
            created_at=created_at,
            cashier_id=cashier_id,
            cash_received=self.tendered if self.payment_method == PAYMENT_CASH else None,
            change=change,
        )
        self.state = STATE_COMPLETE
        self.cart.clear()

        current_app.logger.info(
            "Sale %s completed by user %s: total=%s method=%s lines=%d",
            self.sale_id, cashier_id, self._totals.net, self.payment_method, len(items),
        )


def checkout_cart(
    cart: Cart,
    context: StaffContext | None,
    payment_method: str,
    tendered=None,
) -> Receipt:
    """
    Run a checkout to completion in one call.

    Cash requires tendered; card ignores it.
    """
    checkout = Checkout(cart=cart, context=context, payment_method=payment_method)
    checkout.start()
    if checkout.state == STATE_AWAITING_TENDER:
        if tendered is None:
            raise ValidationError("tendered is required for cash payments")
        checkout.submit_tender(tendered)
    return checkout.receipt


__all__ = [
    "PAYMENT_CASH",
    "PAYMENT_CARD",
    "Checkout",
    "CheckoutError",
    "InsufficientTenderError",
    "PersistenceFailure",
    "Receipt",
    "ReceiptLine",
    "checkout_cart",
    "stock_decrements",
]
