"""
Checkout orchestrator tests.

Verifies:
- Cash and card flows write the sale, the items and the stock decrement
- Refill lines persist with product_id = null and touch no stock
- Insufficient tender is retryable
- A failed step leaves earlier steps committed and reports them
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from shoppos.extensions import db
from shoppos.models import Product, Sale, SaleItem
from shoppos.services import checkout_service
from shoppos.services.cart_service import Cart, CartDiscount, CartProduct
from shoppos.services.checkout_service import (
    STATE_AWAITING_TENDER,
    STATE_COMPLETE,
    STATE_FAILED,
    STATE_IDLE,
    STEP_ITEMS,
    STEP_SALE,
    STEP_STOCK,
    Checkout,
    CheckoutError,
    InsufficientTenderError,
    PersistenceFailure,
    checkout_cart,
    stock_decrements,
)
from shoppos.services.permission_service import PermissionDeniedError
from shoppos.validation import ValidationError


def cart_with(product, quantity=1, discount=None) -> Cart:
    cart = Cart()
    cart.add_item(CartProduct.from_model(product))
    cart.set_quantity(product.id, quantity)
    if discount is not None:
        cart.apply_discount(product.id, CartDiscount.from_model(discount))
    return cart


def stock_of(product_id) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


class TestCashCheckout:

    def test_two_units_with_change(self, cashier_context, product):
        cart = cart_with(product, 2)
        receipt = checkout_cart(cart, cashier_context, "cash", tendered="400")

        assert receipt.total == Decimal("300.00")
        assert receipt.cash_received == Decimal("400.00")
        assert receipt.change == Decimal("100.00")
        assert receipt.cashier_id == cashier_context.user_id
        assert cart.is_empty

        sale = db.session.get(Sale, receipt.sale_id)
        assert sale.total_amount == Decimal("300.00")
        assert sale.total_profit == Decimal("100.00")
        assert sale.payment_method == "cash"
        assert len(sale.items) == 1
        assert sale.items[0].quantity == 2
        assert stock_of(product.id) == 8

    def test_state_transitions(self, cashier_context, product):
        checkout = Checkout(cart=cart_with(product), context=cashier_context, payment_method="cash")
        assert checkout.state == STATE_IDLE
        checkout.start()
        assert checkout.state == STATE_AWAITING_TENDER
        assert checkout.preview_change("100") == {"amount": "50.00", "label": "short"}
        checkout.submit_tender("150")
        assert checkout.state == STATE_COMPLETE
        assert checkout.receipt.change == Decimal("0.00")
        assert checkout.completed_steps == [STEP_SALE, STEP_ITEMS, STEP_STOCK]

    def test_insufficient_tender_is_retryable(self, cashier_context, product):
        checkout = Checkout(cart=cart_with(product, 2), context=cashier_context, payment_method="cash")
        checkout.start()

        with pytest.raises(InsufficientTenderError) as exc:
            checkout.submit_tender("250")
        assert exc.value.details == {"total": "300.00", "amount": "50.00", "label": "short"}
        assert checkout.state == STATE_AWAITING_TENDER
        assert db.session.query(Sale).count() == 0

        receipt = checkout.submit_tender("300")
        assert receipt.change == Decimal("0.00")

    def test_cash_without_tender(self, cashier_context, product):
        with pytest.raises(ValidationError):
            checkout_cart(cart_with(product), cashier_context, "cash")

    def test_cancel_before_tender(self, cashier_context, product):
        cart = cart_with(product)
        checkout = Checkout(cart=cart, context=cashier_context, payment_method="cash")
        checkout.start()
        checkout.cancel()
        assert checkout.state == STATE_IDLE
        assert not cart.is_empty
        assert db.session.query(Sale).count() == 0

    def test_cannot_cancel_completed(self, cashier_context, product):
        checkout = Checkout(cart=cart_with(product), context=cashier_context, payment_method="card")
        checkout.start()
        with pytest.raises(CheckoutError):
            checkout.cancel()


class TestCardCheckout:

    def test_card_commits_immediately_with_discount(self, cashier_context, product, ten_percent):
        receipt = checkout_cart(cart_with(product, 1, ten_percent), cashier_context, "card")

        assert receipt.subtotal == Decimal("150.00")
        assert receipt.total_discount == Decimal("15.00")
        assert receipt.total == Decimal("135.00")
        assert receipt.cash_received is None
        assert receipt.change is None
        assert receipt.lines[0].discount_name == "10% Off"

        item = db.session.query(SaleItem).one()
        assert item.discount_id == ten_percent.id
        assert item.discount_type == "percentage"
        assert item.discount_amount == Decimal("15.00")
        assert item.original_subtotal == Decimal("150.00")
        assert item.subtotal == Decimal("135.00")
        assert item.profit == Decimal("35.00")

    def test_refill_line(self, cashier_context, product, refill_option):
        cart = cart_with(product)
        cart.add_refill(refill_option)
        receipt = checkout_cart(cart, cashier_context, "card")

        assert receipt.total == Decimal("400.00")
        refill_item = db.session.query(SaleItem).filter(SaleItem.product_id.is_(None)).one()
        assert refill_item.product_name == "2 ml Refill"
        assert refill_item.buying_price == Decimal("0.00")
        assert stock_of(product.id) == 9

    def test_roleless_staff_can_sell(self, roleless_context, product):
        receipt = checkout_cart(cart_with(product), roleless_context, "card")
        assert receipt.sale_id is not None


class TestRejections:

    def test_empty_cart(self, cashier_context):
        with pytest.raises(CheckoutError, match="Cart is empty"):
            checkout_cart(Cart(), cashier_context, "card")

    def test_no_staff_context(self, product):
        with pytest.raises(PermissionDeniedError):
            checkout_cart(cart_with(product), None, "card")
        assert db.session.query(Sale).count() == 0

    def test_unknown_payment_method(self, cashier_context, product):
        with pytest.raises(ValidationError):
            checkout_cart(cart_with(product), cashier_context, "cheque")

    def test_start_twice(self, cashier_context, product):
        checkout = Checkout(cart=cart_with(product), context=cashier_context, payment_method="cash")
        checkout.start()
        with pytest.raises(CheckoutError):
            checkout.start()


class TestPartialFailure:

    def test_items_step_failure_keeps_sale_header(self, monkeypatch, cashier_context, product):
        def broken(*args):
            raise OperationalError("INSERT INTO sale_items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(checkout_service, "_insert_sale_items", broken)
        cart = cart_with(product, 2)
        checkout = Checkout(cart=cart, context=cashier_context, payment_method="card")

        with pytest.raises(PersistenceFailure) as exc:
            checkout.start()

        failure = exc.value
        assert failure.step == STEP_ITEMS
        assert failure.completed_steps == [STEP_SALE]
        assert failure.sale_id is not None
        assert failure.details["step"] == "items"
        assert checkout.state == STATE_FAILED

        # The header committed before the failure and is not rolled back
        assert db.session.get(Sale, failure.sale_id) is not None
        assert db.session.query(SaleItem).count() == 0
        assert stock_of(product.id) == 10
        assert not cart.is_empty

    def test_failed_checkout_cannot_be_restarted(self, monkeypatch, cashier_context, product):
        def broken(*args):
            raise OperationalError("INSERT INTO sale_items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(checkout_service, "_insert_sale_items", broken)
        checkout = Checkout(cart=cart_with(product), context=cashier_context, payment_method="card")
        with pytest.raises(PersistenceFailure):
            checkout.start()
        monkeypatch.undo()

        with pytest.raises(CheckoutError):
            checkout.cancel()
        with pytest.raises(CheckoutError):
            checkout.start()

        assert checkout.state == STATE_FAILED
        assert db.session.query(Sale).count() == 1

    def test_stock_step_failure(self, monkeypatch, cashier_context, product):
        def broken(*args):
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        monkeypatch.setattr(checkout_service, "_decrement_stock", broken)

        with pytest.raises(PersistenceFailure) as exc:
            checkout_cart(cart_with(product), cashier_context, "card")

        assert exc.value.step == STEP_STOCK
        assert exc.value.completed_steps == [STEP_SALE, STEP_ITEMS]
        assert db.session.query(SaleItem).count() == 1
        assert stock_of(product.id) == 10


class TestStockDecrements:

    def test_skips_refills_and_groups_by_product(self, refill_option):
        cart = Cart()
        cart.add_item(CartProduct(id=1, name="A", selling_price=Decimal("1"), stock_quantity=10))
        cart.add_refill(refill_option)
        cart.add_item(CartProduct(id=2, name="B", selling_price=Decimal("1"), stock_quantity=10))
        cart.set_quantity(1, 3)
        assert stock_decrements(cart.snapshot()) == {1: 3, 2: 1}
