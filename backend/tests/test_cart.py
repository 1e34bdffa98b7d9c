"""
Cart state manager tests.

Most tests build CartProduct snapshots by hand; build_cart tests go through
the database fixtures.
"""

from decimal import Decimal

import pytest

from shoppos.services.cart_service import (
    Cart,
    CartDiscount,
    CartError,
    CartProduct,
    StockConflictError,
    build_cart,
)
from shoppos.validation import ValidationError


def snapshot(product_id, price="10.00", cost="6.00", stock=5, name=None) -> CartProduct:
    return CartProduct(
        id=product_id,
        name=name or f"Product {product_id}",
        selling_price=Decimal(price),
        buying_price=Decimal(cost),
        stock_quantity=stock,
    )


class TestAddItem:

    def test_new_line_starts_at_one(self):
        cart = Cart()
        item = cart.add_item(snapshot(1))
        assert item.quantity == 1
        assert item.discount is None
        assert len(cart) == 1

    def test_adding_again_increments(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.add_item(snapshot(1))
        assert len(cart) == 1
        assert cart.find(1).quantity == 2

    def test_stock_ceiling_leaves_cart_unchanged(self):
        cart = Cart()
        cart.add_item(snapshot(1, stock=2))
        cart.add_item(snapshot(1, stock=2))
        with pytest.raises(StockConflictError) as exc:
            cart.add_item(snapshot(1, stock=2))
        assert exc.value.details["requested_quantity"] == 3
        assert exc.value.details["stock_quantity"] == 2
        assert cart.find(1).quantity == 2

    def test_out_of_stock_product_cannot_be_added(self):
        cart = Cart()
        with pytest.raises(StockConflictError):
            cart.add_item(snapshot(1, stock=0))
        assert cart.is_empty

    def test_insertion_order_is_preserved(self):
        cart = Cart()
        for pid in (3, 1, 2):
            cart.add_item(snapshot(pid))
        cart.add_item(snapshot(1))
        assert [item.product.id for item in cart.items] == [3, 1, 2]


class TestQuantity:

    def test_set_quantity(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.set_quantity(1, 4)
        assert cart.find(1).quantity == 4

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_removes_line(self, quantity):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.add_item(snapshot(2))
        assert cart.set_quantity(1, quantity) is None
        assert [item.product.id for item in cart.items] == [2]

    def test_set_above_stock_rejected(self):
        cart = Cart()
        cart.add_item(snapshot(1, stock=3))
        with pytest.raises(StockConflictError):
            cart.set_quantity(1, 4)
        assert cart.find(1).quantity == 1

    def test_adjust_quantity(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.adjust_quantity(1, +2)
        assert cart.find(1).quantity == 3
        cart.adjust_quantity(1, -3)
        assert cart.is_empty

    def test_unknown_line(self):
        with pytest.raises(CartError):
            Cart().set_quantity(99, 1)

    def test_remove_item(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.remove_item(1)
        assert cart.is_empty


class TestDiscounts:

    def test_apply_replace_and_clear(self):
        cart = Cart()
        cart.add_item(snapshot(1, price="100.00"))
        ten = CartDiscount(id=1, name="10%", kind="percentage", value=Decimal("10"))
        five_off = CartDiscount(id=2, name="5 off", kind="fixed", value=Decimal("5"))

        cart.apply_discount(1, ten)
        assert cart.totals().discount == Decimal("10.00")

        cart.apply_discount(1, five_off)
        assert cart.find(1).discount is five_off
        assert cart.totals().discount == Decimal("5.00")

        cart.apply_discount(1, None)
        assert cart.totals().discount == Decimal("0.00")


class TestTotals:

    def test_totals_and_item_count(self):
        cart = Cart()
        cart.add_item(snapshot(1, price="150.00", cost="100.00"))
        cart.set_quantity(1, 2)
        cart.add_item(snapshot(2, price="50.00", cost="20.00"))
        totals = cart.totals()
        assert totals.gross == Decimal("350.00")
        assert totals.net == Decimal("350.00")
        assert totals.profit == Decimal("130.00")
        assert totals.item_count == 3

    def test_to_dict_hides_cost_and_profit(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        data = cart.to_dict(include_buying_price=False, include_profit=False)
        line = data["items"][0]
        assert "buying_price" not in line["product"]
        assert "profit" not in line
        assert "profit" not in data["totals"]

    def test_clear(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        snap = cart.snapshot()
        cart.clear()
        assert cart.is_empty
        assert len(snap) == 1


class TestRefills:

    def test_refill_has_no_stock_ceiling(self, refill_option):
        cart = Cart()
        item = cart.add_refill(refill_option)
        assert item.product.is_synthetic
        assert item.product.buying_price == Decimal("0.00")
        cart.set_quantity(item.product.id, 500)
        assert cart.find(item.product.id).quantity == 500

    def test_each_refill_is_its_own_line(self, refill_option):
        cart = Cart()
        cart.add_refill(refill_option)
        cart.add_refill(refill_option)
        assert len(cart) == 2

    def test_custom_price(self, refill_option):
        item = Cart().add_refill(refill_option, Decimal("300.00"))
        assert item.product.name == "2 ml Refill (Custom)"
        assert item.product.selling_price == Decimal("300.00")

    def test_custom_price_must_be_positive(self, refill_option):
        with pytest.raises(ValidationError):
            Cart().add_refill(refill_option, Decimal("0"))


class TestBuildCart:

    def test_products_refills_and_discounts(self, product, refill_option, ten_percent):
        cart = build_cart([
            {"product_id": product.id, "quantity": 2, "discount_id": ten_percent.id},
            {"refill_option_id": refill_option.id},
        ])
        assert len(cart) == 2
        totals = cart.totals()
        assert totals.gross == Decimal("550.00")
        assert totals.discount == Decimal("30.00")
        assert totals.net == Decimal("520.00")

    def test_quantity_over_stock(self, product):
        with pytest.raises(StockConflictError):
            build_cart([{"product_id": product.id, "quantity": 11}])

    def test_unknown_product(self, db_session):
        with pytest.raises(CartError):
            build_cart([{"product_id": 12345}])

    def test_inactive_discount(self, db_session, product, ten_percent):
        ten_percent.is_active = False
        db_session.commit()
        with pytest.raises(CartError):
            build_cart([{"product_id": product.id, "discount_id": ten_percent.id}])

    @pytest.mark.parametrize("payload", [
        "not a list",
        [42],
        [{"quantity": 1}],
    ])
    def test_malformed_payload(self, db_session, payload):
        with pytest.raises(ValidationError):
            build_cart(payload)

    def test_refill_quantity(self, refill_option):
        cart = build_cart([{"refill_option_id": refill_option.id, "quantity": 3}])
        assert cart.items[0].quantity == 3
        assert cart.totals().net == Decimal("750.00")

    def test_duplicate_product_entries_rejected(self, product):
        with pytest.raises(ValidationError):
            build_cart([
                {"product_id": product.id, "quantity": 2},
                {"product_id": product.id, "quantity": 3},
            ])

    def test_zero_quantity_rejected(self, product):
        with pytest.raises(ValidationError):
            build_cart([{"product_id": product.id, "quantity": 0}])
