# Overview: In-memory cart for one staff session; enforces the per-line stock ceiling.

"""
Cart State Manager

WHY: The cart is owned by a single till session and never persisted. It
holds product snapshots, so prices are the ones the cashier saw when the
item was scanned. Stock checks here are optimistic: they compare against
the stock value in the snapshot and are not re-checked at commit.

Refill services become synthetic products (ephemeral id, cost 0, no stock
ceiling) and get product_id = null once persisted as a sale item.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from decimal import Decimal

from ..extensions import db
from ..models import Product, Discount, RefillOption
from ..validation import ValidationError, parse_int, parse_money
from .pricing_service import CartTotals, LineTotals, cart_totals, line_totals


class CartError(Exception):
    """Raised for cart operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StockConflictError(CartError):
    """Requested quantity exceeds the known stock. The cart is unchanged."""


REFILL_ID_PREFIX = "refill-"


@dataclass(frozen=True)
class CartProduct:
    """
    Product snapshot held by a cart line.

    stock_quantity is None for synthetic (service) products, meaning no
    ceiling applies.
    """
    id: int | str
    name: str
    selling_price: Decimal
    buying_price: Decimal = Decimal("0.00")
    stock_quantity: int | None = None
    barcode: str | None = None
    category_id: int | None = None
    brand_id: int | None = None
    refill_option_id: int | None = None

    @property
    def is_synthetic(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith(REFILL_ID_PREFIX)

    @classmethod
    def from_model(cls, product: Product) -> "CartProduct":
        return cls(
            id=product.id,
            name=product.name,
            selling_price=Decimal(product.selling_price),
            buying_price=Decimal(product.buying_price),
            stock_quantity=product.stock_quantity,
            barcode=product.barcode,
            category_id=product.category_id,
            brand_id=product.brand_id,
        )

    def to_dict(self, *, include_buying_price: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "selling_price": str(self.selling_price),
            "stock_quantity": self.stock_quantity,
            "is_synthetic": self.is_synthetic,
            "refill_option_id": self.refill_option_id,
        }
        if include_buying_price:
            data["buying_price"] = str(self.buying_price)
        return data


@dataclass(frozen=True)
class CartDiscount:
    """Discount snapshot applied to one cart line."""
    id: int | None
    name: str
    kind: str
    value: Decimal

    @classmethod
    def from_model(cls, discount: Discount) -> "CartDiscount":
        return cls(
            id=discount.id,
            name=discount.name,
            kind=discount.kind,
            value=Decimal(discount.value),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "kind": self.kind, "value": str(self.value)}


@dataclass
class CartItem:
    product: CartProduct
    quantity: int = 1
    discount: CartDiscount | None = None

    def totals(self) -> LineTotals:
        return line_totals(
            self.product.selling_price,
            self.product.buying_price,
            self.quantity,
            self.discount,
        )

    def to_dict(self, *, include_buying_price: bool = True, include_profit: bool = True) -> dict:
        totals = self.totals()
        data = {
            "product": self.product.to_dict(include_buying_price=include_buying_price),
            "quantity": self.quantity,
            "discount": self.discount.to_dict() if self.discount else None,
            "gross": str(totals.gross),
            "discount_amount": str(totals.discount),
            "net": str(totals.net),
        }
        if include_profit:
            data["profit"] = str(totals.profit)
        return data


def make_refill_product(option: RefillOption, price: Decimal | None = None) -> CartProduct:
    """
    Turn a refill option into a synthetic cart product.

    A custom price replaces the option's default price and marks the line
    name with "(Custom)".
    """
    name = option.name
    selling_price = Decimal(option.default_price)
    if price is not None:
        if price <= 0:
            raise ValidationError("Please enter a valid price")
        name = f"{option.name} (Custom)"
        selling_price = price
    return CartProduct(
        id=f"{REFILL_ID_PREFIX}{secrets.token_hex(8)}",
        name=name,
        selling_price=selling_price,
        buying_price=Decimal("0.00"),
        stock_quantity=None,
        refill_option_id=option.id,
    )


@dataclass
class Cart:
    """Ordered list of cart lines, keyed by product id."""
    items: list[CartItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find(self, product_id) -> CartItem | None:
        for item in self.items:
            if item.product.id == product_id:
                return item
        return None

    def _require(self, product_id) -> CartItem:
        item = self.find(product_id)
        if item is None:
            raise CartError("Item not in cart", details={"product_id": product_id})
        return item

    @staticmethod
    def _check_stock(product: CartProduct, quantity: int) -> None:
        if product.stock_quantity is None:
            return
        if quantity > product.stock_quantity:
            raise StockConflictError(
                "Not enough stock available",
                details={
                    "product_id": product.id,
                    "requested_quantity": quantity,
                    "stock_quantity": product.stock_quantity,
                },
            )

    def add_item(self, product: CartProduct) -> CartItem:
        existing = self.find(product.id)
        if existing is not None:
            self._check_stock(existing.product, existing.quantity + 1)
            existing.quantity += 1
            return existing

        self._check_stock(product, 1)
        item = CartItem(product=product, quantity=1, discount=None)
        self.items.append(item)
        return item

    def set_quantity(self, product_id, quantity: int) -> CartItem | None:
        """
        Set an absolute quantity. Returns the line, or None when the line
        was removed because quantity <= 0.
        """
        item = self._require(product_id)
        if quantity <= 0:
            self.remove_item(product_id)
            return None
        self._check_stock(item.product, quantity)
        item.quantity = quantity
        return item

    def adjust_quantity(self, product_id, delta: int) -> CartItem | None:
        item = self._require(product_id)
        return self.set_quantity(product_id, item.quantity + delta)

    def remove_item(self, product_id) -> None:
        self._require(product_id)
        self.items = [item for item in self.items if item.product.id != product_id]

    def apply_discount(self, product_id, discount: CartDiscount | None) -> CartItem:
        item = self._require(product_id)
        item.discount = discount
        return item

    def add_refill(self, option: RefillOption, price: Decimal | None = None) -> CartItem:
        return self.add_item(make_refill_product(option, price))

    def clear(self) -> None:
        self.items = []

    def line_totals(self) -> list[LineTotals]:
        return [item.totals() for item in self.items]

    def totals(self) -> CartTotals:
        return cart_totals(
            self.line_totals(),
            item_count=sum(item.quantity for item in self.items),
        )

    def snapshot(self) -> list[CartItem]:
        """Detached copy of the lines (used for receipts)."""
        return [replace(item) for item in self.items]

    def to_dict(self, *, include_buying_price: bool = True, include_profit: bool = True) -> dict:
        return {
            "items": [
                item.to_dict(include_buying_price=include_buying_price, include_profit=include_profit)
                for item in self.items
            ],
            "totals": self.totals().to_dict(include_profit=include_profit),
        }


def build_cart(lines: list) -> Cart:
    """
    Rebuild a cart from a client payload.

    Each entry is either
      {"product_id": int, "quantity": int, "discount_id": int | null}
    or
      {"refill_option_id": int, "quantity": int, "price": number | null, "discount_id": ...}

    Quantities go through add_item/set_quantity so the stock ceiling is
    applied exactly as at the till. A product may appear on one entry only.
    Only active discounts and active refill options can be used.
    """
    if not isinstance(lines, list):
        raise ValidationError("items must be a list")

    cart = Cart()
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        quantity = parse_int(raw.get("quantity", 1), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be at least 1")

        if raw.get("refill_option_id") is not None:
            option_id = parse_int(raw["refill_option_id"], f"items[{index}].refill_option_id")
            option = db.session.get(RefillOption, option_id)
            if option is None or not option.is_active:
                raise CartError("Refill option not available", details={"refill_option_id": option_id})
            price = raw.get("price")
            item = cart.add_refill(
                option,
                parse_money(price, f"items[{index}].price") if price is not None else None,
            )
        else:
            if raw.get("product_id") is None:
                raise ValidationError(f"items[{index}] needs product_id or refill_option_id")
            product_id = parse_int(raw["product_id"], f"items[{index}].product_id")
            if cart.find(product_id) is not None:
                raise ValidationError(
                    f"items[{index}]: product {product_id} is already in the cart; send one line per product"
                )
            product = db.session.get(Product, product_id)
            if product is None:
                raise CartError("Product not found", details={"product_id": product_id})
            item = cart.add_item(CartProduct.from_model(product))

        cart.set_quantity(item.product.id, quantity)

        discount_id = raw.get("discount_id")
        if discount_id is not None:
            discount_id = parse_int(discount_id, f"items[{index}].discount_id")
            discount = db.session.get(Discount, discount_id)
            if discount is None or not discount.is_active:
                raise CartError("Discount not available", details={"discount_id": discount_id})
            cart.apply_discount(item.product.id, CartDiscount.from_model(discount))

    return cart
