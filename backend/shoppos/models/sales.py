from __future__ import annotations

from ..extensions import db
from shoppos.time_utils import to_utc_z


PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD)


def _money(value):
    return str(value) if value is not None else None


class Sale(db.Model):
    """
    Completed sale header.

    Written once by the checkout orchestrator and never updated. Totals are
    the cart totals at the moment of checkout: total_amount is the net after
    discounts, discount_amount the sum of line discounts.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CASH)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    cashier = db.relationship("User")

    def to_dict(self, *, include_profit: bool = True) -> dict:
        data = {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "total_amount": _money(self.total_amount),
            "discount_amount": _money(self.discount_amount),
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }
        if include_profit:
            data["total_profit"] = _money(self.total_profit)
        return data


class SaleItem(db.Model):
    """
    Persisted sale line.

    Name, prices and discount are copied from the cart line so the record
    stays correct after the live product or discount changes. product_id is
    null for refill/service lines.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    buying_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    profit = db.Column(db.Numeric(12, 2), nullable=False)

    # Discount snapshot
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True, index=True)
    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    original_subtotal = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))
    product = db.relationship("Product")

    def to_dict(self, *, include_buying_price: bool = True, include_profit: bool = True) -> dict:
        data = {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "subtotal": _money(self.subtotal),
            "discount_id": self.discount_id,
            "discount_type": self.discount_type,
            "discount_value": _money(self.discount_value),
            "discount_amount": _money(self.discount_amount),
            "original_subtotal": _money(self.original_subtotal),
            "created_at": to_utc_z(self.created_at),
        }
        if include_buying_price:
            data["buying_price"] = _money(self.buying_price)
        if include_profit:
            data["profit"] = _money(self.profit)
        return data
