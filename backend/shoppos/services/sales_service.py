"""
Sales history

WHY: Sales are written once by checkout and read here. Staff without
view_reports only see their own sales; buying price and profit fields are
dropped for callers without view_buying_price / view_profit.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale, Profile
from ..permissions import VIEW_BUYING_PRICE, VIEW_PROFIT, VIEW_REPORTS
from .session_service import StaffContext
from shoppos.time_utils import parse_iso_datetime


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _cashier_names(cashier_ids: set[int]) -> dict[int, str]:
    if not cashier_ids:
        return {}
    rows = db.session.query(Profile.user_id, Profile.full_name).filter(Profile.user_id.in_(cashier_ids)).all()
    return {user_id: name for user_id, name in rows}


def serialize_sale(sale: Sale, context: StaffContext, *, with_items: bool = False, cashier_name: str | None = None) -> dict:
    include_profit = context.can(VIEW_PROFIT)
    data = sale.to_dict(include_profit=include_profit)
    data["cashier_name"] = cashier_name
    if with_items:
        data["items"] = [
            item.to_dict(
                include_buying_price=context.can(VIEW_BUYING_PRICE),
                include_profit=include_profit,
            )
            for item in sale.items
        ]
    return data


def list_sales(
    context: StaffContext,
    *,
    start: str | None = None,
    end: str | None = None,
    cashier_id: int | None = None,
    limit: int = 100,
) -> dict:
    """
    Most recent sales first.

    Without view_reports the cashier filter is forced to the caller.
    """
    if not context.can(VIEW_REPORTS):
        cashier_id = context.user_id

    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise SaleError("start and end must be ISO-8601 dates")

    q = db.session.query(Sale)
    if cashier_id is not None:
        q = q.filter(Sale.cashier_id == cashier_id)
    if start_dt:
        q = q.filter(Sale.created_at >= start_dt)
    if end_dt:
        q = q.filter(Sale.created_at <= end_dt)

    limit = min(max(limit, 1), 500)
    sales = q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
    names = _cashier_names({s.cashier_id for s in sales})
    return {
        "items": [serialize_sale(s, context, cashier_name=names.get(s.cashier_id)) for s in sales],
        "count": len(sales),
    }


def get_sale(context: StaffContext, sale_id: int) -> dict | None:
    """A sale with its items, or None when missing or not visible to the caller."""
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        return None
    if not context.can(VIEW_REPORTS) and sale.cashier_id != context.user_id:
        return None
    names = _cashier_names({sale.cashier_id})
    return serialize_sale(sale, context, with_items=True, cashier_name=names.get(sale.cashier_id))
