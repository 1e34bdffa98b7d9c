# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, Product, Profile, Sale, SaleItem
from shoppos.time_utils import (
    day_label,
    end_of_day,
    end_of_month,
    end_of_week,
    parse_iso_datetime,
    start_of_day,
    start_of_month,
    start_of_week,
    to_utc_z,
    utcnow,
)
from .pricing_service import ZERO, to_money


UNCATEGORIZED = "Uncategorized"

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIODS = (PERIOD_DAILY, PERIOD_WEEKLY, PERIOD_MONTHLY)


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


@dataclass(frozen=True)
class SalesSummary:
    total_sales: int
    total_revenue: Decimal
    total_profit: Decimal
    avg_order_value: Decimal

    def to_dict(self, *, include_profit: bool = True) -> dict:
        data = {
            "total_sales": self.total_sales,
            "total_revenue": str(self.total_revenue),
            "avg_order_value": str(self.avg_order_value),
        }
        if include_profit:
            data["total_profit"] = str(self.total_profit)
        return data


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------

def summarize_sales(sales: Iterable) -> SalesSummary:
    """
    Count, revenue, profit and average order value of sale headers.

    Each sale needs total_amount and total_profit. The average is 0 for an
    empty window.
    """
    count = 0
    revenue = ZERO
    profit = ZERO
    for sale in sales:
        count += 1
        revenue += Decimal(sale.total_amount)
        profit += Decimal(sale.total_profit)
    avg = to_money(revenue / count) if count else ZERO
    return SalesSummary(total_sales=count, total_revenue=revenue, total_profit=profit, avg_order_value=avg)


def daily_series(sales: Iterable, *, include_profit: bool = True) -> list[dict]:
    """
    Revenue, profit and sale count per calendar day label ("Jan 5").

    Buckets come out in chronological order of their first sale.
    """
    buckets: dict[str, dict] = {}
    for sale in sorted(sales, key=lambda s: s.created_at):
        key = day_label(sale.created_at)
        bucket = buckets.setdefault(key, {"revenue": ZERO, "profit": ZERO, "count": 0})
        bucket["revenue"] += Decimal(sale.total_amount)
        bucket["profit"] += Decimal(sale.total_profit)
        bucket["count"] += 1

    rows = []
    for key, bucket in buckets.items():
        row = {"date": key, "revenue": str(bucket["revenue"]), "count": bucket["count"]}
        if include_profit:
            row["profit"] = str(bucket["profit"])
        rows.append(row)
    return rows


def revenue_by_category(items: Iterable[tuple[str | None, Decimal]], top_n: int = 5) -> list[dict]:
    """
    Top-N categories by revenue.

    items are (category name, line subtotal) pairs; a missing name (no
    product, product without category, refill line) counts as Uncategorized.
    """
    totals: dict[str, Decimal] = {}
    for name, subtotal in items:
        key = name or UNCATEGORIZED
        totals[key] = totals.get(key, ZERO) + Decimal(subtotal)

    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"name": name, "value": str(value)} for name, value in ranked[:top_n]]


def period_range(period: str, today: date | None = None) -> tuple[datetime, datetime]:
    """
    Reporting window for a named period.

    daily:   the last 7 days up to the end of today
    weekly:  start of the week 28 days ago through the end of this week
    monthly: start of the month 90 days ago through the end of this month
    """
    today = today or utcnow().date()
    if period == PERIOD_DAILY:
        return start_of_day(today - timedelta(days=7)), end_of_day(today)
    if period == PERIOD_WEEKLY:
        return start_of_day(start_of_week(today - timedelta(days=28))), end_of_day(end_of_week(today))
    if period == PERIOD_MONTHLY:
        return start_of_day(start_of_month(today - timedelta(days=90))), end_of_day(end_of_month(today))
    raise ReportError(f"period must be one of {', '.join(PERIODS)}")


# ---------------------------------------------------------------------------
# Store-backed reports
# ---------------------------------------------------------------------------

def _resolve_range(
    period: str | None,
    start: str | None,
    end: str | None,
) -> tuple[datetime, datetime]:
    if start or end:
        try:
            start_dt = parse_iso_datetime(start) if start else None
            end_dt = parse_iso_datetime(end) if end else None
        except ValueError:
            raise ReportError("start and end must be ISO-8601 dates")
        if start_dt is None or end_dt is None:
            raise ReportError("start and end must be given together")
        if end_dt < start_dt:
            raise ReportError("end must not be before start")
        return start_dt, end_dt
    return period_range(period or PERIOD_DAILY)


def sales_report(
    *,
    period: str | None = None,
    start: str | None = None,
    end: str | None = None,
    include_profit: bool = True,
) -> dict:
    start_dt, end_dt = _resolve_range(period, start, end)
    top_n = current_app.config.get("REPORT_TOP_CATEGORIES", 5)

    sales = (
        db.session.query(Sale)
        .filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )

    item_rows = (
        db.session.query(Category.name, SaleItem.subtotal)
        .select_from(SaleItem)
        .outerjoin(Product, Product.id == SaleItem.product_id)
        .outerjoin(Category, Category.id == Product.category_id)
        .filter(SaleItem.created_at >= start_dt, SaleItem.created_at <= end_dt)
        .all()
    )

    return {
        "period": None if (start or end) else (period or PERIOD_DAILY),
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "summary": summarize_sales(sales).to_dict(include_profit=include_profit),
        "daily": daily_series(sales, include_profit=include_profit),
        "categories": revenue_by_category(((name, subtotal) for name, subtotal in item_rows), top_n=top_n),
    }


def dashboard_summary(*, include_profit: bool = True, include_users: bool = False) -> dict:
    """Today's sales plus catalog counts for the landing screen."""
    today = utcnow().date()
    sales = (
        db.session.query(Sale)
        .filter(Sale.created_at >= start_of_day(today), Sale.created_at <= end_of_day(today))
        .all()
    )
    summary = summarize_sales(sales)

    product_count = db.session.query(func.count(Product.id)).scalar() or 0
    low_stock_count = (
        db.session.query(func.count(Product.id))
        .filter(Product.stock_quantity <= Product.low_stock_threshold)
        .scalar()
        or 0
    )

    data = {
        "today_sales": summary.total_sales,
        "today_revenue": str(summary.total_revenue),
        "total_products": int(product_count),
        "low_stock_count": int(low_stock_count),
    }
    if include_profit:
        data["today_profit"] = str(summary.total_profit)
    if include_users:
        data["total_users"] = int(db.session.query(func.count(Profile.id)).scalar() or 0)
    return data
