"""
Reporting tests.

The aggregation functions are pure and take simple rows; the store-backed
report is checked once end to end.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from shoppos.extensions import db
from shoppos.models import Product, Sale, SaleItem
from shoppos.services import reporting_service
from shoppos.services.reporting_service import (
    ReportError,
    UNCATEGORIZED,
    daily_series,
    period_range,
    revenue_by_category,
    summarize_sales,
)
from shoppos.time_utils import utcnow


def sale_row(amount, profit, created_at):
    return SimpleNamespace(
        total_amount=Decimal(amount),
        total_profit=Decimal(profit),
        created_at=created_at,
    )


class TestSummary:

    def test_empty_window(self):
        summary = summarize_sales([])
        assert summary.total_sales == 0
        assert summary.total_revenue == Decimal("0.00")
        assert summary.avg_order_value == Decimal("0.00")

    def test_average_rounds_to_cent(self):
        summary = summarize_sales([
            sale_row("10.00", "2.00", datetime(2024, 1, 5, 9)),
            sale_row("10.00", "2.00", datetime(2024, 1, 5, 10)),
            sale_row("15.00", "3.00", datetime(2024, 1, 6, 11)),
        ])
        assert summary.total_sales == 3
        assert summary.total_revenue == Decimal("35.00")
        assert summary.total_profit == Decimal("7.00")
        assert summary.avg_order_value == Decimal("11.67")

    def test_profit_hidden(self):
        data = summarize_sales([sale_row("1.00", "0.50", datetime(2024, 1, 1))]).to_dict(include_profit=False)
        assert "total_profit" not in data


class TestDailySeries:

    def test_buckets_in_chronological_order(self):
        rows = daily_series([
            sale_row("30.00", "5.00", datetime(2024, 2, 1, 12)),
            sale_row("10.00", "1.00", datetime(2024, 1, 31, 8)),
            sale_row("20.00", "4.00", datetime(2024, 1, 31, 18)),
        ])
        assert rows == [
            {"date": "Jan 31", "revenue": "30.00", "count": 2, "profit": "5.00"},
            {"date": "Feb 1", "revenue": "30.00", "count": 1, "profit": "5.00"},
        ]

    def test_without_profit(self):
        rows = daily_series([sale_row("1.00", "1.00", datetime(2024, 3, 9))], include_profit=False)
        assert rows == [{"date": "Mar 9", "revenue": "1.00", "count": 1}]


class TestRevenueByCategory:

    def test_missing_category_is_uncategorized(self):
        result = revenue_by_category([(None, Decimal("40.00")), ("Devices", Decimal("10.00")), (None, Decimal("5.00"))])
        assert result == [
            {"name": UNCATEGORIZED, "value": "45.00"},
            {"name": "Devices", "value": "10.00"},
        ]

    def test_top_five_with_name_tiebreak(self):
        items = [(f"Cat {c}", Decimal("10.00")) for c in "FEDCBA"]
        items.append(("Cat Z", Decimal("99.00")))
        result = revenue_by_category(items)
        assert [r["name"] for r in result] == ["Cat Z", "Cat A", "Cat B", "Cat C", "Cat D"]


class TestPeriodRange:

    # 2024-05-15 is a Wednesday
    TODAY = date(2024, 5, 15)

    def test_daily(self):
        start, end = period_range("daily", self.TODAY)
        assert start == datetime(2024, 5, 8, 0, 0)
        assert end.date() == self.TODAY
        assert end.hour == 23 and end.minute == 59

    def test_weekly_starts_on_sunday(self):
        start, end = period_range("weekly", self.TODAY)
        # 28 days earlier is Wed 2024-04-17; its week starts Sun 2024-04-14
        assert start == datetime(2024, 4, 14)
        assert end.date() == date(2024, 5, 18)

    def test_monthly(self):
        start, end = period_range("monthly", self.TODAY)
        # 90 days earlier is 2024-02-15
        assert start == datetime(2024, 2, 1)
        assert end.date() == date(2024, 5, 31)

    def test_unknown_period(self):
        with pytest.raises(ReportError):
            period_range("yearly", self.TODAY)


class TestSalesReport:

    def test_end_to_end(self, cashier_user, product, second_product):
        now = utcnow()
        sale = Sale(
            cashier_id=cashier_user.id,
            total_amount=Decimal("400.00"),
            total_profit=Decimal("130.00"),
            discount_amount=Decimal("0.00"),
            created_at=now,
        )
        db.session.add(sale)
        db.session.flush()
        for p, qty in ((product, 2), (second_product, 2)):
            db.session.add(SaleItem(
                sale_id=sale.id, product_id=p.id, product_name=p.name, quantity=qty,
                unit_price=p.selling_price, buying_price=p.buying_price,
                subtotal=p.selling_price * qty, profit=(p.selling_price - p.buying_price) * qty,
                created_at=now,
            ))
        old = Sale(
            cashier_id=cashier_user.id,
            total_amount=Decimal("999.00"),
            total_profit=Decimal("1.00"),
            discount_amount=Decimal("0.00"),
            created_at=now - timedelta(days=30),
        )
        db.session.add(old)
        db.session.commit()

        report = reporting_service.sales_report(period="daily")
        assert report["period"] == "daily"
        assert report["summary"]["total_sales"] == 1
        assert report["summary"]["total_revenue"] == "400.00"
        assert report["summary"]["avg_order_value"] == "400.00"
        assert report["categories"] == [
            {"name": "Flavour Bottles", "value": "300.00"},
            {"name": UNCATEGORIZED, "value": "100.00"},
        ]

        hidden = reporting_service.sales_report(period="daily", include_profit=False)
        assert "total_profit" not in hidden["summary"]

    def test_explicit_range_validation(self, db_session):
        with pytest.raises(ReportError):
            reporting_service.sales_report(start="2024-01-01")
        with pytest.raises(ReportError):
            reporting_service.sales_report(start="2024-02-01", end="2024-01-01")
        with pytest.raises(ReportError):
            reporting_service.sales_report(start="yesterday", end="today")

    def test_dashboard(self, admin_user, product, second_product):
        data = reporting_service.dashboard_summary(include_profit=False, include_users=True)
        assert data["today_sales"] == 0
        assert data["total_products"] == 2
        assert data["low_stock_count"] == 1
        assert data["total_users"] == 1
        assert "today_profit" not in data
        assert db.session.query(Product).count() == 2
