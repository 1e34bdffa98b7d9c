# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..permissions import MANAGE_USERS, VIEW_PROFIT, VIEW_REPORTS
from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_capability


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
@require_capability(VIEW_REPORTS)
def sales_report_route():
    """
    Summary, per-day series and top categories for a window.

    Query params:
    - period: daily | weekly | monthly (default daily)
    - start, end: ISO-8601; both together override period
    """
    try:
        report = reporting_service.sales_report(
            period=request.args.get("period"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            include_profit=g.staff.can(VIEW_PROFIT),
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    """Today's figures. Profit and staff count follow the caller's capabilities."""
    return jsonify(reporting_service.dashboard_summary(
        include_profit=g.staff.can(VIEW_PROFIT),
        include_users=g.staff.can(MANAGE_USERS),
    )), 200
