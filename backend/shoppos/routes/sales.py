# Overview: Flask API routes for sales history; parses input and returns JSON responses.

"""Sales history routes. Sales are created only through /api/checkout."""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..services.sales_service import SaleError
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Recent sales, newest first.

    Staff without view_reports only see their own sales.

    Query params:
    - start, end: ISO-8601 (optional)
    - cashier_id: int (optional, ignored without view_reports)
    - limit: int (default 100, max 500)
    """
    try:
        result = sales_service.list_sales(
            g.staff,
            start=request.args.get("start"),
            end=request.args.get("end"),
            cashier_id=request.args.get("cashier_id", type=int),
            limit=request.args.get("limit", default=100, type=int),
        )
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    return jsonify(result), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale with items."""
    sale = sales_service.get_sale(g.staff, sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale}), 200
