# Overview: Flask API routes for cart pricing and checkout; parses input and returns JSON responses.

"""
Checkout API

The cart lives on the till; each request carries it as a list of lines:

    {"product_id": 3, "quantity": 2, "discount_id": 1}
    {"refill_option_id": 2, "price": "275.00"}

POST /quote prices the cart (and previews change for a cash amount) without
writing anything. POST / runs the checkout and returns the receipt.

A 502 means a write failed part-way: the response names the failed step,
the steps that did commit and the sale id, for manual reconciliation.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..permissions import VIEW_BUYING_PRICE, VIEW_PROFIT
from ..services.cart_service import CartError, StockConflictError, build_cart
from ..services.checkout_service import (
    Checkout,
    CheckoutError,
    InsufficientTenderError,
    PersistenceFailure,
    checkout_cart,
)
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError
from ..decorators import require_auth


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _error(e: Exception, status: int):
    body = {"error": str(e)}
    details = getattr(e, "details", None)
    if details:
        body["details"] = details
    return jsonify(body), status


@checkout_bp.post("/quote")
@require_auth
def quote_route():
    """
    Price a cart.

    Body: {"items": [...], "payment_method": "cash" | "card", "tendered": number | null}
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = build_cart(data.get("items") or [])
        body = cart.to_dict(
            include_buying_price=g.staff.can(VIEW_BUYING_PRICE),
            include_profit=g.staff.can(VIEW_PROFIT),
        )
        if data.get("tendered") is not None:
            checkout = Checkout(cart=cart, context=g.staff, payment_method=data.get("payment_method") or "cash")
            body["change"] = checkout.preview_change(data["tendered"])
    except ValidationError as e:
        return _error(e, 400)
    except StockConflictError as e:
        return _error(e, 409)
    except CartError as e:
        return _error(e, 400)

    return jsonify(body), 200


@checkout_bp.post("")
@require_auth
def checkout_route():
    """
    Complete a sale.

    Body: {"items": [...], "payment_method": "cash" | "card", "tendered": number}
    tendered is required for cash.
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = build_cart(data.get("items") or [])
        receipt = checkout_cart(
            cart,
            g.staff,
            data.get("payment_method"),
            tendered=data.get("tendered"),
        )
    except ValidationError as e:
        return _error(e, 400)
    except StockConflictError as e:
        return _error(e, 409)
    except CartError as e:
        return _error(e, 400)
    except PermissionDeniedError as e:
        return _error(e, 403)
    except InsufficientTenderError as e:
        return _error(e, 400)
    except PersistenceFailure as e:
        return _error(e, 502)
    except CheckoutError as e:
        return _error(e, 400)
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"receipt": receipt.to_dict(), "message": "Sale completed successfully!"}), 201
