# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to any signed-in staff member (the till needs them)
- buying_price is only returned to holders of view_buying_price
- Write operations require manage_products
"""
from flask import Blueprint, request, g, current_app

from ..services import catalog_service
from ..models import Product
from ..permissions import MANAGE_PRODUCTS, VIEW_BUYING_PRICE
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_capability

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "barcode", "category_id", "brand_id",
        "buying_price", "selling_price", "stock_quantity", "low_stock_threshold",
    },
    required_on_create={"name", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _show_cost() -> bool:
    return g.staff.can(VIEW_BUYING_PRICE)


@products_bp.get("")
@require_auth
def list_products():
    """
    List products.

    Query params:
    - search: str (optional) - case-insensitive match on name or barcode
    - category_id: int (optional) - category and its sub-categories
    - brand_id: int (optional)
    - low_stock: bool (optional) - only products at or below their threshold
    """
    return catalog_service.list_products(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        brand_id=request.args.get("brand_id", type=int),
        low_stock_only=request.args.get("low_stock", "false").lower() == "true",
        include_buying_price=_show_cost(),
    )


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict(include_buying_price=_show_cost()), 200


@products_bp.post("")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def create_product_route():
    """
    Create a new product.

    Requires manage_products.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def update_product_route(product_id: int):
    """
    Update a product. Only the fields present in the body change.

    Requires manage_products.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(
            product_id=product_id, patch=patch, actor_user_id=g.staff.user_id
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    if not updated:
        return {"error": "Product not found"}, 404

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def delete_product_route(product_id: int):
    """
    Delete a product that has never been sold.

    Requires manage_products.
    """
    try:
        deleted = catalog_service.delete_product(product_id=product_id, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409

    if not deleted:
        return {"error": "Product not found"}, 404

    return {"ok": True}, 200
