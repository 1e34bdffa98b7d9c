# Overview: Flask API routes for discount operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..models import Discount
from ..permissions import MANAGE_PRODUCTS
from ..services import discount_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, ConflictError
from ..decorators import require_auth, require_capability


DISCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "kind", "value", "is_active"},
    required_on_create={"name", "kind", "value"},
)

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("")
@require_auth
def list_discounts_route():
    """
    Query params:
    - active: bool (default false) - only active discounts (what the till offers)
    """
    active_only = request.args.get("active", "false").lower() == "true"
    if not g.staff.can(MANAGE_PRODUCTS):
        active_only = True
    items = discount_service.list_discounts(active_only=active_only)
    return jsonify({"items": items, "count": len(items)}), 200


@discounts_bp.post("")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def create_discount_route():
    """
    Create a discount.

    value is a percent in (0, 100] for kind=percentage and a per-unit amount
    > 0 for kind=fixed.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=False)
        discount = discount_service.create_discount(patch=patch, actor_user_id=g.staff.user_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(discount.to_dict()), 201


@discounts_bp.put("/<int:discount_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def update_discount_route(discount_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=True)
        discount = discount_service.update_discount(
            discount_id=discount_id, patch=patch, actor_user_id=g.staff.user_id
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    if discount is None:
        return jsonify({"error": "Discount not found"}), 404
    return jsonify(discount.to_dict()), 200


@discounts_bp.post("/<int:discount_id>/toggle")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def toggle_discount_route(discount_id: int):
    discount = discount_service.toggle_discount(discount_id=discount_id, actor_user_id=g.staff.user_id)
    if discount is None:
        return jsonify({"error": "Discount not found"}), 404
    return jsonify(discount.to_dict()), 200


@discounts_bp.delete("/<int:discount_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def delete_discount_route(discount_id: int):
    try:
        deleted = discount_service.delete_discount(discount_id=discount_id, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    if not deleted:
        return jsonify({"error": "Discount not found"}), 404
    return jsonify({"ok": True}), 200
