# Overview: Flask API routes for categories, brands and refill options; parses input and returns JSON responses.

"""
Catalog reference data routes.

Reads are open to any signed-in staff member; writes require
manage_products.
"""
from flask import Blueprint, request, g

from ..services import catalog_service
from ..models import Category, RefillOption
from ..permissions import MANAGE_PRODUCTS
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_refill_option,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_capability

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "parent_id"},
    required_on_create={"name"},
)

REFILL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "volume_ml", "default_price", "is_active"},
    required_on_create={"name", "volume_ml", "default_price"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# =============================================================================
# CATEGORIES
# =============================================================================

@catalog_bp.get("/categories")
@require_auth
def list_categories():
    """Flat list plus the two-level tree."""
    return catalog_service.list_categories(), 200


@catalog_bp.post("/categories")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(patch=patch, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    return category.to_dict(), 201


@catalog_bp.put("/categories/<int:category_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = catalog_service.update_category(
            category_id=category_id, patch=patch, actor_user_id=g.staff.user_id
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    if category is None:
        return {"error": "Category not found"}, 404
    return category.to_dict(), 200


@catalog_bp.delete("/categories/<int:category_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def delete_category_route(category_id: int):
    """Rejected with 409 while the category has sub-categories."""
    try:
        deleted = catalog_service.delete_category(category_id=category_id, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    if not deleted:
        return {"error": "Category not found"}, 404
    return {"ok": True}, 200


# =============================================================================
# BRANDS
# =============================================================================

@catalog_bp.get("/brands")
@require_auth
def list_brands():
    items = catalog_service.list_brands()
    return {"items": items, "count": len(items)}, 200


@catalog_bp.post("/brands")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def create_brand_route():
    payload = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.create_brand(name=payload.get("name"), actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    return brand.to_dict(), 201


@catalog_bp.put("/brands/<int:brand_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def rename_brand_route(brand_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.rename_brand(
            brand_id=brand_id, name=payload.get("name"), actor_user_id=g.staff.user_id
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    if brand is None:
        return {"error": "Brand not found"}, 404
    return brand.to_dict(), 200


@catalog_bp.delete("/brands/<int:brand_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def delete_brand_route(brand_id: int):
    try:
        deleted = catalog_service.delete_brand(brand_id=brand_id, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    if not deleted:
        return {"error": "Brand not found"}, 404
    return {"ok": True}, 200


# =============================================================================
# REFILL OPTIONS
# =============================================================================

@catalog_bp.get("/refill-options")
@require_auth
def list_refill_options():
    """
    Query params:
    - active: bool (default true) - only active options; false lists all
      (manage_products only)
    """
    active_only = request.args.get("active", "true").lower() != "false"
    if not active_only and not g.staff.can(MANAGE_PRODUCTS):
        active_only = True
    items = catalog_service.list_refill_options(active_only=active_only)
    return {"items": items, "count": len(items)}, 200


@catalog_bp.post("/refill-options")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def create_refill_option_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=RefillOption, payload=payload, policy=REFILL_POLICY, partial=False)
        enforce_rules_refill_option(patch)
        option = catalog_service.create_refill_option(patch=patch, actor_user_id=g.staff.user_id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return option.to_dict(), 201


@catalog_bp.put("/refill-options/<int:option_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def update_refill_option_route(option_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=RefillOption, payload=payload, policy=REFILL_POLICY, partial=True)
        enforce_rules_refill_option(patch)
        option = catalog_service.update_refill_option(
            option_id=option_id, patch=patch, actor_user_id=g.staff.user_id
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    if option is None:
        return {"error": "Refill option not found"}, 404
    return option.to_dict(), 200


@catalog_bp.delete("/refill-options/<int:option_id>")
@require_auth
@require_capability(MANAGE_PRODUCTS)
def delete_refill_option_route(option_id: int):
    deleted = catalog_service.delete_refill_option(option_id=option_id, actor_user_id=g.staff.user_id)
    if not deleted:
        return {"error": "Refill option not found"}, 404
    return {"ok": True}, 200
