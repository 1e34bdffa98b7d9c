# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for staff and the activity log.

Provides endpoints for:
- Staff management (list, set role, clear role, remove)
- Role capability table (read only)
- Activity log (read only)

All endpoints require authentication and appropriate capabilities.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..permissions import (
    MANAGE_USERS,
    VIEW_ACTIVITY_LOGS,
    ROLES,
    ROLE_CAPABILITIES,
    ROLE_LABELS,
    CAPABILITY_DEFINITIONS,
)
from ..services import activity_service, auth_service, session_service
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth, require_capability

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# STAFF MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_capability(MANAGE_USERS)
def list_users():
    """Profiles with their role (null when unassigned)."""
    staff = auth_service.list_staff()
    return jsonify({"users": staff, "count": len(staff)}), 200


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_capability(MANAGE_USERS)
def set_role_route(user_id: int):
    """Body: {"role": "super_admin" | "manager" | "cashier"}"""
    data = request.get_json(silent=True) or {}
    try:
        user_role = auth_service.assign_role(user_id, data.get("role"), actor_user_id=g.staff.user_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"user_role": user_role.to_dict(), "message": "Role updated"}), 200


@admin_bp.delete("/users/<int:user_id>/role")
@require_auth
@require_capability(MANAGE_USERS)
def clear_role_route(user_id: int):
    if not auth_service.clear_role(user_id, actor_user_id=g.staff.user_id):
        return jsonify({"error": "User has no role"}), 404
    return jsonify({"message": "Role cleared"}), 200


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_capability(MANAGE_USERS)
def remove_user_route(user_id: int):
    """Remove a staff member and end their sessions."""
    try:
        removed = auth_service.remove_user(user_id, actor_user_id=g.staff.user_id)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    if not removed:
        return jsonify({"error": "User not found"}), 404

    revoked = session_service.revoke_all_user_sessions(user_id)
    current_app.logger.info("User %s removed by %s (%d sessions revoked)", user_id, g.staff.user_id, revoked)
    return jsonify({"message": "User removed", "sessions_revoked": revoked}), 200


# =============================================================================
# ROLES
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_capability(MANAGE_USERS)
def list_roles():
    """The fixed role → capability table with display names."""
    return jsonify({
        "roles": [
            {
                "role": role,
                "label": ROLE_LABELS[role],
                "capabilities": ROLE_CAPABILITIES[role].to_dict(),
            }
            for role in ROLES
        ],
        "capabilities": [
            {"code": code, "name": name, "description": description, "category": category}
            for code, name, description, category in CAPABILITY_DEFINITIONS
        ],
    }), 200


# =============================================================================
# ACTIVITY LOG
# =============================================================================

@admin_bp.get("/activity")
@require_auth
@require_capability(VIEW_ACTIVITY_LOGS)
def list_activity_route():
    """
    Query params:
    - limit: int (default 100, max 500)
    - entity_type: str (optional)
    - user_id: int (optional)
    """
    items = activity_service.list_activity(
        limit=request.args.get("limit", default=100, type=int),
        entity_type=request.args.get("entity_type"),
        user_id=request.args.get("user_id", type=int),
    )
    return jsonify({"items": items, "count": len(items)}), 200
