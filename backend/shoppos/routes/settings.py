# Overview: Flask API routes for store settings; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..permissions import ACCESS_SETTINGS
from ..services import settings_service
from ..services.settings_service import SettingsValidationError
from ..decorators import require_auth, require_capability


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    """Store name and low-stock threshold; readable by all staff for receipts."""
    return jsonify(settings_service.get_settings().to_dict()), 200


@settings_bp.put("")
@require_auth
@require_capability(ACCESS_SETTINGS)
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(payload, actor_user_id=g.staff.user_id)
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(settings.to_dict()), 200
