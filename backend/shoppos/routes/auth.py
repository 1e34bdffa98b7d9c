# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Sign-up creates a login and its profile; the account has no role until
  a user with manage_users assigns one.
- Login returns an opaque bearer token for the Authorization header.
- /me returns the caller's identity, role and capability set so the client
  can hide what the role cannot do.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import Profile
from ..permissions import ROLE_LABELS
from ..services import auth_service
from ..services import session_service
from ..validation import ConflictError, ValidationError
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _identity_payload(user_id: int) -> dict:
    context = session_service.StaffContext(
        user_id=user_id,
        role=session_service.get_role(user_id),
    )
    profile = db.session.query(Profile).filter_by(user_id=user_id).first()
    return {
        "profile": profile.to_dict() if profile else None,
        "role": context.role,
        "role_label": ROLE_LABELS.get(context.role) if context.role else None,
        "capabilities": context.capabilities.to_dict(),
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Create an account.

    Body: {"email": str, "password": str, "full_name": str | null}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.sign_up(
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), **_identity_payload(user.id)}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s", email)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            **_identity_payload(user.id),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Identity, role and capabilities of the caller."""
    return jsonify({
        "user_id": g.staff.user_id,
        "email": g.staff.email,
        **_identity_payload(g.staff.user_id),
    }), 200
