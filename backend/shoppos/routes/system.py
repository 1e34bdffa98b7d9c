# Overview: Flask API routes for system health and version.

"""
System health and version endpoints.

Health checks query the store directly; no authentication is required.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, SessionToken, StoreSettings, User, UserRole
from ..permissions import SUPER_ADMIN
from shoppos.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def _timed(check) -> dict:
    start_time = time.time()
    try:
        result = check()
    except Exception:
        current_app.logger.exception("Health check %s failed", check.__name__)
        result = {"status": "unhealthy", "error": "Database error"}
    result["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return result


def check_database_health() -> dict:
    """Connectivity plus row counts of the core tables."""
    return {
        "status": "healthy",
        "details": {
            "users": db.session.query(func.count(User.id)).scalar(),
            "products": db.session.query(func.count(Product.id)).scalar(),
        },
    }


def check_session_service_health() -> dict:
    now = utcnow()
    active = db.session.query(func.count(SessionToken.id)).filter(
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at > now,
    ).scalar()
    expired = db.session.query(func.count(SessionToken.id)).filter(
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at <= now,
    ).scalar()
    return {
        "status": "healthy",
        "details": {"active_sessions": active, "expired_pending_cleanup": expired},
    }


def check_bootstrap_health() -> dict:
    """Degraded until settings exist and someone holds super_admin."""
    has_settings = db.session.query(StoreSettings.id).first() is not None
    admins = db.session.query(func.count(UserRole.id)).filter(UserRole.role == SUPER_ADMIN).scalar()
    status = "healthy" if has_settings and admins else "degraded"
    result = {
        "status": status,
        "details": {"settings_initialized": has_settings, "super_admins": admins},
    }
    if status == "degraded":
        result["warning"] = "Run 'flask system init' and create a super admin"
    return result


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed(check_database_health),
        "session_service": _timed(check_session_service_health),
        "bootstrap": _timed(check_bootstrap_health),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
