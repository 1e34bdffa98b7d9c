# Overview: Service-layer operations for store settings; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StoreSettings
from ..validation import ValidationError, parse_int, require_text
from .activity_service import log_activity


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError, ValidationError):
    pass


SETTINGS_MUTABLE_FIELDS = {"store_name", "low_stock_threshold"}


def get_settings() -> StoreSettings:
    """
    Return the single settings row, creating it with configured defaults on
    first read.
    """
    settings = db.session.query(StoreSettings).order_by(StoreSettings.id.asc()).first()
    if settings is not None:
        return settings

    settings = StoreSettings(
        store_name=current_app.config.get("DEFAULT_STORE_NAME", "VapeShop POS"),
        low_stock_threshold=current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10),
    )
    db.session.add(settings)
    db.session.commit()
    return settings


def update_settings(payload: dict, actor_user_id: int | None = None) -> StoreSettings:
    if not isinstance(payload, dict):
        raise SettingsValidationError("Invalid JSON payload")

    unknown = sorted(set(payload) - SETTINGS_MUTABLE_FIELDS)
    if unknown:
        raise SettingsValidationError(f"Field not allowed: {', '.join(unknown)}")

    changes: dict = {}
    if "store_name" in payload:
        try:
            changes["store_name"] = require_text(payload["store_name"], "store_name")[:255]
        except ValidationError as e:
            raise SettingsValidationError(str(e))
    if "low_stock_threshold" in payload:
        try:
            threshold = parse_int(payload["low_stock_threshold"], "low_stock_threshold")
        except ValidationError as e:
            raise SettingsValidationError(str(e))
        if threshold < 0:
            raise SettingsValidationError("low_stock_threshold must be >= 0")
        changes["low_stock_threshold"] = threshold

    settings = get_settings()
    for k, v in changes.items():
        setattr(settings, k, v)

    if changes:
        log_activity(
            user_id=actor_user_id,
            action="settings.updated",
            entity_type="store_settings",
            entity_id=settings.id,
            details=changes,
        )
    db.session.commit()
    return settings
