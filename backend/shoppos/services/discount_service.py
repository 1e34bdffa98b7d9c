# Overview: Service-layer operations for discounts; encapsulates business logic and database work.

"""
Discount Registry

Range rules (value > 0; percentage at most 100) are checked when a discount
is created or edited. Carts trust stored discounts and only refuse inactive
ones.

A discount referenced by persisted sale items keeps its row; it can be
deactivated but not deleted.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Discount, SaleItem
from ..validation import ConflictError, ValidationError, enforce_rules_discount, parse_money, require_text
from .activity_service import log_activity


DISCOUNT_MUTABLE_FIELDS = {"name", "kind", "value", "is_active"}


def list_discounts(*, active_only: bool = False) -> list[dict]:
    q = db.session.query(Discount)
    if active_only:
        q = q.filter_by(is_active=True)
    return [d.to_dict() for d in q.order_by(Discount.created_at.desc(), Discount.id.desc()).all()]


def get_discount(discount_id: int) -> Discount | None:
    return db.session.get(Discount, discount_id)


def create_discount(*, patch: dict, actor_user_id: int) -> Discount:
    if actor_user_id is None:
        raise ValidationError("created_by_user_id is required")

    name = require_text(patch.get("name"), "name")
    kind = patch.get("kind")
    value = parse_money(patch.get("value"), "value")
    enforce_rules_discount(kind, value)

    discount = Discount(
        name=name,
        kind=kind,
        value=value,
        is_active=patch.get("is_active", True),
        created_by_user_id=actor_user_id,
    )
    db.session.add(discount)
    db.session.flush()

    log_activity(
        user_id=actor_user_id,
        action="discount.created",
        entity_type="discount",
        entity_id=discount.id,
        details={"name": discount.name, "kind": discount.kind, "value": str(discount.value)},
    )
    db.session.commit()
    return discount


def update_discount(*, discount_id: int, patch: dict, actor_user_id: int | None = None) -> Discount | None:
    discount = db.session.get(Discount, discount_id)
    if discount is None:
        return None

    patch = dict(patch)
    if "name" in patch:
        patch["name"] = require_text(patch["name"], "name")
    if "value" in patch:
        patch["value"] = parse_money(patch["value"], "value")

    kind = patch.get("kind", discount.kind)
    value = patch.get("value", discount.value)
    if "kind" in patch or "value" in patch:
        enforce_rules_discount(kind, value)

    for k, v in patch.items():
        if k in DISCOUNT_MUTABLE_FIELDS:
            setattr(discount, k, v)

    log_activity(
        user_id=actor_user_id,
        action="discount.updated",
        entity_type="discount",
        entity_id=discount_id,
        details={k: str(v) for k, v in patch.items() if k in DISCOUNT_MUTABLE_FIELDS},
    )
    db.session.commit()
    return discount


def toggle_discount(*, discount_id: int, actor_user_id: int | None = None) -> Discount | None:
    discount = db.session.get(Discount, discount_id)
    if discount is None:
        return None
    return update_discount(
        discount_id=discount_id,
        patch={"is_active": not discount.is_active},
        actor_user_id=actor_user_id,
    )


def delete_discount(*, discount_id: int, actor_user_id: int | None = None) -> bool:
    discount = db.session.get(Discount, discount_id)
    if discount is None:
        return False

    if db.session.query(SaleItem).filter_by(discount_id=discount_id).first():
        raise ConflictError("Discount has been used in sales; deactivate it instead")

    log_activity(
        user_id=actor_user_id,
        action="discount.deleted",
        entity_type="discount",
        entity_id=discount_id,
        details={"name": discount.name},
    )
    db.session.delete(discount)
    db.session.commit()
    return True
