# Overview: Service-layer operations for the activity log; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLog
"""
Activity Log Rules

- Append-only record of staff mutations.
- Entries are added to the caller's unit of work; the caller commits, so an
  entry exists exactly when the change it describes was committed.
- No updates or deletes of existing entries.
"""


def log_activity(
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    user_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_activity(
    *,
    limit: int = 100,
    entity_type: str | None = None,
    user_id: int | None = None,
) -> list[dict]:
    limit = min(max(limit, 1), 500)
    q = db.session.query(ActivityLog)
    if entity_type:
        q = q.filter_by(entity_type=entity_type)
    if user_id is not None:
        q = q.filter_by(user_id=user_id)
    rows = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
    return [row.to_dict() for row in rows]
