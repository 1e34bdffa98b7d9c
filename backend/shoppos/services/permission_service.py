# Overview: Capability checks against an explicit staff context.

"""
Permission Checking

WHY: Every feature gate asks one question: does this staff context hold
capability X? Roles are only ever translated to capabilities through the
table in shoppos.permissions; callers never compare role strings.

DESIGN PRINCIPLES:
- Fail closed: no context, no role, or an unknown role grants nothing
- Denials raise PermissionDeniedError and are logged
"""

from flask import current_app

from ..permissions import validate_capability_code
from .session_service import StaffContext


class PermissionDeniedError(Exception):
    """Raised when the staff context lacks a required capability."""
    def __init__(self, message: str, capability: str | None = None):
        super().__init__(message)
        self.capability = capability


def has_capability(context: StaffContext | None, capability: str) -> bool:
    if not validate_capability_code(capability):
        raise ValueError(f"Unknown capability: {capability}")
    if context is None:
        return False
    return context.can(capability)


def require_capability(context: StaffContext | None, capability: str) -> None:
    """
    Raise PermissionDeniedError unless context holds capability.
    """
    if has_capability(context, capability):
        return

    current_app.logger.warning(
        "Permission denied: user_id=%s role=%s capability=%s",
        context.user_id if context else None,
        context.role if context else None,
        capability,
    )
    raise PermissionDeniedError(f"Missing capability: {capability}", capability=capability)


def require_staff(context: StaffContext | None) -> StaffContext:
    """Require an authenticated staff identity (any role, or none)."""
    if context is None or context.user_id is None:
        raise PermissionDeniedError("You must be logged in to process sales")
    return context
