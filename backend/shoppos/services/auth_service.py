# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale is attributable to a signed-in staff member. Uses bcrypt for
password hashing.

Sign-up creates the login and, once, the staff profile. Roles are assigned
separately by a user holding manage_users (or by the CLI for the first
super admin); a new account has no role and therefore no capabilities.
"""

import bcrypt
import re

from ..extensions import db
from ..models import User, Profile, UserRole
from ..permissions import ROLES, is_valid_role
from ..validation import ConflictError, ValidationError
from .activity_service import log_activity
from shoppos.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def sign_up(email: str, password: str, full_name: str | None = None) -> User:
    """
    Create a user and its profile.

    The profile is created here and nowhere else, so each user gets exactly
    one. full_name falls back to the email.

    Raises:
        ValidationError: bad email or weak password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    password_hash = hash_password(password)

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("An account with this email already exists")

    user = User(email=email, password_hash=password_hash, is_active=True)
    db.session.add(user)
    db.session.flush()

    db.session.add(Profile(
        user_id=user.id,
        email=email,
        full_name=(full_name or "").strip() or email,
    ))
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the active user for a credential pair, or None."""
    try:
        email = normalize_email(email)
    except ValidationError:
        return None

    user = db.session.query(User).filter_by(email=email).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def assign_role(user_id: int, role: str, actor_user_id: int | None = None) -> UserRole:
    """Set the user's single role, replacing any existing one."""
    if not is_valid_role(role):
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")

    user_role = db.session.query(UserRole).filter_by(user_id=user_id).first()
    previous = user_role.role if user_role else None
    if user_role:
        user_role.role = role
    else:
        user_role = UserRole(user_id=user_id, role=role)
        db.session.add(user_role)

    log_activity(
        user_id=actor_user_id,
        action="role.assigned",
        entity_type="user",
        entity_id=user_id,
        details={"role": role, "previous_role": previous},
    )
    db.session.commit()
    return user_role


def clear_role(user_id: int, actor_user_id: int | None = None) -> bool:
    user_role = db.session.query(UserRole).filter_by(user_id=user_id).first()
    if user_role is None:
        return False
    log_activity(
        user_id=actor_user_id,
        action="role.cleared",
        entity_type="user",
        entity_id=user_id,
        details={"previous_role": user_role.role},
    )
    db.session.delete(user_role)
    db.session.commit()
    return True


def remove_user(user_id: int, actor_user_id: int | None = None) -> bool:
    """
    Remove a staff member: drop role and profile, deactivate the login.

    The users row stays because sales reference it as cashier.
    """
    user = db.session.get(User, user_id)
    if user is None:
        return False
    if actor_user_id is not None and actor_user_id == user_id:
        raise ConflictError("You cannot remove your own account")

    db.session.query(UserRole).filter_by(user_id=user_id).delete()
    db.session.query(Profile).filter_by(user_id=user_id).delete()
    user.is_active = False

    log_activity(
        user_id=actor_user_id,
        action="user.removed",
        entity_type="user",
        entity_id=user_id,
        details={"email": user.email},
    )
    db.session.commit()
    return True


def list_staff() -> list[dict]:
    """Profiles joined with their role (None when unassigned)."""
    rows = (
        db.session.query(Profile, UserRole.role)
        .outerjoin(UserRole, UserRole.user_id == Profile.user_id)
        .order_by(Profile.full_name.asc())
        .all()
    )
    return [{**profile.to_dict(), "role": role} for profile, role in rows]
