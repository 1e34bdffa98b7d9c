"""
Authentication and session tests.

Verifies:
- Sign-up creates exactly one profile and no role
- Credentials are checked with bcrypt
- Sessions expire (absolute and idle) and can be revoked
- Role assignment and staff removal
"""

from datetime import timedelta

import pytest

from shoppos.extensions import db
from shoppos.models import ActivityLog, Profile, SessionToken, User, UserRole
from shoppos.permissions import CASHIER, MANAGER
from shoppos.services import auth_service, session_service
from shoppos.validation import ConflictError, ValidationError
from shoppos.time_utils import utcnow


TEST_PASSWORD = "Password123!"


class TestSignUp:

    def test_creates_user_and_single_profile(self, db_session):
        user = auth_service.sign_up("  New.Cashier@Shop.Local ", TEST_PASSWORD, "New Cashier")

        assert user.email == "new.cashier@shop.local"
        profiles = db.session.query(Profile).filter_by(user_id=user.id).all()
        assert len(profiles) == 1
        assert profiles[0].full_name == "New Cashier"
        assert session_service.get_role(user.id) is None

    def test_full_name_defaults_to_email(self, db_session):
        user = auth_service.sign_up("solo@shop.local", TEST_PASSWORD)
        assert user.profile.full_name == "solo@shop.local"

    def test_duplicate_email(self, cashier_user):
        with pytest.raises(ConflictError):
            auth_service.sign_up("CASHIER@shop.local", TEST_PASSWORD)
        assert db.session.query(Profile).filter_by(email="cashier@shop.local").count() == 1

    @pytest.mark.parametrize("email,password", [
        ("not-an-email", TEST_PASSWORD),
        ("ok@shop.local", "short"),
        ("ok@shop.local", ""),
    ])
    def test_invalid(self, db_session, email, password):
        with pytest.raises(ValidationError):
            auth_service.sign_up(email, password)
        assert db.session.query(User).count() == 0


class TestAuthenticate:

    def test_valid_credentials(self, cashier_user):
        user = auth_service.authenticate("Cashier@Shop.Local", TEST_PASSWORD)
        assert user.id == cashier_user.id
        assert user.last_login_at is not None

    @pytest.mark.parametrize("email,password", [
        ("cashier@shop.local", "WrongPassword1"),
        ("nobody@shop.local", TEST_PASSWORD),
        ("garbage", TEST_PASSWORD),
    ])
    def test_rejected(self, cashier_user, email, password):
        assert auth_service.authenticate(email, password) is None

    def test_inactive_user(self, cashier_user):
        cashier_user.is_active = False
        db.session.commit()
        assert auth_service.authenticate("cashier@shop.local", TEST_PASSWORD) is None


class TestSessions:

    def test_round_trip(self, manager_user):
        record, token = session_service.create_session(manager_user.id)
        assert record.token_hash != token

        context = session_service.validate_session(token)
        assert context.user_id == manager_user.id
        assert context.role == MANAGER
        assert context.can("view_reports")

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("deadbeef") is None
        assert session_service.validate_session("") is None

    def test_absolute_expiry(self, cashier_user):
        record, token = session_service.create_session(cashier_user.id)
        record.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_expiry(self, app, cashier_user):
        record, token = session_service.create_session(cashier_user.id)
        idle_hours = app.config["SESSION_IDLE_TIMEOUT_HOURS"]
        record.last_used_at = utcnow() - timedelta(hours=idle_hours, minutes=1)
        db.session.commit()
        assert session_service.validate_session(token) is None

    def test_revoke(self, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_revoke_all(self, cashier_user):
        tokens = [session_service.create_session(cashier_user.id)[1] for _ in range(3)]
        assert session_service.revoke_all_user_sessions(cashier_user.id) == 3
        assert all(session_service.validate_session(t) is None for t in tokens)

    def test_role_change_applies_to_live_session(self, admin_user, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        assert not session_service.validate_session(token).can("manage_products")

        auth_service.assign_role(cashier_user.id, MANAGER, actor_user_id=admin_user.id)
        assert session_service.validate_session(token).can("manage_products")

    def test_inactive_user_session(self, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        cashier_user.is_active = False
        db.session.commit()
        assert session_service.validate_session(token) is None


class TestRoles:

    def test_assign_replaces_existing_role(self, admin_user, manager_user):
        auth_service.assign_role(manager_user.id, CASHIER, actor_user_id=admin_user.id)
        assert db.session.query(UserRole).filter_by(user_id=manager_user.id).count() == 1
        assert session_service.get_role(manager_user.id) == CASHIER

        entry = db.session.query(ActivityLog).filter_by(action="role.assigned").one()
        assert entry.details == {"role": CASHIER, "previous_role": MANAGER}

    def test_unknown_role(self, admin_user, roleless_user):
        with pytest.raises(ValidationError):
            auth_service.assign_role(roleless_user.id, "owner", actor_user_id=admin_user.id)

    def test_unknown_user(self, admin_user):
        with pytest.raises(ValueError, match="User not found"):
            auth_service.assign_role(99999, CASHIER, actor_user_id=admin_user.id)

    def test_clear_role(self, admin_user, cashier_user):
        assert auth_service.clear_role(cashier_user.id, actor_user_id=admin_user.id) is True
        assert session_service.get_role(cashier_user.id) is None
        assert auth_service.clear_role(cashier_user.id) is False

    def test_list_staff(self, admin_user, roleless_user):
        staff = {s["email"]: s["role"] for s in auth_service.list_staff()}
        assert staff == {"admin@shop.local": "super_admin", "new@shop.local": None}


class TestRemoveUser:

    def test_remove_keeps_login_row(self, admin_user, cashier_user):
        assert auth_service.remove_user(cashier_user.id, actor_user_id=admin_user.id) is True
        db.session.expire_all()
        user = db.session.get(User, cashier_user.id)
        assert user is not None
        assert user.is_active is False
        assert db.session.query(Profile).filter_by(user_id=cashier_user.id).count() == 0
        assert session_service.get_role(cashier_user.id) is None

    def test_cannot_remove_self(self, admin_user):
        with pytest.raises(ConflictError):
            auth_service.remove_user(admin_user.id, actor_user_id=admin_user.id)

    def test_removed_user_token_is_rejected(self, admin_user, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        auth_service.remove_user(cashier_user.id, actor_user_id=admin_user.id)
        assert session_service.validate_session(token) is None
        assert db.session.query(SessionToken).filter_by(user_id=cashier_user.id).count() == 1
