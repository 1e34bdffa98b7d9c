import unittest

from shoppos import create_app
from shoppos.extensions import db
from shoppos.models import ActivityLog, StoreSettings, User
from shoppos.services import settings_service
from shoppos.services.settings_service import SettingsValidationError
from shoppos.validation import ValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
            "LOG_LEVEL": "WARNING",
            "DEFAULT_STORE_NAME": "Test Shop",
            "DEFAULT_LOW_STOCK_THRESHOLD": 7,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(ActivityLog).delete()
        db.session.query(StoreSettings).delete()
        db.session.query(User).delete()
        db.session.commit()

        self.admin = User(email="admin@test.local", password_hash="x", is_active=True)
        db.session.add(self.admin)
        db.session.commit()

    def test_defaults_come_from_config(self):
        settings = settings_service.get_settings()
        self.assertEqual(settings.store_name, "Test Shop")
        self.assertEqual(settings.low_stock_threshold, 7)

    def test_single_row(self):
        first = settings_service.get_settings()
        second = settings_service.get_settings()
        self.assertEqual(first.id, second.id)
        self.assertEqual(db.session.query(StoreSettings).count(), 1)

    def test_update_writes_activity(self):
        settings = settings_service.update_settings(
            {"store_name": "  Cloud Nine ", "low_stock_threshold": "3"},
            actor_user_id=self.admin.id,
        )
        self.assertEqual(settings.store_name, "Cloud Nine")
        self.assertEqual(settings.low_stock_threshold, 3)

        entry = db.session.query(ActivityLog).filter_by(action="settings.updated").one()
        self.assertEqual(entry.user_id, self.admin.id)
        self.assertEqual(entry.details, {"store_name": "Cloud Nine", "low_stock_threshold": 3})

    def test_empty_update_logs_nothing(self):
        settings_service.update_settings({}, actor_user_id=self.admin.id)
        self.assertEqual(db.session.query(ActivityLog).count(), 0)

    def test_unknown_field_rejected(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings({"currency": "USD"})

    def test_invalid_values_rejected(self):
        for payload in (
            {"store_name": "   "},
            {"low_stock_threshold": -1},
            {"low_stock_threshold": "ten"},
            {"low_stock_threshold": 2.5},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValidationError):
                    settings_service.update_settings(payload)
        self.assertEqual(settings_service.get_settings().low_stock_threshold, 7)


if __name__ == "__main__":
    unittest.main()
