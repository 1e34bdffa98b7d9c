from __future__ import annotations

from ..extensions import db
from shoppos.time_utils import to_utc_z


class StoreSettings(db.Model):
    """Single-row store configuration."""
    __tablename__ = "store_settings"
    __table_args__ = (
        db.CheckConstraint("low_stock_threshold >= 0", name="low_stock_threshold_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_name = db.Column(db.String(255), nullable=False, default="VapeShop POS")
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_name": self.store_name,
            "low_stock_threshold": self.low_stock_threshold,
            "updated_at": to_utc_z(self.updated_at),
        }
