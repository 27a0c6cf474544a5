from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DeviceSale(db.Model):
    """
    A sold physical unit. A device identifier is "sold" iff a row exists here.

    product_id is kept nullable so the sale record survives product deletion.
    """
    __tablename__ = "device_sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "device_id", name="uq_device_sales_store_device"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    device_id = db.Column(db.String(15), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=True)
    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "device_id": self.device_id,
            "amount_cents": self.amount_cents,
            "sold_by_user_id": self.sold_by_user_id,
            "sold_at": to_utc_z(self.sold_at),
        }
