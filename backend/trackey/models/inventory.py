from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    A product batch in a store, e.g. "iPhone 13 128GB (grey)".

    The physical units are the ProductDevice rows; product quantity is the
    number of device identifiers it holds.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    supplier = db.Column(db.String(255), nullable=True)

    purchase_price_cents = db.Column(db.Integer, nullable=True)
    selling_price_cents = db.Column(db.Integer, nullable=True)
    purchase_qty = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    devices = db.relationship(
        "ProductDevice",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductDevice.id",
    )
    snapshot = db.relationship(
        "InventorySnapshot",
        backref="product",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    @property
    def device_ids(self) -> list[str]:
        return [d.device_id for d in self.devices]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "supplier": self.supplier,
            "purchase_price_cents": self.purchase_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "purchase_qty": self.purchase_qty,
            "device_ids": self.device_ids,
            "quantity": len(self.devices),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductDevice(db.Model):
    """
    One 15-digit device identifier (IMEI/serial) belonging to a product.

    UNIQUENESS: (store_id, device_id) is unique, so a device identifier can
    only be listed on one product per store. This index is the authority;
    the client-side check in device_service only produces friendlier errors.
    """
    __tablename__ = "product_devices"
    __table_args__ = (
        db.UniqueConstraint("store_id", "device_id", name="uq_product_devices_store_device"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = db.Column(db.String(15), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ProductDevice product_id={self.product_id} device_id={self.device_id}>"


class InventorySnapshot(db.Model):
    """
    Denormalized per-product counters.

    available_qty is a cache of the device list size, maintained on every
    device-list mutation. It is never authoritative: ProductDevice rows are.
    quantity_sold reflects historical sales and is only changed by
    sales_service.
    """
    __tablename__ = "inventory_snapshots"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_snapshots_product"),
        db.CheckConstraint("available_qty >= 0", name="ck_inventory_snapshots_available_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    available_qty = db.Column(db.Integer, nullable=False, default=0)
    quantity_sold = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "store_id": self.store_id,
            "available_qty": self.available_qty,
            "quantity_sold": self.quantity_sold,
            "last_updated": to_utc_z(self.last_updated),
        }
