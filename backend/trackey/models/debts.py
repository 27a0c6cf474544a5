from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


BALANCE_MODE_STORED = "STORED"
BALANCE_MODE_DERIVED = "DERIVED"
BALANCE_MODES = (BALANCE_MODE_STORED, BALANCE_MODE_DERIVED)


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_store_name", "store_id", "full_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "created_at": to_utc_z(self.created_at),
        }


class Debt(db.Model):
    """
    An obligation owed by a customer, optionally tied to a product.

    BALANCE MODES:
    - STORED: deposited_cents / remaining_cents are a running balance kept on
      this row. Each payment updates them in place with a conditional UPDATE
      (remaining_cents >= amount), so two racing payments cannot overdraw it.
    - DERIVED: the balance is always the owed amount minus the sum of
      DebtPayment rows. deposited_cents / remaining_cents keep their creation
      values and are never read for balance decisions.

    Both modes must agree with the payment history; see
    debt_service.reconcile_stored_balances.

    Debts are never hard-deleted. History lives in debt_payments.
    """
    __tablename__ = "debts"
    __table_args__ = (
        db.Index("ix_debts_store_customer_product", "store_id", "customer_id", "product_id"),
        db.Index("ix_debts_store_created", "store_id", "created_at"),
        db.CheckConstraint("owed_cents >= 0", name="ck_debts_owed_non_negative"),
        db.CheckConstraint("balance_mode IN ('STORED', 'DERIVED')", name="ck_debts_balance_mode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    # Denormalized names so ledger rows survive product deletion
    customer_name = db.Column(db.String(255), nullable=False)
    product_name = db.Column(db.String(255), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    qty = db.Column(db.Integer, nullable=False, default=1)

    # Device identifiers handed over on credit (informational, searchable)
    device_ids = db.Column(db.JSON, nullable=False, default=list)

    balance_mode = db.Column(db.String(16), nullable=False, default=BALANCE_MODE_DERIVED)

    owed_cents = db.Column(db.Integer, nullable=False)
    deposited_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_cents = db.Column(db.Integer, nullable=False)

    debt_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("debts", lazy=True))

    def __repr__(self) -> str:
        return f"<Debt id={self.id} customer_id={self.customer_id} owed_cents={self.owed_cents} mode={self.balance_mode}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "customer_name": self.customer_name,
            "product_name": self.product_name,
            "supplier": self.supplier,
            "qty": self.qty,
            "device_ids": list(self.device_ids or []),
            "balance_mode": self.balance_mode,
            "owed_cents": self.owed_cents,
            "deposited_cents": self.deposited_cents,
            "remaining_cents": self.remaining_cents,
            "debt_date": to_iso_date(self.debt_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DebtPayment(db.Model):
    """
    One payment against a debt. Append-only: never updated or deleted.

    customer_id / product_id are copied from the debt so payment history can
    also be correlated by the (customer, product) compound key.
    """
    __tablename__ = "debt_payments"
    __table_args__ = (
        db.Index("ix_debt_payments_store_debt", "store_id", "debt_id"),
        db.Index("ix_debt_payments_store_customer_product", "store_id", "customer_id", "product_id"),
        db.CheckConstraint("amount_cents > 0", name="ck_debt_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    product_id = db.Column(db.Integer, nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    # Settlement channel (cash, transfer, POS, staff name...)
    paid_to = db.Column(db.String(128), nullable=True)
    payment_date = db.Column(db.Date, nullable=False, index=True)

    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    debt = db.relationship("Debt", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "debt_id": self.debt_id,
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "amount_cents": self.amount_cents,
            "paid_to": self.paid_to,
            "payment_date": to_iso_date(self.payment_date),
            "recorded_by_user_id": self.recorded_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
