from __future__ import annotations

from ..extensions import db


class SecurityEvent(db.Model):
    """
    Append-only record of denied or security-relevant requests.

    Cross-store denials name the row that was asked for (entity_type and
    entity_id) and the store that actually owns it, so an operator can see
    which debt or product another store tried to reach.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_org_occurred", "org_id", "occurred_at"),
        db.Index("ix_security_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Null before authentication (failed logins)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # LOGIN_FAILED, LOGOUT, PERMISSION_DENIED, CROSS_TENANT_ACCESS_DENIED
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)
    action = db.Column(db.String(64), nullable=True)

    # Debt, Product, DeviceSale, ...
    entity_type = db.Column(db.String(32), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def __repr__(self) -> str:
        return f"<SecurityEvent {self.event_type} store={self.store_id} {self.entity_type}={self.entity_id}>"
