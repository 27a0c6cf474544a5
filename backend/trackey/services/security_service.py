# Overview: Service-layer operations for security events; append-only audit of denials.

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    org_id: int | None = None,
    store_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
) -> SecurityEvent:
    """
    Append a security event and commit it at once.

    The commit is separate from the caller's unit of work: a denied debt
    payment is rolled back, its CROSS_TENANT_ACCESS_DENIED record is not.
    Callers inside run_atomic must log before their first flush.
    """
    event = SecurityEvent(
        user_id=user_id,
        org_id=org_id,
        store_id=store_id,
        event_type=event_type,
        resource=resource,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()
    return event


def recent_denials(org_id: int, *, limit: int = 50) -> list[SecurityEvent]:
    """Newest failed events for an organization (login failures, permission and cross-store denials)."""
    return (
        db.session.query(SecurityEvent)
        .filter(SecurityEvent.org_id == org_id, SecurityEvent.success.is_(False))
        .order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
        .limit(limit)
        .all()
    )
