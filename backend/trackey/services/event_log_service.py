# Overview: Append-only store event log written alongside domain changes.

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..extensions import db
from ..models import StoreEvent
from ..time_utils import utcnow
from .tenant_service import TenantContext


def append_event(
    tenant: TenantContext,
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    note: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
    occurred_at: Optional[datetime] = None,
) -> StoreEvent:
    """
    Append an event in the current transaction (flush, no commit).

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    ev = StoreEvent(
        store_id=tenant.store_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=tenant.user_id,
        note=note,
        payload=payload,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()
    return ev
