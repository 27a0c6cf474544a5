"""
Multi-Tenant Service: Tenant Context and Scoping Helpers

Every ledger and inventory row belongs to a store. Services never read the
tenant from ambient state: routes build a TenantContext from the session
and pass it into each call explicitly.

SECURITY INVARIANTS:
1. Every query touching store-owned data filters by tenant.store_id
2. Every insert stamps tenant.store_id
3. Rows from another store are reported as "not found", never as forbidden
4. Cross-tenant access attempts are logged as security events

USAGE:
    from trackey.services.tenant_service import TenantContext, require_owned

    tenant = TenantContext(org_id=1, store_id=3, user_id=7)
    debt = require_owned(db.session.get(Debt, debt_id), tenant, "Debt")
"""

from dataclasses import dataclass

from flask import has_request_context, request

from ..extensions import db
from ..models import Store
from ..validation import NotFoundError
from .security_service import log_security_event


class TenantAccessError(NotFoundError):
    """Raised when cross-tenant access is attempted."""
    pass


@dataclass(frozen=True)
class TenantContext:
    """
    Immutable per-request tenant scope.

    org_id/store_id come from the session record captured at login;
    user_id/session_id are for attribution only.
    """
    org_id: int
    store_id: int
    user_id: int | None = None
    session_id: int | None = None


def require_store_in_org(store_id: int, org_id: int) -> Store:
    """
    Validate that a store belongs to the specified organization.

    Raises:
        TenantAccessError if store doesn't exist or belongs to different org
    """
    store = db.session.get(Store, store_id)

    if not store:
        _log_cross_tenant_attempt(f"Store {store_id} not found", org_id=org_id)
        raise TenantAccessError("Store not found")

    if store.org_id != org_id:
        _log_cross_tenant_attempt(
            f"Store {store_id} belongs to org {store.org_id}, not {org_id}",
            org_id=org_id,
            attempted_store_id=store_id
        )
        raise TenantAccessError("Store not found")  # Don't reveal it exists in another org

    return store


def scoped_query(model, tenant: TenantContext):
    """Base query for a store-owned model, filtered to the tenant's store."""
    return db.session.query(model).filter(model.store_id == tenant.store_id)


def require_owned(row, tenant: TenantContext, label: str):
    """
    Return row if it belongs to the tenant's store.

    Missing rows raise NotFoundError; rows owned by another store raise
    TenantAccessError (same message, logged as a security event).
    """
    if row is None:
        raise NotFoundError(f"{label} not found")
    if row.store_id != tenant.store_id:
        _log_cross_tenant_attempt(
            f"{label} {row.id} belongs to store {row.store_id}, not {tenant.store_id}",
            org_id=tenant.org_id,
            attempted_store_id=row.store_id,
            user_id=tenant.user_id,
            entity_type=label,
            entity_id=row.id,
        )
        raise TenantAccessError(f"{label} not found")
    return row


def _log_cross_tenant_attempt(
    reason: str,
    org_id: int | None = None,
    attempted_store_id: int | None = None,
    user_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
) -> None:
    in_request = has_request_context()
    log_security_event(
        user_id=user_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=request.path if in_request else None,
        action=request.method if in_request else None,
        reason=reason,
        ip_address=request.remote_addr if in_request else None,
        user_agent=request.headers.get("User-Agent") if in_request else None,
        org_id=org_id,
        store_id=attempted_store_id,
        entity_type=entity_type,
        entity_id=entity_id,
    )
