# Overview: Service-layer operations for device sale records.

"""
Sales Service

A device is sold iff a DeviceSale row with its identifier exists in the
store. Sale rows outlive the product (product_id is cleared on delete) so
sold status stays answerable for identifiers that left the catalogue.
"""

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import DeviceSale, ProductDevice
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, parse_optional_cents
from .concurrency import lock_for_update, run_atomic
from .device_service import is_valid_device_id
from .event_log_service import append_event
from .tenant_service import TenantContext, scoped_query


def sold_device_ids(tenant: TenantContext, device_ids: Iterable[str]) -> set[str]:
    """Subset of device_ids that have a sale record in the tenant's store."""
    ids = {d.strip() for d in device_ids if d and d.strip()}
    if not ids:
        return set()
    rows = (
        scoped_query(DeviceSale, tenant)
        .with_entities(DeviceSale.device_id)
        .filter(DeviceSale.device_id.in_(ids))
        .all()
    )
    return {row.device_id for row in rows}


def record_device_sale(tenant: TenantContext, *, device_id: str, amount=None) -> DeviceSale:
    """
    Mark one listed device as sold.

    Raises:
        ValidationError INVALID_DEVICE_ID: malformed identifier
        NotFoundError: identifier not listed on any product in this store
        ConflictError DEVICE_ALREADY_SOLD: a sale record already exists
    """
    target = (device_id or "").strip() if isinstance(device_id, str) else device_id
    if not is_valid_device_id(target):
        raise ValidationError(
            "Device ID must be a 15-digit number",
            code="INVALID_DEVICE_ID",
            values=[str(device_id)],
        )
    amount_cents = parse_optional_cents(amount, field="amount")

    already_sold = ConflictError(
        f"Device {target} is already sold",
        code="DEVICE_ALREADY_SOLD",
        values=[target],
    )

    def _op():
        # Avoid circular import
        from .inventory_service import get_or_create_snapshot

        listed = lock_for_update(
            scoped_query(ProductDevice, tenant).filter(ProductDevice.device_id == target)
        ).first()
        if listed is None:
            raise NotFoundError(f"Device {target} not found")

        if sold_device_ids(tenant, [target]):
            raise already_sold

        product = listed.product
        sale = DeviceSale(
            store_id=tenant.store_id,
            product_id=product.id,
            device_id=target,
            amount_cents=amount_cents,
            sold_by_user_id=tenant.user_id,
            sold_at=utcnow(),
        )
        db.session.add(sale)

        snapshot = get_or_create_snapshot(product)
        snapshot.quantity_sold = (snapshot.quantity_sold or 0) + 1
        snapshot.available_qty = max(0, (snapshot.available_qty or 0) - 1)
        snapshot.last_updated = utcnow()
        db.session.flush()

        append_event(
            tenant,
            event_type="device.sold",
            entity_type="product",
            entity_id=product.id,
            payload={"device_id": target, "sale_id": sale.id, "amount_cents": amount_cents},
        )
        db.session.commit()
        return sale

    # Two sessions selling the same unit: the unique index rejects the second
    return run_atomic(_op, on_integrity_error=lambda exc: already_sold)
