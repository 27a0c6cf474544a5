# Overview: Service-layer operations for products, device identifiers and inventory snapshots.

"""
Inventory Service

Products hold a set of device identifiers (one ProductDevice row each).
InventorySnapshot keeps denormalized counters per product:

- available_qty: set to the size of the identifier list whenever the list is
  created or replaced; decremented (floored at 0) when one identifier is
  removed or a device is sold
- quantity_sold: historical sales, only changed by sales_service; preserved
  across list replacements

The identifier list is the source of truth. resync_snapshots reports (and
optionally repairs) counters that drifted from it.

UNIQUENESS:
device_service.validate_device_id_set gives precise errors before any write.
The (store_id, device_id) unique index is the authority: if a concurrent
session inserts the same identifier first, the IntegrityError is translated
into the same ConflictError and nothing from the batch is written.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Debt, DeviceSale, InventorySnapshot, Product, ProductDevice
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ValidationError,
    optional_int,
    optional_text,
    parse_optional_cents,
    require_text,
)
from .concurrency import run_atomic, run_read
from .device_service import normalize_device_ids, partition_devices, validate_device_id_set
from .event_log_service import append_event
from .pagination import paginate
from .sales_service import sold_device_ids
from .tenant_service import TenantContext, require_owned, scoped_query


PRODUCT_FIELDS = ("name", "description", "supplier", "purchase_price_cents", "selling_price_cents", "purchase_qty")


# =============================================================================
# INPUT PARSING
# =============================================================================

def parse_product_fields(payload: dict, *, partial: bool) -> dict:
    """
    Validate product attributes (everything except device ids).

    partial=False: create semantics (name required)
    partial=True: only keys present in payload are validated and returned
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", code="INVALID_FIELD")

    fields: dict = {}
    if not partial or "name" in payload:
        fields["name"] = require_text(payload, "name")
    if not partial or "description" in payload:
        fields["description"] = optional_text(payload, "description", max_length=2000)
    if not partial or "supplier" in payload:
        fields["supplier"] = optional_text(payload, "supplier")
    if not partial or "purchase_price" in payload:
        fields["purchase_price_cents"] = parse_optional_cents(payload.get("purchase_price"), field="purchase_price")
    if not partial or "selling_price" in payload:
        fields["selling_price_cents"] = parse_optional_cents(payload.get("selling_price"), field="selling_price")
    if not partial or "purchase_qty" in payload:
        fields["purchase_qty"] = optional_int(payload, "purchase_qty", minimum=0)
    return fields


def _require_device_ids(raw) -> list[str]:
    ids = normalize_device_ids(raw)
    if not ids:
        raise ValidationError("At least one device ID is required", code="MISSING_FIELD", values=["device_ids"])
    return ids


# =============================================================================
# HELPERS
# =============================================================================

def existing_device_ids(tenant: TenantContext, *, exclude_product_id: int | None = None) -> set[str]:
    """Every identifier listed on the store's products, optionally minus one product."""
    q = scoped_query(ProductDevice, tenant).with_entities(ProductDevice.device_id)
    if exclude_product_id is not None:
        q = q.filter(ProductDevice.product_id != exclude_product_id)
    return {row.device_id for row in q.all()}


def get_or_create_snapshot(product: Product) -> InventorySnapshot:
    snapshot = product.snapshot
    if snapshot is None:
        snapshot = InventorySnapshot(
            store_id=product.store_id,
            product_id=product.id,
            available_qty=len(product.devices),
            quantity_sold=0,
            last_updated=utcnow(),
        )
        db.session.add(snapshot)
        product.snapshot = snapshot
    return snapshot


def _conflict_from_integrity(tenant: TenantContext, candidate_ids: list[str], exclude_product_id: int | None = None):
    """Build the ConflictError for an identifier that won a race against us."""
    def _translate(exc):
        taken = existing_device_ids(tenant, exclude_product_id=exclude_product_id)
        conflicts = [d for d in candidate_ids if d in taken]
        if conflicts:
            return ConflictError(
                f"Device IDs already exist in other products: {', '.join(conflicts)}",
                code="DEVICE_ID_CONFLICT",
                values=conflicts,
            )
        return ConflictError("Write rejected by a store constraint", code="CONSTRAINT_VIOLATION")
    return _translate


def _get_product(tenant: TenantContext, product_id: int) -> Product:
    return require_owned(db.session.get(Product, product_id), tenant, "Product")


# =============================================================================
# MUTATIONS
# =============================================================================

def create_products(tenant: TenantContext, items: list[dict]) -> list[Product]:
    """
    Create one or more products with their device identifiers.

    Every item and the union of all submitted identifiers are validated
    before the first insert; one bad item aborts the whole batch.

    Raises:
        ValidationError: missing name, no device ids, bad format, duplicates
            (within one product or across the batch)
        ConflictError: identifier already on an existing product
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Add at least one product", code="MISSING_FIELD", values=["products"])

    parsed = []
    all_ids: list[str] = []
    for item in items:
        fields = parse_product_fields(item, partial=False)
        ids = _require_device_ids(item.get("device_ids"))
        parsed.append((fields, ids))
        all_ids.extend(ids)

    def _op():
        validate_device_id_set(all_ids, existing_device_ids(tenant))

        now = utcnow()
        created = []
        for fields, ids in parsed:
            if fields.get("purchase_qty") is None:
                fields["purchase_qty"] = len(ids)
            product = Product(store_id=tenant.store_id, **fields)
            product.devices = [ProductDevice(store_id=tenant.store_id, device_id=d) for d in ids]
            product.snapshot = InventorySnapshot(
                store_id=tenant.store_id,
                available_qty=len(ids),
                quantity_sold=0,
                last_updated=now,
            )
            db.session.add(product)
            db.session.flush()

            append_event(
                tenant,
                event_type="product.created",
                entity_type="product",
                entity_id=product.id,
                payload={"device_count": len(ids)},
            )
            created.append(product)

        db.session.commit()
        return created

    return run_atomic(_op, on_integrity_error=_conflict_from_integrity(tenant, all_ids))


def apply_device_id_set(
    tenant: TenantContext,
    *,
    product_id: int,
    device_ids,
    fields: dict | None = None,
) -> InventorySnapshot:
    """
    Replace a product's identifier list (and optionally its attributes).

    available_qty becomes the size of the new list; quantity_sold is carried
    over from the existing snapshot.

    Raises:
        ValidationError / ConflictError: see validate_device_id_set
        NotFoundError: product not in tenant's store
        ConflictError CONCURRENT_MODIFICATION: product edited by another session
    """
    ids = _require_device_ids(device_ids)
    fields = fields or {}
    unknown = set(fields) - set(PRODUCT_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}", code="INVALID_FIELD", values=sorted(unknown))

    def _op():
        product = _get_product(tenant, product_id)
        validate_device_id_set(ids, existing_device_ids(tenant, exclude_product_id=product.id))

        wanted = set(ids)
        current = {d.device_id: d for d in product.devices}
        removed = [d for d in current if d not in wanted]
        added = [d for d in ids if d not in current]

        for device_id in removed:
            product.devices.remove(current[device_id])
        db.session.flush()
        for device_id in added:
            product.devices.append(ProductDevice(store_id=tenant.store_id, device_id=device_id))

        for key, value in fields.items():
            setattr(product, key, value)

        now = utcnow()
        product.updated_at = now

        snapshot = get_or_create_snapshot(product)
        snapshot.available_qty = len(ids)
        snapshot.last_updated = now

        append_event(
            tenant,
            event_type="product.devices_replaced",
            entity_type="product",
            entity_id=product.id,
            payload={"added": added, "removed": removed},
        )
        db.session.commit()
        return snapshot

    return run_atomic(_op, on_integrity_error=_conflict_from_integrity(tenant, ids, exclude_product_id=product_id))


def remove_device_id(tenant: TenantContext, *, product_id: int, device_id: str) -> InventorySnapshot:
    """
    Remove one identifier from a product.

    Removing an identifier the product does not hold is a no-op and returns
    the current snapshot. Otherwise available_qty is decremented, floored at
    0 in case the counter had drifted below the true list size.
    """
    target = (device_id or "").strip()

    def _op():
        product = _get_product(tenant, product_id)
        row = next((d for d in product.devices if d.device_id == target), None)

        snapshot = get_or_create_snapshot(product)
        if row is None:
            db.session.commit()
            return snapshot

        product.devices.remove(row)
        now = utcnow()
        product.updated_at = now
        snapshot.available_qty = max(0, (snapshot.available_qty or 0) - 1)
        snapshot.last_updated = now

        append_event(
            tenant,
            event_type="product.device_removed",
            entity_type="product",
            entity_id=product.id,
            payload={"device_id": target},
        )
        db.session.commit()
        return snapshot

    return run_atomic(_op)


def delete_product(tenant: TenantContext, product_id: int) -> None:
    """
    Delete a product with its identifiers and snapshot.

    Debts and sale records keep their own copies of names and identifiers;
    their product reference is cleared.
    """
    def _op():
        product = _get_product(tenant, product_id)

        scoped_query(Debt, tenant).filter(Debt.product_id == product.id).update(
            {Debt.product_id: None}, synchronize_session=False
        )
        scoped_query(DeviceSale, tenant).filter(DeviceSale.product_id == product.id).update(
            {DeviceSale.product_id: None}, synchronize_session=False
        )

        append_event(
            tenant,
            event_type="product.deleted",
            entity_type="product",
            entity_id=product.id,
            note=product.name,
            payload={"device_ids": product.device_ids},
        )
        db.session.delete(product)
        db.session.commit()

    run_atomic(_op)


# =============================================================================
# READS
# =============================================================================

def product_summary(product: Product) -> dict:
    data = product.to_dict()
    snapshot = product.snapshot
    data["inventory"] = snapshot.to_dict() if snapshot else None
    return data


def list_products(
    tenant: TenantContext,
    *,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Products in the store ordered by name; search matches name, supplier or any device id."""
    def _read():
        products = (
            scoped_query(Product, tenant)
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
        q = (search or "").strip().lower()
        if q:
            products = [
                p for p in products
                if q in p.name.lower()
                or q in (p.supplier or "").lower()
                or any(q in d for d in p.device_ids)
            ]
        return paginate(products, page, per_page, serialize=product_summary)

    return run_read(_read)


def get_product(
    tenant: TenantContext,
    product_id: int,
    *,
    device_search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Product detail with each device annotated as sold or available."""
    def _read():
        product = _get_product(tenant, product_id)
        ids = product.device_ids
        sold = sold_device_ids(tenant, ids)

        q = (device_search or "").strip()
        listed = [d for d in ids if q in d] if q else ids
        devices = paginate(listed, page, per_page, serialize=lambda d: {"device_id": d, "sold": d in sold})

        data = product_summary(product)
        data["devices"] = devices
        data["sold_count"] = len(sold)
        return data

    return run_read(_read)


def device_status(tenant: TenantContext, device_ids) -> dict:
    """Classify identifiers as sold/available against the store's sale records."""
    ids = normalize_device_ids(device_ids)

    def _read():
        sold, available = partition_devices(ids, sold_device_ids(tenant, ids))
        return {"sold": sold, "available": available}

    return run_read(_read)


def resync_snapshots(tenant: TenantContext, *, fix: bool = False) -> list[dict]:
    """
    Compare each snapshot's available_qty with the number of unsold devices
    on the product. With fix=True, drifted (or missing) snapshots are
    rewritten; quantity_sold is left alone.
    """
    def _op():
        drift = []
        products = scoped_query(Product, tenant).order_by(Product.id.asc()).all()
        for product in products:
            ids = product.device_ids
            expected = len(ids) - len(sold_device_ids(tenant, ids))
            snapshot = product.snapshot
            actual = snapshot.available_qty if snapshot else None
            if actual == expected:
                continue
            drift.append({
                "product_id": product.id,
                "name": product.name,
                "available_qty": actual,
                "expected_available_qty": expected,
            })
            if fix:
                snapshot = get_or_create_snapshot(product)
                snapshot.available_qty = expected
                snapshot.last_updated = utcnow()
        if fix:
            db.session.commit()
        return drift

    if fix:
        return run_atomic(_op)
    return run_read(_op)
