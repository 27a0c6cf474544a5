# Overview: Service-layer operations for debts and payments; encapsulates business logic and database work.

"""
Debt Service

Persistence flows around the pure ledger in ledger_service:
- create_debt: open an obligation (credit sale), optionally with a deposit
- record_payment: append one immutable payment after validating it against
  the freshest balance in the store
- list_ledger / get_ledger_row / get_payment_history: fresh reads merged
  into ledger rows

ATOMICITY:
The balance check and the write are one guarded UPDATE on the debt row:
- STORED debts: SET deposited += amount ... WHERE remaining_cents >= amount
- DERIVED debts: touch the row WHERE owed - SUM(payments) >= amount
If no row matches, another session got there first and the payment is
rejected with EXCEEDS_REMAINING_BALANCE. The debt row is also locked
(SELECT ... FOR UPDATE) where the database supports it.
"""

from __future__ import annotations

from sqlalchemy import func, select

from ..extensions import db
from ..models import (
    Customer,
    Debt,
    DebtPayment,
    Product,
    BALANCE_MODE_DERIVED,
    BALANCE_MODE_STORED,
    BALANCE_MODES,
)
from ..time_utils import utc_today, utcnow
from ..validation import ValidationError, format_cents, parse_amount_cents, parse_optional_cents
from . import ledger_service
from .concurrency import lock_for_update, run_atomic, run_read
from .device_service import find_duplicates, find_invalid, normalize_device_ids
from .event_log_service import append_event
from .ledger_service import DebtRecord, LedgerRow, PaymentRecord
from .pagination import paginate
from .sales_service import sold_device_ids
from .tenant_service import TenantContext, require_owned, scoped_query


PAID_TO_MAX_LENGTH = 128


# =============================================================================
# RECORD CONVERSION
# =============================================================================

def to_debt_record(debt: Debt) -> DebtRecord:
    return DebtRecord(
        id=debt.id,
        customer_id=debt.customer_id,
        product_id=debt.product_id,
        owed_cents=debt.owed_cents,
        customer_name=debt.customer_name,
        product_name=debt.product_name,
        device_ids=tuple(debt.device_ids or ()),
        deposited_cents=debt.deposited_cents,
        balance_mode=debt.balance_mode,
        debt_date=debt.debt_date,
        created_at=debt.created_at,
    )


def to_payment_record(payment: DebtPayment) -> PaymentRecord:
    return PaymentRecord(
        id=payment.id,
        debt_id=payment.debt_id,
        customer_id=payment.customer_id,
        product_id=payment.product_id,
        amount_cents=payment.amount_cents,
        paid_to=payment.paid_to,
        payment_date=payment.payment_date,
    )


def _clean_paid_to(paid_to) -> str | None:
    if paid_to is None:
        return None
    text = str(paid_to).strip()
    if not text:
        return None
    if len(text) > PAID_TO_MAX_LENGTH:
        raise ValidationError(
            f"paid_to must be at most {PAID_TO_MAX_LENGTH} characters",
            code="INVALID_FIELD",
            values=["paid_to"],
        )
    return text


# =============================================================================
# DEBT CREATION
# =============================================================================

def _resolve_customer(
    tenant: TenantContext,
    customer_id: int | None,
    customer_name: str | None,
    phone_number: str | None,
) -> Customer:
    if customer_id is not None:
        return require_owned(db.session.get(Customer, customer_id), tenant, "Customer")

    name = (customer_name or "").strip()
    if not name:
        raise ValidationError("customer_id or customer_name is required", code="MISSING_FIELD", values=["customer_name"])

    existing = (
        scoped_query(Customer, tenant)
        .filter(func.lower(Customer.full_name) == name.lower())
        .order_by(Customer.id.asc())
        .first()
    )
    if existing:
        return existing

    customer = Customer(store_id=tenant.store_id, full_name=name, phone_number=phone_number)
    db.session.add(customer)
    db.session.flush()
    return customer


def create_debt(
    tenant: TenantContext,
    *,
    owed,
    customer_id: int | None = None,
    customer_name: str | None = None,
    phone_number: str | None = None,
    product_id: int | None = None,
    product_name: str | None = None,
    supplier: str | None = None,
    qty: int | None = None,
    device_ids=None,
    balance_mode: str = BALANCE_MODE_DERIVED,
    deposit=None,
    paid_to: str | None = None,
) -> LedgerRow:
    """
    Open a new debt in the tenant's store.

    An optional deposit (paid at the counter when the debt is created) is
    recorded as the first payment, so STORED and DERIVED debts reconcile to
    the same balance.

    Raises:
        ValidationError: bad amounts, bad mode, malformed device ids,
            deposit larger than owed
        NotFoundError: unknown customer/product in this store
    """
    owed_cents = parse_amount_cents(owed, field="owed")
    deposit_cents = parse_optional_cents(deposit, field="deposit") or 0
    if deposit_cents > owed_cents:
        raise ValidationError(
            "Deposit cannot exceed the owed amount",
            code="EXCEEDS_REMAINING_BALANCE",
            values=[format_cents(deposit_cents), format_cents(owed_cents)],
        )

    if balance_mode not in BALANCE_MODES:
        raise ValidationError(
            f"balance_mode must be one of {', '.join(BALANCE_MODES)}",
            code="INVALID_FIELD",
            values=[balance_mode],
        )

    ids = normalize_device_ids(device_ids)
    invalid = find_invalid(ids)
    if invalid:
        raise ValidationError(
            f"Invalid device IDs: {', '.join(invalid)}. Must be 15-digit numbers.",
            code="INVALID_DEVICE_ID",
            values=invalid,
        )
    dupes = find_duplicates(ids)
    if dupes:
        raise ValidationError(
            f"Duplicate device IDs in submission: {', '.join(dupes)}",
            code="DUPLICATE_DEVICE_ID",
            values=dupes,
        )

    if qty is not None and qty < 1:
        raise ValidationError("qty must be at least 1", code="INVALID_FIELD", values=["qty"])

    channel = _clean_paid_to(paid_to)

    def _op():
        # Ownership checks run before the first flush
        name = product_name
        product_supplier = supplier
        if product_id is not None:
            product = require_owned(db.session.get(Product, product_id), tenant, "Product")
            name = name or product.name
            product_supplier = product_supplier or product.supplier

        customer = _resolve_customer(tenant, customer_id, customer_name, phone_number)

        today = utc_today()
        stored = balance_mode == BALANCE_MODE_STORED
        debt = Debt(
            store_id=tenant.store_id,
            customer_id=customer.id,
            product_id=product_id,
            customer_name=customer.full_name,
            product_name=name,
            supplier=product_supplier,
            qty=qty or max(len(ids), 1),
            device_ids=ids,
            balance_mode=balance_mode,
            owed_cents=owed_cents,
            deposited_cents=deposit_cents if stored else 0,
            remaining_cents=owed_cents - deposit_cents if stored else owed_cents,
            debt_date=today,
        )
        db.session.add(debt)
        db.session.flush()

        if deposit_cents:
            db.session.add(DebtPayment(
                store_id=tenant.store_id,
                debt_id=debt.id,
                customer_id=customer.id,
                product_id=product_id,
                amount_cents=deposit_cents,
                paid_to=channel,
                payment_date=today,
                recorded_by_user_id=tenant.user_id,
            ))

        append_event(
            tenant,
            event_type="debt.created",
            entity_type="debt",
            entity_id=debt.id,
            payload={"owed_cents": owed_cents, "deposit_cents": deposit_cents, "balance_mode": balance_mode},
        )
        db.session.commit()
        return debt.id

    debt_id = run_atomic(_op)
    return get_ledger_row(tenant, debt_id)


# =============================================================================
# PAYMENTS
# =============================================================================

def _paid_total_subquery(debt_id: int):
    return (
        select(func.coalesce(func.sum(DebtPayment.amount_cents), 0))
        .where(DebtPayment.debt_id == debt_id)
        .scalar_subquery()
    )


def _current_remaining(debt: Debt, payments: list[DebtPayment]) -> int:
    """Freshest remaining balance for the payment precondition."""
    if debt.balance_mode == BALANCE_MODE_STORED:
        return debt.remaining_cents
    return ledger_service.build_row(to_debt_record(debt), [to_payment_record(p) for p in payments]).remaining_cents


def _guarded_balance_update(debt: Debt, amount_cents: int) -> int:
    """
    Apply the balance precondition and the write as one UPDATE.

    Returns the number of rows updated (0 means the balance no longer covers
    the amount).
    """
    now = utcnow()
    q = db.session.query(Debt).filter(Debt.id == debt.id, Debt.store_id == debt.store_id)

    if debt.balance_mode == BALANCE_MODE_STORED:
        return q.filter(Debt.remaining_cents >= amount_cents).update(
            {
                Debt.deposited_cents: Debt.deposited_cents + amount_cents,
                Debt.remaining_cents: Debt.owed_cents - Debt.deposited_cents - amount_cents,
                Debt.updated_at: now,
            },
            synchronize_session=False,
        )

    return q.filter(Debt.owed_cents - _paid_total_subquery(debt.id) >= amount_cents).update(
        {Debt.updated_at: now},
        synchronize_session=False,
    )


def record_payment(
    tenant: TenantContext,
    *,
    debt_id: int,
    amount,
    paid_to: str | None = None,
) -> tuple[DebtPayment, LedgerRow]:
    """
    Record a payment against a debt.

    Validation happens before any write: a malformed or non-positive amount,
    or an amount above the remaining balance, raises ValidationError and
    leaves the store untouched.

    Returns:
        (payment, ledger_row) where ledger_row is re-read from the store
        after commit.

    Raises:
        ValidationError: INVALID_AMOUNT, EXCEEDS_REMAINING_BALANCE
        NotFoundError: debt not in tenant's store
        StoreError: the store failed; nothing was recorded
    """
    amount_cents = parse_amount_cents(amount, field="amount")
    channel = _clean_paid_to(paid_to)

    def _op():
        debt = require_owned(
            lock_for_update(db.session.query(Debt).filter(Debt.id == debt_id)).first(),
            tenant,
            "Debt",
        )
        payments = db.session.query(DebtPayment).filter(DebtPayment.debt_id == debt.id).all()

        ledger_service.check_payment(_current_remaining(debt, payments), amount_cents)

        if _guarded_balance_update(debt, amount_cents) != 1:
            # Another session paid in between our read and our write.
            raise ValidationError(
                "Payment amount exceeds remaining balance",
                code="EXCEEDS_REMAINING_BALANCE",
                values=[format_cents(amount_cents)],
            )

        payment = DebtPayment(
            store_id=tenant.store_id,
            debt_id=debt.id,
            customer_id=debt.customer_id,
            product_id=debt.product_id,
            amount_cents=amount_cents,
            paid_to=channel,
            payment_date=utc_today(),
            recorded_by_user_id=tenant.user_id,
        )
        db.session.add(payment)
        db.session.flush()

        append_event(
            tenant,
            event_type="debt.payment_recorded",
            entity_type="debt",
            entity_id=debt.id,
            note=channel,
            payload={"payment_id": payment.id, "amount_cents": amount_cents},
        )
        db.session.commit()
        return payment

    payment = run_atomic(_op)
    return payment, get_ledger_row(tenant, debt_id)


# =============================================================================
# READS
# =============================================================================

def get_debt(tenant: TenantContext, debt_id: int) -> Debt:
    return require_owned(db.session.get(Debt, debt_id), tenant, "Debt")


def get_ledger_row(tenant: TenantContext, debt_id: int) -> LedgerRow:
    def _read():
        debt = get_debt(tenant, debt_id)
        payments = (
            scoped_query(DebtPayment, tenant)
            .filter(DebtPayment.debt_id == debt.id)
            .order_by(DebtPayment.id.asc())
            .all()
        )
        return ledger_service.build_row(to_debt_record(debt), [to_payment_record(p) for p in payments])

    return run_read(_read)


def get_debt_devices(tenant: TenantContext, debt_id: int) -> list[dict]:
    """Device identifiers on the debt, each marked sold or available."""
    def _read():
        ids = list(get_debt(tenant, debt_id).device_ids or [])
        sold = sold_device_ids(tenant, ids)
        return [{"device_id": d, "sold": d in sold} for d in ids]

    return run_read(_read)


def get_payment_history(tenant: TenantContext, debt_id: int) -> list[DebtPayment]:
    """Payments for a debt, newest first."""
    def _read():
        debt = get_debt(tenant, debt_id)
        return (
            scoped_query(DebtPayment, tenant)
            .filter(DebtPayment.debt_id == debt.id)
            .order_by(DebtPayment.payment_date.desc(), DebtPayment.id.desc())
            .all()
        )

    return run_read(_read)


def load_ledger(tenant: TenantContext, *, correlate: str = ledger_service.CORRELATE_DEBT_ID) -> list[LedgerRow]:
    """
    Fresh ledger for the whole store, unresolved debts first.

    With the (customer, product) correlation only the newest debt per pair
    is kept, matching snapshot-style histories.
    """
    def _read():
        debts = (
            scoped_query(Debt, tenant)
            .order_by(Debt.created_at.desc(), Debt.id.desc())
            .all()
        )
        payments = scoped_query(DebtPayment, tenant).order_by(DebtPayment.id.asc()).all()
        return [to_debt_record(d) for d in debts], [to_payment_record(p) for p in payments]

    records, payment_records = run_read(_read)
    if correlate == ledger_service.CORRELATE_CUSTOMER_PRODUCT:
        records = ledger_service.latest_snapshots(records)

    rows = ledger_service.compute_ledger_view(records, payment_records, correlate=correlate)
    return ledger_service.sort_unresolved_first(rows)


def list_ledger(
    tenant: TenantContext,
    *,
    search: str | None = None,
    status: str | None = None,
    correlate: str = ledger_service.CORRELATE_DEBT_ID,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    if correlate not in (ledger_service.CORRELATE_DEBT_ID, ledger_service.CORRELATE_CUSTOMER_PRODUCT):
        raise ValidationError(
            f"correlate must be '{ledger_service.CORRELATE_DEBT_ID}' or '{ledger_service.CORRELATE_CUSTOMER_PRODUCT}'",
            code="INVALID_FIELD",
            values=[correlate],
        )
    rows = ledger_service.filter_rows(load_ledger(tenant, correlate=correlate), search=search, status=status)
    return paginate(rows, page, per_page, serialize=lambda r: r.to_dict())


def reconcile_stored_balances(tenant: TenantContext) -> list[dict]:
    """
    Compare the running balance stored on STORED debts with their payment
    history. Returns one entry per drifted debt (empty list when consistent).
    """
    def _read():
        debts = scoped_query(Debt, tenant).filter(Debt.balance_mode == BALANCE_MODE_STORED).order_by(Debt.id).all()
        payments = scoped_query(DebtPayment, tenant).all()
        return debts, [to_payment_record(p) for p in payments]

    debts, payment_records = run_read(_read)
    grouped = ledger_service.group_payments(payment_records)

    drift = []
    for debt in debts:
        record = to_debt_record(debt)
        stored = ledger_service.stored_balance_row(record)
        row = ledger_service.build_row(record, grouped.get(debt.id, ()))
        if stored.paid_total_cents != row.paid_total_cents or debt.remaining_cents != row.remaining_cents:
            drift.append({
                "debt_id": debt.id,
                "customer_name": debt.customer_name,
                "stored_deposited_cents": stored.paid_total_cents,
                "stored_remaining_cents": debt.remaining_cents,
                "stored_status": stored.status,
                "paid_total_cents": row.paid_total_cents,
                "remaining_cents": row.remaining_cents,
                "status": row.status,
            })
    return drift
