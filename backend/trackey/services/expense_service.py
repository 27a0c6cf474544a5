# Overview: Service-layer operations for store expenses.

"""
Expense Service

Running costs recorded by store staff. Expenses are independent of the debt
ledger and inventory: they only carry a date, a free-text type, an amount in
cents and an optional description.

Who may delete is decided by the route (DELETE_EXPENSES permission, held by
the store owner only); every operation here is scoped to the tenant's store.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..validation import (
    ValidationError,
    format_cents,
    optional_text,
    parse_amount_cents,
    parse_date,
    require_text,
)
from .concurrency import run_atomic, run_read
from .event_log_service import append_event
from .pagination import paginate
from .tenant_service import TenantContext, require_owned, scoped_query


def parse_expense_fields(payload: dict, *, partial: bool) -> dict:
    """
    partial=False: create semantics (date, type and amount required)
    partial=True: only keys present in payload are validated and returned
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", code="INVALID_FIELD")

    fields: dict = {}
    if not partial or "expense_date" in payload:
        fields["expense_date"] = parse_date(payload.get("expense_date"), field="expense_date")
    if not partial or "expense_type" in payload:
        fields["expense_type"] = require_text(payload, "expense_type", max_length=128)
    if not partial or "amount" in payload:
        fields["amount_cents"] = parse_amount_cents(payload.get("amount"))
    if not partial or "description" in payload:
        fields["description"] = optional_text(payload, "description", max_length=500)
    return fields


def get_expense(tenant: TenantContext, expense_id: int) -> Expense:
    return require_owned(db.session.get(Expense, expense_id), tenant, "Expense")


# =============================================================================
# MUTATIONS
# =============================================================================

def create_expense(tenant: TenantContext, payload: dict) -> Expense:
    fields = parse_expense_fields(payload, partial=False)

    def _op():
        expense = Expense(store_id=tenant.store_id, recorded_by_user_id=tenant.user_id, **fields)
        db.session.add(expense)
        db.session.flush()

        append_event(
            tenant,
            event_type="expense.created",
            entity_type="expense",
            entity_id=expense.id,
            note=expense.expense_type,
            payload={"amount_cents": expense.amount_cents},
        )
        db.session.commit()
        return expense

    return run_atomic(_op)


def update_expense(tenant: TenantContext, expense_id: int, payload: dict) -> Expense:
    """
    Correct an existing expense. Only the keys present in payload change.

    Raises:
        ValidationError: bad date, blank type, bad amount, nothing to change
        NotFoundError: expense not in the tenant's store
    """
    fields = parse_expense_fields(payload, partial=True)
    if not fields:
        raise ValidationError(
            "Nothing to update; send expense_date, expense_type, amount or description",
            code="MISSING_FIELD",
        )

    def _op():
        expense = get_expense(tenant, expense_id)
        changed = {k: v for k, v in fields.items() if getattr(expense, k) != v}
        for key, value in changed.items():
            setattr(expense, key, value)

        if changed:
            append_event(
                tenant,
                event_type="expense.updated",
                entity_type="expense",
                entity_id=expense.id,
                payload={"fields": sorted(changed)},
            )
        db.session.commit()
        return expense

    return run_atomic(_op)


def delete_expense(tenant: TenantContext, expense_id: int) -> None:
    def _op():
        expense = get_expense(tenant, expense_id)
        append_event(
            tenant,
            event_type="expense.deleted",
            entity_type="expense",
            entity_id=expense.id,
            note=expense.expense_type,
            payload={"amount_cents": expense.amount_cents, "expense_date": expense.expense_date.isoformat()},
        )
        db.session.delete(expense)
        db.session.commit()

    run_atomic(_op)


# =============================================================================
# READS
# =============================================================================

def list_expenses(
    tenant: TenantContext,
    *,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Newest expense first; search matches type or description, case-insensitively."""
    def _read():
        expenses = (
            scoped_query(Expense, tenant)
            .order_by(Expense.expense_date.desc(), Expense.id.desc())
            .all()
        )
        q = (search or "").strip().lower()
        if q:
            expenses = [
                e for e in expenses
                if q in e.expense_type.lower() or q in (e.description or "").lower()
            ]
        result = paginate(expenses, page, per_page, serialize=lambda e: e.to_dict())
        result["total_amount"] = format_cents(sum(e.amount_cents for e in expenses))
        return result

    return run_read(_read)


def load_expense(tenant: TenantContext, expense_id: int) -> Expense:
    return run_read(lambda: get_expense(tenant, expense_id))
