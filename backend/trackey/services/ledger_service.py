# Overview: Pure debt-ledger computations over fetched debt and payment records.

"""
Debt Ledger

Derives balances and status from debts plus their payment history. Nothing
here touches the database: debt_service fetches rows, converts them to
DebtRecord / PaymentRecord and calls into this module, so every rule can be
tested in isolation.

LEDGER RULES:
- paid_total = sum(amount) of the debt's payments
- remaining = owed - paid_total (kept as-is when negative, see below)
- last_payment_date = max(payment_date); ties are unordered
- status: paid if remaining <= 0, partial if paid_total > 0, else owing
- Display order: unresolved (remaining > 0) before settled, otherwise stable

OVER-PAYMENT: remaining is never clamped. A history that sums past the owed
amount (imported data, or two sessions racing before the conditional update
existed) shows a negative remaining so the surplus stays auditable; its
status is still "paid".

CORRELATION:
Payments are matched to debts either by debt id, or by the
(customer_id, product_id) compound key used by older snapshot-style data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from ..time_utils import to_iso_date, to_utc_z
from ..validation import ValidationError, format_cents


STATUS_PAID = "paid"
STATUS_PARTIAL = "partial"
STATUS_OWING = "owing"
STATUSES = (STATUS_OWING, STATUS_PARTIAL, STATUS_PAID)

CORRELATE_DEBT_ID = "debt_id"
CORRELATE_CUSTOMER_PRODUCT = "customer_product"


@dataclass(frozen=True)
class DebtRecord:
    id: int
    customer_id: int
    owed_cents: int
    product_id: Optional[int] = None
    customer_name: str = ""
    product_name: Optional[str] = None
    device_ids: tuple[str, ...] = ()
    # Running balance snapshot; only meaningful for STORED debts
    deposited_cents: Optional[int] = None
    balance_mode: str = "DERIVED"
    debt_date: Optional[date] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "customer_name": self.customer_name,
            "product_name": self.product_name,
            "device_ids": list(self.device_ids),
            "balance_mode": self.balance_mode,
            "owed_cents": self.owed_cents,
            "debt_date": to_iso_date(self.debt_date),
            "created_at": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class PaymentRecord:
    amount_cents: int
    payment_date: date
    debt_id: Optional[int] = None
    customer_id: Optional[int] = None
    product_id: Optional[int] = None
    paid_to: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class LedgerRow:
    """A debt merged with its derived payment figures."""
    debt: DebtRecord
    paid_total_cents: int
    remaining_cents: int
    status: str
    last_payment_date: Optional[date] = None
    last_paid_to: Optional[str] = None
    payment_count: int = 0
    payments: tuple[PaymentRecord, ...] = field(default=(), repr=False, compare=False)

    @property
    def is_unresolved(self) -> bool:
        return self.remaining_cents > 0

    def to_dict(self) -> dict:
        row = self.debt.to_dict()
        row.update({
            "paid_total_cents": self.paid_total_cents,
            "remaining_cents": self.remaining_cents,
            "paid_total": format_cents(self.paid_total_cents),
            "remaining": format_cents(self.remaining_cents),
            "owed": format_cents(self.debt.owed_cents),
            "status": self.status,
            "last_payment_date": to_iso_date(self.last_payment_date),
            "last_paid_to": self.last_paid_to,
            "payment_count": self.payment_count,
        })
        return row


def derive_status(remaining_cents: int, paid_total_cents: int) -> str:
    if remaining_cents <= 0:
        return STATUS_PAID
    if paid_total_cents > 0:
        return STATUS_PARTIAL
    return STATUS_OWING


def _debt_key(debt: DebtRecord, correlate: str):
    if correlate == CORRELATE_DEBT_ID:
        return debt.id
    return (debt.customer_id, debt.product_id)


def _payment_key(payment: PaymentRecord, correlate: str):
    if correlate == CORRELATE_DEBT_ID:
        return payment.debt_id
    return (payment.customer_id, payment.product_id)


def group_payments(payments: Iterable[PaymentRecord], correlate: str = CORRELATE_DEBT_ID) -> dict:
    if correlate not in (CORRELATE_DEBT_ID, CORRELATE_CUSTOMER_PRODUCT):
        raise ValueError(f"Unknown correlation key: {correlate}")
    grouped: dict = {}
    for p in payments:
        grouped.setdefault(_payment_key(p, correlate), []).append(p)
    return grouped


def build_row(debt: DebtRecord, payments: Iterable[PaymentRecord]) -> LedgerRow:
    """Derive the ledger figures for one debt from its payments."""
    history = tuple(payments)
    paid_total = sum(p.amount_cents for p in history)
    remaining = debt.owed_cents - paid_total

    last = None
    for p in history:
        if last is None or p.payment_date >= last.payment_date:
            last = p

    return LedgerRow(
        debt=debt,
        paid_total_cents=paid_total,
        remaining_cents=remaining,
        status=derive_status(remaining, paid_total),
        last_payment_date=last.payment_date if last else None,
        last_paid_to=last.paid_to if last else None,
        payment_count=len(history),
        payments=history,
    )


def compute_ledger_view(
    debts: Iterable[DebtRecord],
    payments: Iterable[PaymentRecord],
    *,
    correlate: str = CORRELATE_DEBT_ID,
) -> list[LedgerRow]:
    """
    Merge debts with their payment history.

    Output order follows the input debts; use sort_unresolved_first for
    display. Inputs are not modified.
    """
    grouped = group_payments(payments, correlate)
    return [build_row(d, grouped.get(_debt_key(d, correlate), ())) for d in debts]


def stored_balance_row(debt: DebtRecord) -> LedgerRow:
    """
    Ledger row for snapshot-style data that has no payment table: the
    running deposited amount on the row is taken as the paid total and the
    debt date as the last payment date.
    """
    deposited = debt.deposited_cents or 0
    remaining = debt.owed_cents - deposited
    return LedgerRow(
        debt=debt,
        paid_total_cents=deposited,
        remaining_cents=remaining,
        status=derive_status(remaining, deposited),
        last_payment_date=debt.debt_date if deposited > 0 else None,
    )


def latest_snapshots(debts: Iterable[DebtRecord]) -> list[DebtRecord]:
    """
    Keep the newest row per (customer_id, product_id).

    Older data wrote a fresh debt row on every payment; only the latest one
    carries the current balance. "Newest" is the greatest (created_at, id).
    Output keeps first-seen key order.
    """
    latest: dict = {}
    order: list = []
    for d in debts:
        key = (d.customer_id, d.product_id)
        current = latest.get(key)
        if current is None:
            order.append(key)
            latest[key] = d
            continue
        if (d.created_at or datetime.min, d.id) > (current.created_at or datetime.min, current.id):
            latest[key] = d
    return [latest[k] for k in order]


def sort_unresolved_first(rows: Iterable[LedgerRow]) -> list[LedgerRow]:
    return sorted(rows, key=lambda r: 0 if r.is_unresolved else 1)


def filter_rows(rows: Iterable[LedgerRow], search: str | None = None, status: str | None = None) -> list[LedgerRow]:
    """Case-insensitive search over customer, product, device ids and settlement channel."""
    if status is not None and status not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}", code="INVALID_FIELD", values=[status])

    q = (search or "").strip().lower()
    result = []
    for r in rows:
        if status is not None and r.status != status:
            continue
        if q:
            haystack = [r.debt.customer_name or "", r.debt.product_name or "", r.last_paid_to or ""]
            haystack.extend(r.debt.device_ids)
            if not any(q in h.lower() for h in haystack):
                continue
        result.append(r)
    return result


def check_payment(remaining_cents: int, amount_cents: int) -> None:
    """
    Payment precondition, evaluated against the freshest remaining balance.

    Raises ValidationError:
    - INVALID_AMOUNT if amount <= 0
    - EXCEEDS_REMAINING_BALANCE if amount > remaining
    """
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be greater than zero", code="INVALID_AMOUNT", values=[amount_cents])
    if amount_cents > remaining_cents:
        raise ValidationError(
            f"Payment amount exceeds remaining balance of {format_cents(max(remaining_cents, 0))}",
            code="EXCEEDS_REMAINING_BALANCE",
            values=[format_cents(amount_cents), format_cents(remaining_cents)],
        )
