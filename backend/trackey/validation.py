from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical balances
MAX_AMOUNT_CENTS = 999_999_999
MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100
CENT = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, *, code: str = "INVALID_FIELD", values: Iterable[Any] | None = None):
        super().__init__(message)
        self.code = code
        self.values = list(values or [])

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "values": self.values}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., device id already on another product)."""

    def __init__(self, message: str, *, code: str = "CONFLICT", values: Iterable[Any] | None = None):
        super().__init__(message)
        self.code = code
        self.values = list(values or [])

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "values": self.values}


class NotFoundError(LookupError):
    """404-level: the row does not exist inside the caller's store."""


def _parse_decimal(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required and must be a number", code="INVALID_AMOUNT", values=[value])

    raw = value.strip() if isinstance(value, str) else str(value)
    if not raw:
        raise ValidationError(f"{field} is required and must be a number", code="INVALID_AMOUNT", values=[value])

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", code="INVALID_AMOUNT", values=[value])

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", code="INVALID_AMOUNT", values=[value])
    return amount


def parse_amount_cents(value: Any, *, field: str = "amount") -> int:
    """
    Convert a user-entered money amount into integer cents.

    Accepts ints, Decimals and numeric strings ("250", "250.5", "250.50").
    Floats are routed through str() so 0.1 stays 10 cents.

    Raises ValidationError (code INVALID_AMOUNT) when the value is missing,
    non-numeric, non-finite, has more than two decimal places, is <= 0, or
    exceeds MAX_AMOUNT_CENTS.
    """
    amount = _parse_decimal(value, field)

    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero", code="INVALID_AMOUNT", values=[value])

    # Bounded before scaling: "1e999999" * 100 overflows the decimal context
    if amount > MAX_AMOUNT:
        raise ValidationError(
            f"{field} cannot exceed {format_cents(MAX_AMOUNT_CENTS)}",
            code="INVALID_AMOUNT",
            values=[value],
        )

    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} cannot have more than two decimal places", code="INVALID_AMOUNT", values=[value])

    return int(amount * 100)


def parse_optional_cents(value: Any, *, field: str) -> int | None:
    """Like parse_amount_cents, but None/"" mean "not provided" and zero is allowed."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if _parse_decimal(value, field) == 0:
        return 0
    return parse_amount_cents(value, field=field)


def format_cents(cents: int | None) -> str | None:
    """Render cents as a plain two-decimal string ("1234.50")."""
    if cents is None:
        return None
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{whole}.{frac:02d}"


def require_text(payload: dict, key: str, *, max_length: int = 255) -> str:
    value = payload.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{key} is required", code="MISSING_FIELD", values=[key])
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters", code="INVALID_FIELD", values=[key])
    return text


def optional_text(payload: dict, key: str, *, max_length: int = 255) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters", code="INVALID_FIELD", values=[key])
    return text


def optional_int(payload: dict, key: str, *, minimum: int = 0) -> int | None:
    """Strict integer parsing: rejects floats, decimals and scientific notation."""
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer", code="INVALID_FIELD", values=[key])
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{key} must be an integer", code="INVALID_FIELD", values=[key])
    if parsed < minimum:
        raise ValidationError(f"{key} must be >= {minimum}", code="INVALID_FIELD", values=[key])
    return parsed


def parse_date(value: Any, *, field: str) -> date:
    """Accept an ISO date ("2026-03-01") or a date object; reject anything else."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", code="MISSING_FIELD", values=[field])
    text = str(value).strip().split("T", 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", code="INVALID_DATE", values=[field])
