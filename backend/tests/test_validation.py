# Overview: Pytest coverage for money parsing and shared input validation.

from datetime import date, datetime
from decimal import Decimal

import pytest

from trackey.validation import (
    MAX_AMOUNT_CENTS,
    ConflictError,
    ValidationError,
    format_cents,
    optional_int,
    parse_amount_cents,
    parse_date,
    parse_optional_cents,
    require_text,
)


class TestParseAmountCents:

    @pytest.mark.parametrize("value,expected", [
        (250, 25000),
        ("250", 25000),
        ("250.5", 25050),
        ("250.50", 25050),
        (" 12.34 ", 1234),
        (0.1, 10),
        (Decimal("999.99"), 99999),
    ])
    def test_accepts_numeric_input(self, value, expected):
        assert parse_amount_cents(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "12,50", True, "NaN", "Infinity"])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_amount_cents(value)
        assert exc.value.code == "INVALID_AMOUNT"

    @pytest.mark.parametrize("value", [0, "0", "-5", -0.01])
    def test_rejects_non_positive(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_amount_cents(value)
        assert exc.value.code == "INVALID_AMOUNT"

    def test_rejects_sub_cent_precision(self):
        with pytest.raises(ValidationError) as exc:
            parse_amount_cents("10.005")
        assert "two decimal places" in str(exc.value)

    def test_rejects_amount_above_maximum(self):
        with pytest.raises(ValidationError):
            parse_amount_cents(MAX_AMOUNT_CENTS // 100 + 1)

    @pytest.mark.parametrize("value", ["1e999999", "9e28", "-1e999999", "1e-999999"])
    def test_extreme_exponents_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_amount_cents(value)
        assert exc.value.code == "INVALID_AMOUNT"

    def test_maximum_itself_accepted(self):
        assert parse_amount_cents("9999999.99") == MAX_AMOUNT_CENTS

    def test_error_names_field(self):
        with pytest.raises(ValidationError) as exc:
            parse_amount_cents("x", field="deposit")
        assert str(exc.value).startswith("deposit")


class TestParseOptionalCents:

    def test_blank_means_not_provided(self):
        assert parse_optional_cents(None, field="price") is None
        assert parse_optional_cents("  ", field="price") is None

    @pytest.mark.parametrize("value", [0, "0", "0.0", "0.00", " 0.00 ", Decimal("0")])
    def test_zero_allowed(self, value):
        assert parse_optional_cents(value, field="price") == 0

    def test_oversized_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_optional_cents("1e999999", field="price")
        assert exc.value.code == "INVALID_AMOUNT"

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            parse_optional_cents("-1", field="price")


class TestParseDate:

    @pytest.mark.parametrize("value", ["2026-03-01", " 2026-03-01 ", "2026-03-01T09:15:00Z", date(2026, 3, 1), datetime(2026, 3, 1, 9, 15)])
    def test_accepted(self, value):
        assert parse_date(value, field="expense_date") == date(2026, 3, 1)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_date(value, field="expense_date")
        assert exc.value.code == "MISSING_FIELD"

    @pytest.mark.parametrize("value", ["2026-13-01", "01/03/2026", "soon"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_date(value, field="expense_date")
        assert exc.value.code == "INVALID_DATE"
        assert exc.value.values == ["expense_date"]


class TestFormatCents:

    def test_formats_two_decimals(self):
        assert format_cents(45000) == "450.00"
        assert format_cents(5) == "0.05"

    def test_negative_kept(self):
        assert format_cents(-5000) == "-50.00"

    def test_none(self):
        assert format_cents(None) is None


class TestFieldHelpers:

    def test_require_text_strips(self):
        assert require_text({"name": "  iPhone  "}, "name") == "iPhone"

    def test_require_text_missing(self):
        with pytest.raises(ValidationError) as exc:
            require_text({"name": " "}, "name")
        assert exc.value.code == "MISSING_FIELD"
        assert exc.value.values == ["name"]

    def test_optional_int_rejects_float_strings(self):
        with pytest.raises(ValidationError):
            optional_int({"qty": "1.5"}, "qty")

    def test_optional_int_minimum(self):
        with pytest.raises(ValidationError):
            optional_int({"qty": 0}, "qty", minimum=1)
        assert optional_int({"qty": "3"}, "qty", minimum=1) == 3


class TestErrorPayloads:

    def test_validation_error_dict(self):
        err = ValidationError("bad", code="INVALID_DEVICE_ID", values=["123"])
        assert err.to_dict() == {"error": "bad", "code": "INVALID_DEVICE_ID", "values": ["123"]}

    def test_conflict_error_dict(self):
        err = ConflictError("taken", code="DEVICE_ID_CONFLICT", values=("1",))
        assert err.to_dict()["values"] == ["1"]
