# Overview: Pytest coverage for device identifier rules.

import pytest

from trackey.services import device_service
from trackey.validation import ConflictError, ValidationError

from conftest import IMEI_1, IMEI_2, IMEI_3


class TestDeviceIdFormat:

    @pytest.mark.parametrize("value", [IMEI_1, "000000000000000"])
    def test_valid(self, value):
        assert device_service.is_valid_device_id(value)

    @pytest.mark.parametrize("value", [
        "35678901234567",        # 14 digits
        "3567890123456712",      # 16 digits
        "35678901234567a",
        " 356789012345671",
        "٣٥٦٧٨٩٠١٢٣٤٥٦٧١",       # non-ASCII digits
        356789012345671,
        None,
    ])
    def test_invalid(self, value):
        assert not device_service.is_valid_device_id(value)


class TestNormalize:

    def test_comma_string(self):
        assert device_service.normalize_device_ids(f" {IMEI_1}, ,{IMEI_2} ") == [IMEI_1, IMEI_2]

    def test_list_trimmed_and_blanks_dropped(self):
        assert device_service.normalize_device_ids([f"{IMEI_1} ", "", None, IMEI_2]) == [IMEI_1, IMEI_2]

    def test_duplicates_kept_for_reporting(self):
        assert device_service.normalize_device_ids([IMEI_1, IMEI_1]) == [IMEI_1, IMEI_1]

    def test_numbers_rejected(self):
        with pytest.raises(ValidationError) as exc:
            device_service.normalize_device_ids([356789012345671])
        assert exc.value.code == "INVALID_DEVICE_ID"

    def test_wrong_container_rejected(self):
        with pytest.raises(ValidationError):
            device_service.normalize_device_ids({"a": IMEI_1})

    def test_none_is_empty(self):
        assert device_service.normalize_device_ids(None) == []


class TestValidateDeviceIdSet:

    def test_valid_set_returned(self):
        assert device_service.validate_device_id_set([IMEI_1, IMEI_2], set()) == [IMEI_1, IMEI_2]

    def test_invalid_format_lists_every_offender(self):
        with pytest.raises(ValidationError) as exc:
            device_service.validate_device_id_set([IMEI_1, "123", "abc"], set())

        assert exc.value.code == "INVALID_DEVICE_ID"
        assert exc.value.values == ["123", "abc"]

    def test_duplicates_within_submission(self):
        with pytest.raises(ValidationError) as exc:
            device_service.validate_device_id_set([IMEI_1, IMEI_2, IMEI_1, IMEI_1], set())

        assert exc.value.code == "DUPLICATE_DEVICE_ID"
        assert exc.value.values == [IMEI_1]

    def test_conflict_with_other_products(self):
        with pytest.raises(ConflictError) as exc:
            device_service.validate_device_id_set([IMEI_1, IMEI_2, IMEI_3], {IMEI_3, IMEI_2})

        assert exc.value.code == "DEVICE_ID_CONFLICT"
        assert exc.value.values == [IMEI_2, IMEI_3]

    def test_format_checked_before_conflicts(self):
        with pytest.raises(ValidationError) as exc:
            device_service.validate_device_id_set(["bad", IMEI_1], {IMEI_1})
        assert exc.value.code == "INVALID_DEVICE_ID"

    def test_duplicates_checked_before_conflicts(self):
        with pytest.raises(ValidationError) as exc:
            device_service.validate_device_id_set([IMEI_1, IMEI_1], {IMEI_1})
        assert exc.value.code == "DUPLICATE_DEVICE_ID"

    def test_empty_set_is_valid(self):
        assert device_service.validate_device_id_set([], {IMEI_1}) == []


class TestSoldStatus:

    def test_exact_trimmed_match(self):
        sold = device_service.classify_sold_status([IMEI_1, IMEI_2], [f" {IMEI_1} ", "35678901234567"])
        assert sold == {IMEI_1}

    def test_partition_preserves_order(self):
        sold, available = device_service.partition_devices([IMEI_3, IMEI_1, IMEI_2], [IMEI_1])

        assert sold == [IMEI_1]
        assert available == [IMEI_3, IMEI_2]

    def test_nothing_sold(self):
        assert device_service.partition_devices([IMEI_1], []) == ([], [IMEI_1])
