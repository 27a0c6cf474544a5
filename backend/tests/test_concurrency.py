# Overview: Pytest coverage for transaction helpers and store-failure translation.

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from trackey.extensions import db
from trackey.models import Customer
from trackey.services.concurrency import StoreError, run_atomic, run_read
from trackey.validation import ConflictError, ValidationError


def _add_customer_then(exc, store_id):
    def _op():
        db.session.add(Customer(store_id=store_id, full_name="Ada"))
        db.session.flush()
        raise exc
    return _op


class TestRunAtomic:

    def test_returns_result(self, db_session):
        assert run_atomic(lambda: 42) == 42

    def test_domain_errors_propagate_and_roll_back(self, db_session, store_a):
        with pytest.raises(ValidationError):
            run_atomic(_add_customer_then(ValidationError("bad"), store_a.id))

        assert db_session.query(Customer).count() == 0

    def test_integrity_error_becomes_conflict(self, db_session, store_a):
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(ConflictError) as exc:
            run_atomic(_add_customer_then(err, store_a.id))

        assert exc.value.code == "CONSTRAINT_VIOLATION"
        assert db_session.query(Customer).count() == 0

    def test_integrity_error_custom_translation(self, db_session, store_a):
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(ConflictError) as exc:
            run_atomic(
                _add_customer_then(err, store_a.id),
                on_integrity_error=lambda e: ConflictError("taken", code="DEVICE_ID_CONFLICT", values=["1"]),
            )

        assert exc.value.code == "DEVICE_ID_CONFLICT"

    def test_stale_data_becomes_concurrent_modification(self, db_session, store_a):
        with pytest.raises(ConflictError) as exc:
            run_atomic(_add_customer_then(StaleDataError("version mismatch"), store_a.id))

        assert exc.value.code == "CONCURRENT_MODIFICATION"

    def test_driver_failure_becomes_store_error(self, db_session, store_a):
        err = OperationalError("COMMIT", {}, Exception("database is locked"))

        with pytest.raises(StoreError) as exc:
            run_atomic(_add_customer_then(err, store_a.id))

        assert isinstance(exc.value.__cause__, OperationalError)
        assert db_session.query(Customer).count() == 0


class TestRunRead:

    def test_driver_failure_becomes_store_error(self, db_session):
        def _read():
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        with pytest.raises(StoreError):
            run_read(_read)

    def test_other_errors_propagate(self, db_session):
        with pytest.raises(KeyError):
            run_read(lambda: {}["missing"])
