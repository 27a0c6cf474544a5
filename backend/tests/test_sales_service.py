# Overview: Pytest coverage for device sale records.

import pytest

from trackey.models import DeviceSale, InventorySnapshot, StoreEvent
from trackey.services import inventory_service, sales_service
from trackey.validation import ConflictError, NotFoundError, ValidationError

from conftest import IMEI_1, IMEI_2, IMEI_3


@pytest.fixture
def product_a(db_session, tenant_a):
    return inventory_service.create_products(tenant_a, [
        {"name": "iPhone 13", "device_ids": [IMEI_1, IMEI_2]},
    ])[0]


class TestRecordDeviceSale:

    def test_sale_updates_counters(self, db_session, tenant_a, product_a):
        sale = sales_service.record_device_sale(tenant_a, device_id=f" {IMEI_1} ", amount="420000")

        assert sale.device_id == IMEI_1
        assert sale.product_id == product_a.id
        assert sale.amount_cents == 42000000

        snapshot = db_session.query(InventorySnapshot).filter_by(product_id=product_a.id).one()
        assert snapshot.quantity_sold == 1
        assert snapshot.available_qty == 1
        assert db_session.query(StoreEvent).filter_by(event_type="device.sold").count() == 1

    def test_device_stays_listed_on_product(self, db_session, tenant_a, product_a):
        sales_service.record_device_sale(tenant_a, device_id=IMEI_1)
        assert inventory_service.get_product(tenant_a, product_a.id)["device_ids"] == [IMEI_1, IMEI_2]

    def test_already_sold(self, db_session, tenant_a, product_a):
        sales_service.record_device_sale(tenant_a, device_id=IMEI_1)

        with pytest.raises(ConflictError) as exc:
            sales_service.record_device_sale(tenant_a, device_id=IMEI_1)

        assert exc.value.code == "DEVICE_ALREADY_SOLD"
        assert db_session.query(DeviceSale).count() == 1

    def test_unlisted_device(self, db_session, tenant_a, product_a):
        with pytest.raises(NotFoundError):
            sales_service.record_device_sale(tenant_a, device_id=IMEI_3)

    def test_device_listed_in_other_store(self, db_session, tenant_a, tenant_b, product_a):
        with pytest.raises(NotFoundError):
            sales_service.record_device_sale(tenant_b, device_id=IMEI_1)

    @pytest.mark.parametrize("device_id", ["123", None, 356789012345671])
    def test_malformed_device_id(self, db_session, tenant_a, device_id):
        with pytest.raises(ValidationError) as exc:
            sales_service.record_device_sale(tenant_a, device_id=device_id)
        assert exc.value.code == "INVALID_DEVICE_ID"

    def test_available_floors_at_zero(self, db_session, tenant_a, product_a):
        snapshot = db_session.query(InventorySnapshot).filter_by(product_id=product_a.id).one()
        snapshot.available_qty = 0
        db_session.commit()

        sales_service.record_device_sale(tenant_a, device_id=IMEI_2)

        assert db_session.get(InventorySnapshot, snapshot.id).available_qty == 0


class TestSoldDeviceIds:

    def test_subset_with_sales(self, db_session, tenant_a, product_a):
        sales_service.record_device_sale(tenant_a, device_id=IMEI_2)

        assert sales_service.sold_device_ids(tenant_a, [IMEI_1, IMEI_2, IMEI_3]) == {IMEI_2}

    def test_scoped_to_store(self, db_session, tenant_a, tenant_b, product_a):
        sales_service.record_device_sale(tenant_a, device_id=IMEI_2)

        assert sales_service.sold_device_ids(tenant_b, [IMEI_2]) == set()

    def test_empty_input(self, db_session, tenant_a):
        assert sales_service.sold_device_ids(tenant_a, []) == set()
