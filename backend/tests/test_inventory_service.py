# Overview: Pytest coverage for products, device identifier sets and inventory snapshots.

"""
Inventory Service Tests

Covers:
- Batch product creation (all-or-nothing validation)
- Replacing a product's identifier list (available_qty, quantity_sold carry-over)
- Removing one identifier (decrement, floor at 0, no-op when absent)
- Deleting a product (debts and sales keep their records)
- Store-level uniqueness enforced by the unique index when validation is bypassed
- Reads: listing, detail with sold annotation, status lookup, snapshot resync
"""

import pytest

from trackey.extensions import db
from trackey.models import Debt, DeviceSale, InventorySnapshot, Product, ProductDevice, StoreEvent
from trackey.services import debt_service, inventory_service, sales_service
from trackey.validation import ConflictError, NotFoundError, ValidationError

from conftest import IMEI_1, IMEI_2, IMEI_3, IMEI_4, IMEI_5


def _create(tenant, name="iPhone 13", device_ids=(IMEI_1, IMEI_2), **fields):
    item = {"name": name, "device_ids": list(device_ids), **fields}
    return inventory_service.create_products(tenant, [item])[0]


class TestCreateProducts:

    def test_creates_product_with_devices_and_snapshot(self, db_session, tenant_a):
        product = _create(tenant_a, supplier="Slot", selling_price="420000")

        assert product.device_ids == [IMEI_1, IMEI_2]
        assert product.selling_price_cents == 42000000
        assert product.purchase_qty == 2
        assert product.snapshot.available_qty == 2
        assert product.snapshot.quantity_sold == 0
        assert db_session.query(StoreEvent).filter_by(event_type="product.created").count() == 1

    def test_batch_created_together(self, db_session, tenant_a):
        products = inventory_service.create_products(tenant_a, [
            {"name": "iPhone 13", "device_ids": [IMEI_1]},
            {"name": "Galaxy S22", "device_ids": f"{IMEI_2},{IMEI_3}"},
        ])

        assert [p.name for p in products] == ["iPhone 13", "Galaxy S22"]
        assert db_session.query(ProductDevice).count() == 3

    def test_duplicate_across_batch_rejects_everything(self, db_session, tenant_a):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_products(tenant_a, [
                {"name": "iPhone 13", "device_ids": [IMEI_1, IMEI_2]},
                {"name": "Galaxy S22", "device_ids": [IMEI_2]},
            ])

        assert exc.value.code == "DUPLICATE_DEVICE_ID"
        assert exc.value.values == [IMEI_2]
        assert db_session.query(Product).count() == 0

    def test_invalid_identifier_rejects_batch(self, db_session, tenant_a):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_products(tenant_a, [
                {"name": "iPhone 13", "device_ids": [IMEI_1]},
                {"name": "Galaxy S22", "device_ids": ["12345"]},
            ])

        assert exc.value.code == "INVALID_DEVICE_ID"
        assert db_session.query(Product).count() == 0

    def test_conflict_with_existing_product(self, db_session, tenant_a):
        _create(tenant_a, device_ids=[IMEI_1])

        with pytest.raises(ConflictError) as exc:
            _create(tenant_a, name="Galaxy", device_ids=[IMEI_2, IMEI_1])

        assert exc.value.code == "DEVICE_ID_CONFLICT"
        assert exc.value.values == [IMEI_1]
        assert db_session.query(Product).count() == 1

    def test_name_and_devices_required(self, db_session, tenant_a):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_products(tenant_a, [{"device_ids": [IMEI_1]}])
        assert exc.value.values == ["name"]

        with pytest.raises(ValidationError) as exc:
            inventory_service.create_products(tenant_a, [{"name": "iPhone", "device_ids": []}])
        assert exc.value.values == ["device_ids"]

    def test_empty_batch(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            inventory_service.create_products(tenant_a, [])

    def test_same_identifier_allowed_in_another_store(self, db_session, tenant_a, tenant_b):
        _create(tenant_a, device_ids=[IMEI_1])
        other = _create(tenant_b, device_ids=[IMEI_1])

        assert other.device_ids == [IMEI_1]

    def test_unique_index_catches_bypassed_validation(self, db_session, tenant_a, monkeypatch):
        """A racing insert that slips past the pre-check is still rejected as a conflict."""
        _create(tenant_a, device_ids=[IMEI_1])
        monkeypatch.setattr(inventory_service, "validate_device_id_set", lambda ids, existing: list(ids))

        with pytest.raises(ConflictError) as exc:
            inventory_service.create_products(tenant_a, [
                {"name": "Pixel 7", "device_ids": [IMEI_3]},
                {"name": "Galaxy", "device_ids": [IMEI_2, IMEI_1]},
            ])

        assert exc.value.code == "DEVICE_ID_CONFLICT"
        assert exc.value.values == [IMEI_1]
        assert db_session.query(Product).count() == 1
        assert db_session.query(ProductDevice).count() == 1


class TestApplyDeviceIdSet:

    def test_replacement_sets_available_to_list_size(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])

        snapshot = inventory_service.apply_device_id_set(
            tenant_a, product_id=product.id, device_ids=[IMEI_2, IMEI_3, IMEI_4]
        )

        assert snapshot.available_qty == 3
        product = db_session.get(Product, product.id)
        assert sorted(product.device_ids) == sorted([IMEI_2, IMEI_3, IMEI_4])

    def test_quantity_sold_preserved(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])
        sales_service.record_device_sale(tenant_a, device_id=IMEI_1)

        snapshot = inventory_service.apply_device_id_set(
            tenant_a, product_id=product.id, device_ids=[IMEI_1, IMEI_2, IMEI_3]
        )

        assert snapshot.quantity_sold == 1
        assert snapshot.available_qty == 3

    def test_own_identifiers_do_not_conflict(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])

        snapshot = inventory_service.apply_device_id_set(
            tenant_a, product_id=product.id, device_ids=[IMEI_1, IMEI_2]
        )

        assert snapshot.available_qty == 2

    def test_conflict_with_other_product_leaves_both_unchanged(self, db_session, tenant_a):
        first = _create(tenant_a, device_ids=[IMEI_1])
        second = _create(tenant_a, name="Galaxy", device_ids=[IMEI_2])

        with pytest.raises(ConflictError) as exc:
            inventory_service.apply_device_id_set(tenant_a, product_id=second.id, device_ids=[IMEI_3, IMEI_1])

        assert exc.value.values == [IMEI_1]
        assert db_session.get(Product, first.id).device_ids == [IMEI_1]
        assert db_session.get(Product, second.id).device_ids == [IMEI_2]

    def test_fields_updated_with_devices(self, db_session, tenant_a):
        product = _create(tenant_a)

        inventory_service.apply_device_id_set(
            tenant_a,
            product_id=product.id,
            device_ids=[IMEI_1],
            fields={"name": "iPhone 13 Pro", "selling_price_cents": 5000},
        )

        product = db_session.get(Product, product.id)
        assert product.name == "iPhone 13 Pro"
        assert product.selling_price_cents == 5000

    def test_unknown_field_rejected(self, db_session, tenant_a):
        product = _create(tenant_a)
        with pytest.raises(ValidationError):
            inventory_service.apply_device_id_set(
                tenant_a, product_id=product.id, device_ids=[IMEI_1], fields={"store_id": 99}
            )

    def test_version_bumped(self, db_session, tenant_a):
        product = _create(tenant_a)
        version = product.version_id

        inventory_service.apply_device_id_set(tenant_a, product_id=product.id, device_ids=[IMEI_1])

        assert db_session.get(Product, product.id).version_id == version + 1

    def test_other_store_product_not_found(self, db_session, tenant_a, tenant_b):
        product = _create(tenant_b)
        with pytest.raises(NotFoundError):
            inventory_service.apply_device_id_set(tenant_a, product_id=product.id, device_ids=[IMEI_5])


class TestRemoveDeviceId:

    def test_decrements_available(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])

        snapshot = inventory_service.remove_device_id(tenant_a, product_id=product.id, device_id=IMEI_1)

        assert snapshot.available_qty == 1
        assert db_session.get(Product, product.id).device_ids == [IMEI_2]
        assert db_session.query(StoreEvent).filter_by(event_type="product.device_removed").count() == 1

    def test_absent_identifier_is_noop(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])

        snapshot = inventory_service.remove_device_id(tenant_a, product_id=product.id, device_id=IMEI_5)

        assert snapshot.available_qty == 2
        assert db_session.query(ProductDevice).count() == 2

    def test_floor_at_zero_when_counter_drifted(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])
        snapshot = db_session.query(InventorySnapshot).filter_by(product_id=product.id).one()
        snapshot.available_qty = 0
        db_session.commit()

        snapshot = inventory_service.remove_device_id(tenant_a, product_id=product.id, device_id=IMEI_1)

        assert snapshot.available_qty == 0


class TestDeleteProduct:

    def test_debts_and_sales_survive(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])
        row = debt_service.create_debt(tenant_a, owed="100", customer_name="Ada", product_id=product.id)
        sales_service.record_device_sale(tenant_a, device_id=IMEI_1)

        inventory_service.delete_product(tenant_a, product.id)

        assert db_session.query(Product).count() == 0
        assert db_session.query(ProductDevice).count() == 0
        assert db_session.query(InventorySnapshot).count() == 0
        debt = db_session.get(Debt, row.debt.id)
        db_session.refresh(debt)
        assert debt.product_id is None
        assert debt.product_name == "iPhone 13"
        sale = db_session.query(DeviceSale).one()
        assert sale.product_id is None
        assert sales_service.sold_device_ids(tenant_a, [IMEI_1]) == {IMEI_1}

    def test_identifiers_reusable_after_delete(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1])
        inventory_service.delete_product(tenant_a, product.id)

        again = _create(tenant_a, name="Relisted", device_ids=[IMEI_1])

        assert again.device_ids == [IMEI_1]


class TestReads:

    def test_get_product_annotates_sold(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2, IMEI_3])
        sales_service.record_device_sale(tenant_a, device_id=IMEI_2)

        detail = inventory_service.get_product(tenant_a, product.id)

        assert detail["devices"]["items"] == [
            {"device_id": IMEI_1, "sold": False},
            {"device_id": IMEI_2, "sold": True},
            {"device_id": IMEI_3, "sold": False},
        ]
        assert detail["sold_count"] == 1
        assert detail["inventory"]["quantity_sold"] == 1

    def test_get_product_device_pages(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2, IMEI_3])

        detail = inventory_service.get_product(tenant_a, product.id, page=2, per_page=2)

        assert [d["device_id"] for d in detail["devices"]["items"]] == [IMEI_3]
        assert detail["devices"]["pagination"]["total"] == 3

    def test_list_search_by_device(self, db_session, tenant_a):
        _create(tenant_a, name="iPhone 13", device_ids=[IMEI_1])
        _create(tenant_a, name="Galaxy S22", device_ids=[IMEI_2])

        result = inventory_service.list_products(tenant_a, search=IMEI_2)

        assert [p["name"] for p in result["items"]] == ["Galaxy S22"]

    def test_list_ordered_by_name(self, db_session, tenant_a):
        _create(tenant_a, name="Pixel 7", device_ids=[IMEI_1])
        _create(tenant_a, name="Galaxy S22", device_ids=[IMEI_2])

        names = [p["name"] for p in inventory_service.list_products(tenant_a)["items"]]

        assert names == ["Galaxy S22", "Pixel 7"]

    def test_device_status(self, db_session, tenant_a):
        _create(tenant_a, device_ids=[IMEI_1, IMEI_2])
        sales_service.record_device_sale(tenant_a, device_id=IMEI_2)

        status = inventory_service.device_status(tenant_a, [IMEI_1, IMEI_2, IMEI_5])

        assert status == {"sold": [IMEI_2], "available": [IMEI_1, IMEI_5]}


class TestResyncSnapshots:

    def test_in_sync(self, db_session, tenant_a):
        _create(tenant_a)
        assert inventory_service.resync_snapshots(tenant_a) == []

    def test_reports_and_fixes_drift(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2, IMEI_3])
        snapshot = db_session.query(InventorySnapshot).filter_by(product_id=product.id).one()
        snapshot.available_qty = 7
        db_session.commit()

        drift = inventory_service.resync_snapshots(tenant_a)
        assert drift == [{
            "product_id": product.id,
            "name": "iPhone 13",
            "available_qty": 7,
            "expected_available_qty": 3,
        }]
        assert db_session.get(InventorySnapshot, snapshot.id).available_qty == 7

        inventory_service.resync_snapshots(tenant_a, fix=True)

        assert inventory_service.resync_snapshots(tenant_a) == []
        assert db.session.get(InventorySnapshot, snapshot.id).available_qty == 3

    def test_sold_devices_not_counted_as_available(self, db_session, tenant_a):
        product = _create(tenant_a, device_ids=[IMEI_1, IMEI_2])
        sales_service.record_device_sale(tenant_a, device_id=IMEI_1)
        inventory_service.apply_device_id_set(tenant_a, product_id=product.id, device_ids=[IMEI_1, IMEI_2])

        drift = inventory_service.resync_snapshots(tenant_a)

        assert drift[0]["available_qty"] == 2
        assert drift[0]["expected_available_qty"] == 1
