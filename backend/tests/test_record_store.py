# Overview: Pytest coverage for the record store and the sync state machine.

import pytest
from maiduka.models import Customer, Product
from maiduka.models.base import STATE_CREATED, STATE_PENDING_SYNC, STATE_SOFT_DELETED, STATE_SYNCED
from maiduka.services import sync_service
from maiduka.services.errors import ErrorKind, LedgerValidationError
from maiduka.services.inventory_service import update_stock
from maiduka.services.record_store import RecordStore, resolve_entity


class TestRecordStore:
    def test_insert_marks_pending_and_stamps_times(self, db_session):
        store = RecordStore(clock=lambda: 1_700_000_000_000)
        customer = Customer(shop_id="shop-1", name="Juma")
        store.insert(customer)
        db_session.commit()

        assert customer.sync_status == "pending"
        assert customer.created_at == 1_700_000_000_000
        assert customer.updated_at == 1_700_000_000_000
        assert customer.record_state == STATE_CREATED

    def test_get_by_id_hides_soft_deleted(self, db_session, customer):
        store = RecordStore()
        assert store.soft_delete(customer) == 1
        db_session.commit()

        assert store.get_by_id(Customer, customer.id) is None
        assert store.get_by_id(Customer, customer.id, include_deleted=True).id == customer.id

    def test_soft_delete_twice_is_noop(self, db_session, customer):
        store = RecordStore()
        assert store.soft_delete(customer) == 1
        assert store.soft_delete(customer) == 0

    def test_next_sequence_starts_at_one(self, db_session, product):
        from maiduka.models import StockAdjustment
        store = RecordStore()
        assert store.next_sequence(StockAdjustment, "product_id", product.id) == 1

    def test_unknown_entity_type(self):
        with pytest.raises(LedgerValidationError):
            resolve_entity("invoice")


class TestSyncStateMachine:
    """created -> synced -> pending_sync -> soft_deleted."""

    def test_full_lifecycle(self, db_session, product):
        assert product.record_state == STATE_CREATED

        result = sync_service.mark_synced("product", [product.id], timestamp=1_000)
        assert result.is_success
        assert result.value == 1
        assert product.record_state == STATE_SYNCED
        assert product.last_synced_at == 1_000

        assert update_stock(product.id, 40).is_success
        assert product.record_state == STATE_PENDING_SYNC

        assert sync_service.soft_delete("product", product.id).value == 1
        assert product.record_state == STATE_SOFT_DELETED
        assert product.sync_status == "pending"

    def test_pending_records_excludes_synced(self, db_session, product, customer):
        sync_service.mark_synced("product", [product.id])

        pending_products = sync_service.pending_records("product").value
        pending_customers = sync_service.pending_records("customer").value

        assert pending_products == []
        assert [c.id for c in pending_customers] == [customer.id]

    def test_mark_synced_skips_unknown_ids(self, db_session, product):
        result = sync_service.mark_synced("product", [product.id, "missing"])
        assert result.value == 1

    def test_mark_synced_unknown_entity_fails(self, db_session):
        result = sync_service.mark_synced("invoice", ["x"])
        assert result.kind is ErrorKind.VALIDATION

    def test_ledger_rows_cannot_be_soft_deleted(self, db_session):
        result = sync_service.soft_delete("sale_payment", "any")
        assert result.kind is ErrorKind.VALIDATION

    def test_soft_delete_missing_record(self, db_session):
        result = sync_service.soft_delete("customer", "missing")
        assert result.kind is ErrorKind.NOT_FOUND

    def test_soft_deleted_product_is_not_found_by_engines(self, db_session, product):
        sync_service.soft_delete("product", product.id)
        result = update_stock(product.id, 10)
        assert result.kind is ErrorKind.NOT_FOUND


class TestProductFlags:
    def test_low_and_out_of_stock(self, db_session):
        product = Product(shop_id="shop-1", name="Salt", track_inventory=True, current_stock=3, low_stock_threshold=5)
        assert product.is_low_stock
        assert not product.is_out_of_stock
        product.current_stock = 0
        assert product.is_out_of_stock

    def test_untracked_is_never_low(self, db_session, service_product):
        assert not service_product.is_low_stock
        assert not service_product.is_out_of_stock
