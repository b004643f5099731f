# Overview: Pytest coverage for the purchase order lifecycle.

from decimal import Decimal

import pytest
from maiduka.models import PurchaseOrder, PurchasePayment
from maiduka.services.errors import ErrorKind
from maiduka.services.purchase_service import (
    add_payment,
    approve_purchase_order,
    cancel_purchase_order,
    create_purchase_order,
    get_purchase_order,
    get_purchase_payments,
    reject_purchase_order,
)

from conftest import USER_ID, make_purchase_order


def _payment(amount, method="bank_transfer"):
    return PurchasePayment(amount=Decimal(amount), payment_method=method, recorded_by=USER_ID)


@pytest.fixture
def approved_order(db_session):
    """Approved order worth 50000 (10 x 5000)."""
    order, items = make_purchase_order()
    created = create_purchase_order(order, items).value
    return approve_purchase_order(created.id, USER_ID).value


class TestCreatePurchaseOrder:
    def test_forced_pending_and_totalled(self, db_session):
        order, items = make_purchase_order(lines=(("prod-a", 10, "5000"), ("prod-b", 4, "250.25")))
        order.status = "approved"

        created = create_purchase_order(order, items).value

        assert created.status == "pending"
        assert created.total_amount == Decimal("51001.00")
        assert created.total_paid == Decimal("0")
        assert sorted(i.total_price for i in created.items) == [Decimal("1001.00"), Decimal("50000")]

    def test_total_must_match_items(self, db_session):
        order, items = make_purchase_order()
        order.total_amount = Decimal("49999")
        assert create_purchase_order(order, items).kind is ErrorKind.VALIDATION
        assert db_session.query(PurchaseOrder).count() == 0

    def test_requires_items(self, db_session):
        order, _ = make_purchase_order()
        assert create_purchase_order(order, []).kind is ErrorKind.VALIDATION

    def test_reference_number_unique(self, db_session):
        order, items = make_purchase_order(reference="PO-7")
        assert create_purchase_order(order, items).is_success

        duplicate, dup_items = make_purchase_order(reference="PO-7")
        result = create_purchase_order(duplicate, dup_items)
        assert result.kind is ErrorKind.VALIDATION
        assert result.details["reference_number"] == "PO-7"


class TestTransitions:
    def test_approve_records_approver(self, db_session, approved_order):
        assert approved_order.status == "approved"
        assert approved_order.approved_by == USER_ID
        assert approved_order.approved_at is not None

    def test_approve_twice_fails(self, db_session, approved_order):
        result = approve_purchase_order(approved_order.id, USER_ID)
        assert result.kind is ErrorKind.INVALID_STATE
        assert result.details["status"] == "approved"

    def test_reject_from_pending(self, db_session):
        order, items = make_purchase_order()
        created = create_purchase_order(order, items).value
        rejected = reject_purchase_order(created.id, "Not needed this month").value
        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Not needed this month"

    def test_reject_after_approval_fails(self, db_session, approved_order):
        assert reject_purchase_order(approved_order.id, "late").kind is ErrorKind.INVALID_STATE

    def test_cancel_approved(self, db_session, approved_order):
        cancelled = cancel_purchase_order(approved_order.id, "Supplier closed").value
        assert cancelled.status == "cancelled"
        assert cancelled.cancellation_reason == "Supplier closed"

    def test_terminal_states_are_final(self, db_session, approved_order):
        cancel_purchase_order(approved_order.id)
        assert approve_purchase_order(approved_order.id, USER_ID).kind is ErrorKind.INVALID_STATE
        assert cancel_purchase_order(approved_order.id).kind is ErrorKind.INVALID_STATE
        assert add_payment(approved_order.id, _payment("1")).kind is ErrorKind.INVALID_STATE

    def test_missing_order(self, db_session):
        assert approve_purchase_order("ghost", USER_ID).kind is ErrorKind.NOT_FOUND


class TestPayments:
    def test_completes_exactly_on_second_payment(self, db_session, approved_order):
        """50000 order: 20000 then 30000."""
        first = add_payment(approved_order.id, _payment("20000")).value
        assert first.status == "approved"
        assert first.total_paid == Decimal("20000")
        assert first.outstanding_amount == Decimal("30000")

        second = add_payment(approved_order.id, _payment("30000")).value
        assert second.status == "completed"
        assert second.total_paid == Decimal("50000")
        assert second.completed_at is not None

    def test_single_overpayment_completes(self, db_session, approved_order):
        order = add_payment(approved_order.id, _payment("60000")).value
        assert order.status == "completed"
        assert order.total_paid == Decimal("60000")
        assert order.outstanding_amount == Decimal("-10000")

    @pytest.mark.parametrize("amounts", [
        ["10000", "10000", "10000", "10000", "10000"],
        ["0.01", "49999.99"],
        ["25000", "24999.99"],
    ])
    def test_completed_iff_fully_paid(self, db_session, approved_order, amounts):
        for amount in amounts:
            order = add_payment(approved_order.id, _payment(amount)).value
            assert (order.status == "completed") == (order.total_paid >= order.total_amount)

    def test_completed_order_rejects_more_payments(self, db_session, approved_order):
        add_payment(approved_order.id, _payment("50000"))
        assert add_payment(approved_order.id, _payment("1")).kind is ErrorKind.INVALID_STATE

    def test_pending_order_rejects_payment(self, db_session):
        order, items = make_purchase_order()
        created = create_purchase_order(order, items).value
        assert add_payment(created.id, _payment("100")).kind is ErrorKind.INVALID_STATE

    def test_payment_ledger_order(self, db_session, approved_order):
        add_payment(approved_order.id, _payment("100", "cash"))
        add_payment(approved_order.id, _payment("200", "cheque"))

        payments = get_purchase_payments(approved_order.id).value
        assert [(p.sequence, p.payment_method) for p in payments] == [(1, "cash"), (2, "cheque")]

    def test_payment_requires_recorder(self, db_session, approved_order):
        payment = PurchasePayment(amount=Decimal("100"), payment_method="cash", recorded_by=None)
        assert add_payment(approved_order.id, payment).kind is ErrorKind.VALIDATION

    def test_get_purchase_order_dict(self, db_session, approved_order):
        data = get_purchase_order(approved_order.id).value.to_dict(include_lines=True)
        assert data["total_amount"] == "50000"
        assert data["outstanding_amount"] == "50000"
        assert len(data["items"]) == 1
