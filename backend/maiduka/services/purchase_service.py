# Overview: Service-layer operations for purchase orders; lifecycle transitions and payment accumulation.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderItem, PurchasePayment
from ..models.purchases import (
    PO_STATUS_APPROVED,
    PO_STATUS_CANCELLED,
    PO_STATUS_COMPLETED,
    PO_STATUS_PENDING,
    PO_STATUS_REJECTED,
)
from ..models.sales import PAYMENT_METHODS
from ..money import ZERO, decimal_sum
from ..validation import coerce_amount, coerce_count, require_choice, require_text
from .errors import EngineResult, InvalidStateError, LedgerValidationError
from .record_store import RecordStore
from .unit_of_work import atomic, read_only


"""
MAIDUKA Purchase Order Invariants (authoritative)

State machine:
    pending  -> approved   (approve)
    pending  -> rejected   (reject)
    approved -> completed  (payments reach total_amount)
    pending | approved -> cancelled (cancel)
Terminal: rejected, completed, cancelled.

Payments:
- Accepted only while approved.
- total_paid is re-summed from the payment ledger after every append.
- status == completed iff total_paid >= total_amount.
- Overpayment is recorded as-is; nothing is capped or refused.
"""


# event -> states it may start from
ALLOWED_FROM = {
    "approve": (PO_STATUS_PENDING,),
    "reject": (PO_STATUS_PENDING,),
    "cancel": (PO_STATUS_PENDING, PO_STATUS_APPROVED),
    "pay": (PO_STATUS_APPROVED,),
}


def _require_transition(order: PurchaseOrder, event: str) -> None:
    if order.status not in ALLOWED_FROM[event]:
        raise InvalidStateError(
            f"Cannot {event} a {order.status} purchase order",
            details={
                "purchase_order_id": order.id,
                "status": order.status,
                "allowed_from": list(ALLOWED_FROM[event]),
            },
        )


def _order_payments(store: RecordStore, order_id: str) -> list[PurchasePayment]:
    return store.list_children(
        PurchasePayment,
        "purchase_order_id",
        order_id,
        order_by=(PurchasePayment.payment_date, PurchasePayment.sequence),
    )


def create_purchase_order(order: PurchaseOrder, items: list[PurchaseOrderItem]) -> EngineResult:
    """
    Persist a new purchase order with its lines.

    - status is forced to pending
    - each line's total_price is quantity * unit_price (validated if supplied)
    - total_amount must equal the sum of line totals
    - reference_number must be unique

    Returns:
        EngineResult wrapping the PurchaseOrder
    """
    store = RecordStore()

    def _op():
        require_text(order.buyer_shop_id, "buyer_shop_id")
        require_text(order.seller_shop_id, "seller_shop_id")
        reference = require_text(order.reference_number, "reference_number")
        if not items:
            raise LedgerValidationError("Purchase order must have at least one item")

        existing = db.session.query(PurchaseOrder.id).filter_by(reference_number=reference).first()
        if existing is not None:
            raise LedgerValidationError(
                "Reference number already in use",
                details={"reference_number": reference},
            )

        for item in items:
            require_text(item.product_id, "product_id")
            item.quantity = coerce_count(item.quantity, "quantity")
            item.unit_price = coerce_amount(item.unit_price, "unit_price", allow_zero=True)
            line_total = item.unit_price * item.quantity
            if item.total_price is not None and coerce_amount(item.total_price, "total_price", allow_zero=True) != line_total:
                raise LedgerValidationError(
                    "Item total_price must equal quantity * unit_price",
                    details={"product_id": item.product_id, "expected": str(line_total)},
                )
            item.total_price = line_total

        expected_total = decimal_sum(item.total_price for item in items)
        if order.total_amount is not None and coerce_amount(order.total_amount, "total_amount", allow_zero=True) != expected_total:
            raise LedgerValidationError(
                "total_amount must equal the sum of item totals",
                details={"total_amount": str(order.total_amount), "expected": str(expected_total)},
            )

        order.reference_number = reference
        order.total_amount = expected_total
        order.total_paid = ZERO
        order.status = PO_STATUS_PENDING
        store.insert(order)

        for item in items:
            item.purchase_order_id = order.id
            store.insert(item)
        return order

    result = atomic(_op, name="create_purchase_order")
    if result.is_success:
        current_app.logger.info("Purchase order created: %s", order.reference_number)
    return result


def approve_purchase_order(order_id: str, approver_id: str) -> EngineResult:
    store = RecordStore()

    def _op():
        approver = require_text(approver_id, "approver_id")
        order = store.require(PurchaseOrder, order_id, lock=True, label="Purchase order")
        _require_transition(order, "approve")

        order.status = PO_STATUS_APPROVED
        order.approved_by = approver
        order.approved_at = store.now()
        store.update(order)
        return order

    result = atomic(_op, name="approve_purchase_order")
    if result.is_success:
        current_app.logger.info("Purchase order approved: %s", order_id)
    return result


def reject_purchase_order(order_id: str, reason: str | None = None) -> EngineResult:
    store = RecordStore()

    def _op():
        order = store.require(PurchaseOrder, order_id, lock=True, label="Purchase order")
        _require_transition(order, "reject")

        order.status = PO_STATUS_REJECTED
        order.rejection_reason = reason
        order.rejected_at = store.now()
        store.update(order)
        return order

    result = atomic(_op, name="reject_purchase_order")
    if result.is_success:
        current_app.logger.info("Purchase order rejected: %s", order_id)
    return result


def cancel_purchase_order(order_id: str, reason: str | None = None) -> EngineResult:
    """Cancel from any non-terminal state; payments already recorded stay in the ledger."""
    store = RecordStore()

    def _op():
        order = store.require(PurchaseOrder, order_id, lock=True, label="Purchase order")
        _require_transition(order, "cancel")

        order.status = PO_STATUS_CANCELLED
        order.cancellation_reason = reason
        order.cancelled_at = store.now()
        store.update(order)
        return order

    result = atomic(_op, name="cancel_purchase_order")
    if result.is_success:
        current_app.logger.info("Purchase order cancelled: %s", order_id)
    return result


def add_payment(order_id: str, payment: PurchasePayment) -> EngineResult:
    """
    Append a payment and complete the order once it is fully paid.

    Steps (one transaction, order row locked):
    1. Append the payment
    2. total_paid = sum of all non-deleted payments
    3. total_paid >= total_amount -> completed; otherwise status unchanged

    Returns:
        EngineResult wrapping the PurchaseOrder
    """
    store = RecordStore()

    def _op():
        payment.amount = coerce_amount(payment.amount, "amount")
        require_choice(payment.payment_method, PAYMENT_METHODS, "payment_method")
        payment.recorded_by = require_text(payment.recorded_by, "recorded_by")

        order = store.require(PurchaseOrder, order_id, lock=True, label="Purchase order")
        _require_transition(order, "pay")

        payment.purchase_order_id = order.id
        if payment.payment_date is None:
            payment.payment_date = store.now()
        payment.sequence = store.next_sequence(PurchasePayment, "purchase_order_id", order.id)
        store.insert(payment)

        order.total_paid = decimal_sum(p.amount for p in _order_payments(store, order.id))
        if order.is_paid:
            order.status = PO_STATUS_COMPLETED
            order.completed_at = store.now()
        store.update(order)
        return order

    result = atomic(_op, name="add_purchase_payment")
    if result.is_success:
        current_app.logger.info("Payment added to purchase order: %s", order_id)
    return result


def get_purchase_order(order_id: str) -> EngineResult:
    store = RecordStore()
    return read_only(
        lambda: store.require(PurchaseOrder, order_id, label="Purchase order"),
        name="get_purchase_order",
    )


def get_purchase_payments(order_id: str) -> EngineResult:
    store = RecordStore()

    def _op():
        store.require(PurchaseOrder, order_id, label="Purchase order")
        return _order_payments(store, order_id)

    return read_only(_op, name="get_purchase_payments")
