# Overview: Service-layer operations for sale payments and refunds; re-derives sale money figures.

"""
Sale Payment & Refund Reconciler

WHY: A sale is rarely settled in one go. Payments and refunds arrive after
the sale exists and the sale's figures must follow them exactly.

DESIGN PRINCIPLES:
- SalePayment and SaleRefund are append-only ledgers (never updated in place)
- Totals are re-derived by summing the ledger on every change, never incremented;
  a missed or doubled increment cannot survive the next derivation
- The sale row is locked before the ledger is read, so two concurrent payments
  on one sale serialize
- Refunds and cancellations never reverse stock or customer debt; those are
  separate business events the caller issues explicitly
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..models import Sale, SalePayment, SaleRefund
from ..models.sales import (
    PAYMENT_METHODS,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_PENDING,
    SALE_STATUS_CANCELLED,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_PARTIALLY_REFUNDED,
    SALE_STATUS_REFUNDED,
)
from ..money import ZERO, decimal_sum, non_negative, to_decimal
from ..validation import coerce_amount, require_choice, require_text
from .errors import EngineResult, InvalidStateError
from .record_store import RecordStore
from .unit_of_work import atomic, read_only


# Sales that can no longer take money in
CLOSED_FOR_PAYMENT = (SALE_STATUS_CANCELLED, SALE_STATUS_REFUNDED)
# Sales that can give money back
REFUNDABLE = (SALE_STATUS_COMPLETED, SALE_STATUS_PARTIALLY_REFUNDED)


# =============================================================================
# DERIVATION
# =============================================================================

def derive_payment_status(total_paid: Decimal, total_amount: Decimal) -> str:
    """
    PAYMENT STATUS:
    - paid: total_paid >= total_amount
    - partially_paid: 0 < total_paid < total_amount
    - pending: nothing paid
    """
    if total_paid >= total_amount:
        return PAYMENT_STATUS_PAID
    if total_paid > ZERO:
        return PAYMENT_STATUS_PARTIALLY_PAID
    return PAYMENT_STATUS_PENDING


def apply_payment_totals(sale: Sale, total_paid: Decimal) -> Sale:
    """Write the figures derived from total_paid onto the sale (no flush)."""
    total_amount = to_decimal(sale.total_amount)
    sale.amount_paid = total_paid
    sale.debt_amount = non_negative(total_amount - total_paid)
    sale.change_amount = non_negative(total_paid - total_amount)
    sale.payment_status = derive_payment_status(total_paid, total_amount)
    return sale


def _sale_payments(store: RecordStore, sale_id: str) -> list[SalePayment]:
    return store.list_children(
        SalePayment,
        "sale_id",
        sale_id,
        order_by=(SalePayment.payment_date, SalePayment.sequence),
    )


def _sale_refunds(store: RecordStore, sale_id: str) -> list[SaleRefund]:
    return store.list_children(
        SaleRefund,
        "sale_id",
        sale_id,
        order_by=(SaleRefund.refund_date, SaleRefund.sequence),
    )


def _append_payment_locked(store: RecordStore, sale: Sale, payment: SalePayment) -> SalePayment:
    payment.amount = coerce_amount(payment.amount, "amount")
    require_choice(payment.payment_method, PAYMENT_METHODS, "payment_method")

    payment.sale_id = sale.id
    if payment.payment_date is None:
        payment.payment_date = store.now()
    payment.sequence = store.next_sequence(SalePayment, "sale_id", sale.id)
    store.insert(payment)
    return payment


# =============================================================================
# OPERATIONS
# =============================================================================

def add_payment(sale_id: str, payment: SalePayment) -> EngineResult:
    """
    Append a payment to an existing sale and re-derive its figures.

    Steps (one transaction):
    1. Lock the sale, reject cancelled / refunded sales
    2. Append the payment
    3. total_paid = sum of all non-deleted payments
    4. debt = max(0, total - total_paid); payment_status from thresholds
    5. Persist the sale

    Customer debt is not touched; see customer_service.record_debt_payment.

    Returns:
        EngineResult wrapping the updated Sale
    """
    store = RecordStore()

    def _op():
        sale = store.require(Sale, sale_id, lock=True, label="Sale")
        if sale.status in CLOSED_FOR_PAYMENT:
            raise InvalidStateError(
                f"Cannot add payment to a {sale.status} sale",
                details={"sale_id": sale.id, "status": sale.status},
            )

        _append_payment_locked(store, sale, payment)

        total_paid = decimal_sum(p.amount for p in _sale_payments(store, sale.id))
        apply_payment_totals(sale, total_paid)
        store.update(sale)
        return sale

    result = atomic(_op, name="add_payment")
    if result.is_success:
        current_app.logger.info("Payment added to sale: %s", sale_id)
    return result


def refund_sale(sale_id: str, amount, reason: str | None, user_id: str) -> EngineResult:
    """
    Record money returned for a sale and re-derive its refund status.

    - refunded: total refunded >= total_amount
    - partially_refunded: otherwise

    Stock and customer debt are deliberately left as they are.

    Returns:
        EngineResult wrapping the updated Sale
    """
    store = RecordStore()

    def _op():
        value = coerce_amount(amount, "amount")
        actor = require_text(user_id, "user_id")

        sale = store.require(Sale, sale_id, lock=True, label="Sale")
        if sale.status not in REFUNDABLE:
            raise InvalidStateError(
                f"Cannot refund a {sale.status} sale",
                details={"sale_id": sale.id, "status": sale.status},
            )

        refund = SaleRefund(
            sale_id=sale.id,
            user_id=actor,
            amount=value,
            reason=reason,
            refund_date=store.now(),
            sequence=store.next_sequence(SaleRefund, "sale_id", sale.id),
        )
        store.insert(refund)

        total_refunded = decimal_sum(r.amount for r in _sale_refunds(store, sale.id))
        if total_refunded >= to_decimal(sale.total_amount):
            sale.status = SALE_STATUS_REFUNDED
        else:
            sale.status = SALE_STATUS_PARTIALLY_REFUNDED
        store.update(sale)
        return sale

    result = atomic(_op, name="refund_sale")
    if result.is_success:
        current_app.logger.info("Sale refunded: %s, amount: %s", sale_id, amount)
    return result


# =============================================================================
# REPORTING
# =============================================================================

def get_sale_payments(sale_id: str) -> EngineResult:
    """Payments for a sale, in ledger order."""
    store = RecordStore()

    def _op():
        store.require(Sale, sale_id, label="Sale")
        return _sale_payments(store, sale_id)

    return read_only(_op, name="get_sale_payments")


def get_payment_summary(sale_id: str) -> EngineResult:
    """
    Payment summary for a sale, derived from the ledgers.

    Returns:
        - total_amount: amount the sale totals to
        - total_paid: sum of payments
        - remaining: amount still owed (never negative)
        - change_amount: over-tender
        - total_refunded: sum of refunds
        - payment_status / status
        - payments / refunds: ledger rows
    """
    store = RecordStore()

    def _op():
        sale = store.require(Sale, sale_id, label="Sale")
        payments = _sale_payments(store, sale.id)
        refunds = _sale_refunds(store, sale.id)
        total_amount = to_decimal(sale.total_amount)
        total_paid = decimal_sum(p.amount for p in payments)

        return {
            "sale_id": sale.id,
            "total_amount": total_amount,
            "total_paid": total_paid,
            "remaining": non_negative(total_amount - total_paid),
            "change_amount": non_negative(total_paid - total_amount),
            "total_refunded": decimal_sum(r.amount for r in refunds),
            "payment_status": derive_payment_status(total_paid, total_amount),
            "status": sale.status,
            "payments": [p.to_dict() for p in payments],
            "refunds": [r.to_dict() for r in refunds],
        }

    return read_only(_op, name="get_payment_summary")
