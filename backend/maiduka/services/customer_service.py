# Overview: Service-layer operations for customer credit; debt accrual and settlement.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..models import Customer, CustomerPayment
from ..models.sales import PAYMENT_METHODS
from ..money import ZERO, non_negative, to_decimal
from ..validation import coerce_amount, require_choice
from .errors import EngineResult
from .record_store import RecordStore
from .unit_of_work import atomic, read_only


def _record_customer_sale_locked(
    store: RecordStore,
    customer_id: str,
    *,
    total_amount: Decimal,
    debt_amount: Decimal,
) -> Customer:
    """
    Fold a new sale into the customer's running figures.

    current_debt grows by exactly the sale's debt; total_purchases / total_paid
    move so that total_purchases - total_paid changes by the same amount.
    """
    customer = store.require(Customer, customer_id, lock=True, label="Customer")

    customer.total_purchases = to_decimal(customer.total_purchases) + total_amount
    customer.total_paid = to_decimal(customer.total_paid) + (total_amount - debt_amount)
    if debt_amount > ZERO:
        customer.current_debt = to_decimal(customer.current_debt) + debt_amount

    store.update(customer)
    return customer


def record_debt_payment(
    customer_id: str,
    amount,
    payment_method: str,
    user_id: str | None = None,
    notes: str | None = None,
) -> EngineResult:
    """
    Customer pays down outstanding debt.

    WHY: Sale payments added after the fact do not reduce customer debt on
    their own; settling debt is an explicit event with its own ledger row.

    Debt is floored at zero; any excess still counts towards total_paid.

    Returns:
        EngineResult wrapping the CustomerPayment
    """
    store = RecordStore()

    def _op():
        value = coerce_amount(amount, "amount")
        require_choice(payment_method, PAYMENT_METHODS, "payment_method")

        customer = store.require(Customer, customer_id, lock=True, label="Customer")
        debt_before = to_decimal(customer.current_debt)
        debt_after = non_negative(debt_before - value)

        payment = CustomerPayment(
            customer_id=customer.id,
            user_id=user_id,
            amount=value,
            payment_method=payment_method,
            debt_before=debt_before,
            debt_after=debt_after,
            notes=notes,
            payment_date=store.now(),
            sequence=store.next_sequence(CustomerPayment, "customer_id", customer.id),
        )
        store.insert(payment)

        customer.current_debt = debt_after
        customer.total_paid = to_decimal(customer.total_paid) + value
        store.update(customer)
        return payment

    result = atomic(_op, name="record_debt_payment")
    if result.is_success:
        current_app.logger.info("Customer debt payment recorded: %s", customer_id)
    return result


def get_customer(customer_id: str) -> EngineResult:
    store = RecordStore()
    return read_only(lambda: store.require(Customer, customer_id, label="Customer"), name="get_customer")
