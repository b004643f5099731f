# Overview: Service-layer operations for sales; registers a sale with its stock, payment and debt consequences.

"""
Sale Transaction Engine

WHY: A sale touches four tables (sale, items, payments, products) and
possibly a fifth (customer). Those writes are one business event and must
commit together or not at all.

DESIGN PRINCIPLES:
- The caller supplies the document figures; the engine re-validates them
  (total = subtotal - discount + tax) rather than trusting them
  and, when lines are present, subtotal = sum of line totals
- Payment figures (amount_paid, debt, change, payment_status) and profit are
  always derived here from the supplied items and payments
- Stock deduction uses the whole-unit count of each line's quantity
- Refunds and cancellations are status changes only (see payment_service)
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem, SalePayment
from ..models.sales import (
    SALE_STATUS_CANCELLED,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_PENDING,
)
from ..money import ZERO, decimal_sum, whole_units
from ..validation import coerce_amount, require_choice, require_text
from .customer_service import _record_customer_sale_locked
from .errors import EngineResult, InvalidStateError, LedgerValidationError
from .inventory_service import _deduct_stock_locked
from .payment_service import _append_payment_locked, apply_payment_totals
from .record_store import RecordStore
from .unit_of_work import atomic, read_only


# A new sale enters the ledger in one of these states
INITIAL_STATUSES = (SALE_STATUS_COMPLETED, SALE_STATUS_PENDING)
CANCELLABLE = (SALE_STATUS_COMPLETED, SALE_STATUS_PENDING)


# =============================================================================
# VALIDATION
# =============================================================================

def _validate_sale_totals(sale: Sale) -> None:
    sale.subtotal = coerce_amount(sale.subtotal if sale.subtotal is not None else ZERO, "subtotal", allow_zero=True)
    sale.discount_amount = coerce_amount(
        sale.discount_amount if sale.discount_amount is not None else ZERO, "discount_amount", allow_zero=True
    )
    sale.tax_amount = coerce_amount(sale.tax_amount if sale.tax_amount is not None else ZERO, "tax_amount", allow_zero=True)
    sale.total_amount = coerce_amount(
        sale.total_amount if sale.total_amount is not None else ZERO, "total_amount", allow_zero=True
    )

    expected = sale.subtotal - sale.discount_amount + sale.tax_amount
    if sale.total_amount != expected:
        raise LedgerValidationError(
            "total_amount must equal subtotal - discount_amount + tax_amount",
            details={"total_amount": str(sale.total_amount), "expected": str(expected)},
        )


def _validate_sale_lines(sale: Sale, items: list[SaleItem]) -> None:
    """With lines present, the document subtotal is the sum of line totals."""
    if not items:
        return
    expected = decimal_sum(item.total for item in items)
    if sale.subtotal != expected:
        raise LedgerValidationError(
            "subtotal must equal the sum of item totals",
            details={"subtotal": str(sale.subtotal), "expected": str(expected)},
        )


def _prepare_item(item: SaleItem) -> SaleItem:
    """
    Normalize a line and freeze its derived figures.

    subtotal = selling_price * quantity
    total = subtotal - discount_amount
    profit = (selling_price - cost_price) * quantity - discount_amount
    """
    quantity = coerce_amount(item.quantity, "quantity")
    selling_price = coerce_amount(item.selling_price, "selling_price", allow_zero=True)
    cost_price = coerce_amount(item.cost_price if item.cost_price is not None else ZERO, "cost_price", allow_zero=True)
    discount = coerce_amount(
        item.discount_amount if item.discount_amount is not None else ZERO, "discount_amount", allow_zero=True
    )

    subtotal = selling_price * quantity
    if item.subtotal is not None and coerce_amount(item.subtotal, "subtotal", allow_zero=True) != subtotal:
        raise LedgerValidationError(
            "Item subtotal must equal selling_price * quantity",
            details={"product_id": item.product_id, "expected": str(subtotal)},
        )

    total = subtotal - discount
    if item.total is not None and coerce_amount(item.total, "total", allow_zero=True) != total:
        raise LedgerValidationError(
            "Item total must equal selling_price * quantity - discount_amount",
            details={"product_id": item.product_id, "expected": str(total)},
        )

    item.quantity = quantity
    item.selling_price = selling_price
    item.cost_price = cost_price
    item.discount_amount = discount
    item.subtotal = subtotal
    item.total = total
    item.profit = (selling_price - cost_price) * quantity - discount
    return item


# =============================================================================
# OPERATIONS
# =============================================================================

def create_sale(
    sale: Sale,
    items: list[SaleItem],
    payments: list[SalePayment],
    *,
    allow_negative_stock: bool = True,
) -> EngineResult:
    """
    Register a sale and all of its consequences as one unit of work.

    Steps:
    1. Validate document totals against each other and the lines; persist the Sale
    2. Persist each item; deduct whole units from tracked products
    3. Persist each payment (append-only)
    4. Derive amount_paid / debt / change / payment_status / profit
    5. Fold the sale into the customer's debt and purchase totals

    Any failure (missing product or customer, stock floor, storage) rolls
    back every step.

    Returns:
        EngineResult wrapping the created Sale
    """
    store = RecordStore()

    def _op():
        require_text(sale.shop_id, "shop_id")
        sale.status = sale.status or SALE_STATUS_COMPLETED
        require_choice(sale.status, INITIAL_STATUSES, "status")
        _validate_sale_totals(sale)
        for item in items:
            _prepare_item(item)
        _validate_sale_lines(sale, items)

        if sale.sale_date is None:
            sale.sale_date = store.now()
        sale.amount_paid = ZERO
        sale.debt_amount = ZERO
        sale.change_amount = ZERO
        sale.profit_amount = ZERO
        store.insert(sale)

        profit = ZERO
        for item in items:
            item.sale_id = sale.id
            store.insert(item)
            profit += item.profit

            if item.product_id is not None:
                _deduct_stock_locked(
                    store,
                    item.product_id,
                    whole_units(item.quantity),
                    allow_negative_stock=allow_negative_stock,
                )

        for payment in payments:
            _append_payment_locked(store, sale, payment)

        # Cart-level discount comes out of profit; tax never counts as profit
        sale.profit_amount = profit - sale.discount_amount
        apply_payment_totals(sale, decimal_sum(p.amount for p in payments))

        if sale.customer_id is not None:
            _record_customer_sale_locked(
                store,
                sale.customer_id,
                total_amount=sale.total_amount,
                debt_amount=sale.debt_amount,
            )

        store.update(sale)
        return sale

    result = atomic(_op, name="create_sale")
    if result.is_success:
        current_app.logger.info("Sale created locally: %s", sale.id)
    return result


def cancel_sale(sale_id: str) -> EngineResult:
    """
    Mark a sale cancelled.

    Stock and customer debt stay as they are; restocking and debt settlement
    are separate explicit events.
    """
    store = RecordStore()

    def _op():
        sale = store.require(Sale, sale_id, lock=True, label="Sale")
        if sale.status not in CANCELLABLE:
            raise InvalidStateError(
                f"Cannot cancel a {sale.status} sale",
                details={"sale_id": sale.id, "status": sale.status},
            )
        sale.status = SALE_STATUS_CANCELLED
        store.update(sale)
        return sale

    result = atomic(_op, name="cancel_sale")
    if result.is_success:
        current_app.logger.info("Sale cancelled: %s", sale_id)
    return result


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: str) -> EngineResult:
    store = RecordStore()
    return read_only(lambda: store.require(Sale, sale_id, label="Sale"), name="get_sale")


def get_sales_with_debt(shop_id: str) -> EngineResult:
    """Non-deleted, non-cancelled sales of a shop that still carry debt, newest first."""

    def _op():
        sales = (
            db.session.query(Sale)
            .filter(
                Sale.shop_id == shop_id,
                Sale.deleted_at.is_(None),
                Sale.status != SALE_STATUS_CANCELLED,
            )
            .order_by(Sale.sale_date.desc(), Sale.id)
            .all()
        )
        # debt_amount is stored as a decimal string; compare in Python
        return [s for s in sales if s.has_debt]

    return read_only(_op, name="get_sales_with_debt")
