# Overview: Service-layer operations for inventory; encapsulates stock rules and database work.

from __future__ import annotations

from flask import current_app

from ..models import Product, StockAdjustment
from ..models.inventory import ADJUSTMENT_RESTOCK, ADJUSTMENT_SET, ADJUSTMENT_TYPES
from ..money import ZERO, to_decimal, whole_units
from ..validation import coerce_count, require_choice, require_text
from .errors import EngineResult, InsufficientStockError, InvalidStateError, LedgerValidationError
from .record_store import RecordStore
from .unit_of_work import atomic, read_only
"""
MAIDUKA Inventory Invariants (authoritative)

Stock model:
- Product.current_stock is a mutable integer; only tracked products with a
  non-NULL current_stock are ever changed by a sale.
- Sale quantities may be fractional; deductions use the truncated whole-unit count.

Stock floor:
- The engine applies deductions unconditionally by default (allow_negative_stock=True).
  Shop policy lives with the caller: a caller that forbids negative stock passes
  allow_negative_stock=False and the deduction fails with InsufficientStockError
  before anything is written.

Adjustments:
- Manual adjustments append a StockAdjustment row and then set stock through the
  same primitive as update_stock().
- restock adds, adjustment sets an absolute count, every other type subtracts.
- A manual adjustment can never take stock below zero.
"""


def _deduct_stock_locked(
    store: RecordStore,
    product_id: str,
    units: int,
    *,
    allow_negative_stock: bool = True,
) -> Product:
    product = store.require(Product, product_id, lock=True, label="Product")

    # Services / digital / untracked products: nothing to deduct
    if not product.is_tracked:
        return product

    new_stock = product.current_stock - units
    if new_stock < 0 and not allow_negative_stock:
        raise InsufficientStockError(
            "Insufficient stock",
            details={
                "product_id": product.id,
                "requested_quantity": units,
                "on_hand": product.current_stock,
            },
        )

    product.current_stock = new_stock
    store.update(product)
    return product


def _update_stock_locked(store: RecordStore, product: Product, new_stock: int) -> Product:
    product.current_stock = new_stock
    store.update(product)
    return product


def deduct_stock(product_id: str, quantity, *, allow_negative_stock: bool = True) -> EngineResult:
    """
    Deduct a sold quantity from a product's on-hand stock.

    Returns:
        EngineResult wrapping the Product (unchanged when not tracked)

    Failures:
        not_found: product does not exist
        invalid_state: would go negative and allow_negative_stock is False
    """
    store = RecordStore()

    def _op():
        try:
            units = whole_units(quantity)
        except (TypeError, ValueError):
            raise LedgerValidationError("quantity must be an exact decimal amount")
        if units < 0:
            raise LedgerValidationError("quantity must be >= 0")
        return _deduct_stock_locked(store, product_id, units, allow_negative_stock=allow_negative_stock)

    result = atomic(_op, name="deduct_stock")
    if result.is_success:
        current_app.logger.info("Product stock deducted: %s", product_id)
    return result


def update_stock(product_id: str, new_stock: int) -> EngineResult:
    """Directly set on-hand stock (manual count, restock correction)."""
    store = RecordStore()

    def _op():
        value = coerce_count(new_stock, "new_stock", allow_zero=True)
        product = store.require(Product, product_id, lock=True, label="Product")
        return _update_stock_locked(store, product, value)

    result = atomic(_op, name="update_stock")
    if result.is_success:
        current_app.logger.info("Product stock updated: %s -> %s", product_id, new_stock)
    return result


def adjust_stock(
    product_id: str,
    adjustment_type: str,
    quantity: int,
    user_id: str,
    reason: str | None = None,
) -> EngineResult:
    """
    Record a manual stock adjustment and apply it to the product.

    WHY: Damage, expiry, theft and restocks must leave an audit row;
    the product's current_stock alone cannot explain how it got there.

    Returns:
        EngineResult wrapping the StockAdjustment
    """
    store = RecordStore()

    def _op():
        require_choice(adjustment_type, ADJUSTMENT_TYPES, "adjustment_type")
        count = coerce_count(quantity, "quantity", allow_zero=adjustment_type == ADJUSTMENT_SET)
        actor = require_text(user_id, "user_id")

        product = store.require(Product, product_id, lock=True, label="Product")
        if not product.track_inventory:
            raise InvalidStateError(
                "Product does not track inventory",
                details={"product_id": product.id},
            )

        before = product.current_stock if product.current_stock is not None else 0
        if adjustment_type == ADJUSTMENT_RESTOCK:
            after = before + count
        elif adjustment_type == ADJUSTMENT_SET:
            after = count
        else:
            after = before - count

        if after < 0:
            raise InsufficientStockError(
                "Adjustment would take stock below zero",
                details={"product_id": product.id, "on_hand": before, "quantity": count},
            )

        cost = to_decimal(product.cost_per_unit) if product.cost_per_unit is not None else ZERO
        moved = abs(after - before) if adjustment_type == ADJUSTMENT_SET else count

        adjustment = StockAdjustment(
            product_id=product.id,
            user_id=actor,
            adjustment_type=adjustment_type,
            quantity=count,
            stock_before=product.current_stock,
            stock_after=after,
            value_at_time=cost * moved,
            reason=reason,
            adjustment_date=store.now(),
            sequence=store.next_sequence(StockAdjustment, "product_id", product.id),
        )
        store.insert(adjustment)
        _update_stock_locked(store, product, after)
        return adjustment

    result = atomic(_op, name="adjust_stock")
    if result.is_success:
        current_app.logger.info("Stock adjusted (%s): %s", adjustment_type, product_id)
    return result


def get_product(product_id: str) -> EngineResult:
    store = RecordStore()
    return read_only(lambda: store.require(Product, product_id, label="Product"), name="get_product")
