# Overview: Service-layer operations for shop savings; balance ledger, goals and policy settings.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SavingsGoal, SavingsTransaction, ShopSavingsSettings
from ..models.savings import (
    GOAL_STATUS_ACTIVE,
    GOAL_STATUS_CANCELLED,
    GOAL_STATUS_COMPLETED,
    GOAL_STATUSES,
    SAVINGS_TYPES,
    TRANSACTION_DEPOSIT,
    TRANSACTION_WITHDRAWAL,
    WITHDRAWAL_FREQUENCIES,
)
from ..money import HUNDRED, ZERO, percent_of, to_decimal
from ..validation import coerce_amount, coerce_flag, require_choice, require_text
from .errors import (
    EngineResult,
    InsufficientBalanceError,
    InvalidStateError,
    LedgerValidationError,
    NotFoundError,
)
from .record_store import RecordStore
from .unit_of_work import atomic, lock_for_update, read_only


"""
MAIDUKA Savings Ledger Invariants (authoritative)

- SavingsTransaction is append-only; one row per deposit / withdrawal.
- Per shop, rows ordered by (transaction_date, sequence) chain:
  row[n].balance_before == row[n-1].balance_after, first balance_before == 0,
  last balance_after == settings.current_balance.
- current_balance == total_saved - total_withdrawn.
- withdraw(amount > current_balance) fails with insufficient_balance and writes nothing.
- Only deposits move goal.current_amount / progress_percentage.
  progress = round_half_up(current_amount * 100 / target_amount), not clamped at 100.
"""


# Policy fields update_savings_settings() accepts
SETTINGS_FIELDS = (
    "is_enabled",
    "savings_type",
    "savings_percentage",
    "fixed_amount",
    "target_amount",
    "withdrawal_frequency",
    "auto_withdraw",
    "minimum_withdrawal_amount",
)


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _settings_locked(store: RecordStore, shop_id: str, *, create: bool) -> ShopSavingsSettings | None:
    """
    Row-locked settings for a shop, created on first use when asked.

    Two first writers can both miss the row; the loser's insert hits the
    unique shop_id constraint inside a savepoint and falls back to the
    winner's row instead of failing the whole transaction.
    """
    query = db.session.query(ShopSavingsSettings).filter_by(shop_id=shop_id)
    settings = lock_for_update(query).first()
    if settings is None and create:
        settings = ShopSavingsSettings(
            shop_id=shop_id,
            current_balance=ZERO,
            total_saved=ZERO,
            total_withdrawn=ZERO,
        )
        try:
            with db.session.begin_nested():
                store.insert(settings)
        except IntegrityError:
            current_app.logger.info(f"Savings settings for {shop_id} created concurrently; reusing row")
            settings = lock_for_update(query).one()
    return settings


def _goal_for_shop(store: RecordStore, shop_id: str, goal_id: str) -> SavingsGoal:
    goal = store.get_by_id(SavingsGoal, goal_id, lock=True)
    if goal is None or goal.shop_id != shop_id:
        raise NotFoundError(
            f"Savings goal {goal_id} not found",
            details={"id": goal_id, "shop_id": shop_id},
        )
    return goal


def _append_transaction(
    store: RecordStore,
    shop_id: str,
    *,
    transaction_type: str,
    amount: Decimal,
    balance_before: Decimal,
    balance_after: Decimal,
    goal_id: str | None,
    description: str | None,
    processed_by: str | None,
    is_automatic: bool,
) -> SavingsTransaction:
    transaction = SavingsTransaction(
        shop_id=shop_id,
        savings_goal_id=goal_id,
        transaction_type=transaction_type,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        is_automatic=is_automatic,
        description=description,
        processed_by=processed_by,
        transaction_date=store.now(),
        sequence=store.next_sequence(SavingsTransaction, "shop_id", shop_id),
    )
    store.insert(transaction)
    return transaction


def _ledger(store: RecordStore, shop_id: str) -> list[SavingsTransaction]:
    return store.list_children(
        SavingsTransaction,
        "shop_id",
        shop_id,
        order_by=(SavingsTransaction.transaction_date, SavingsTransaction.sequence),
    )


# =============================================================================
# SETTINGS & GOALS
# =============================================================================

def get_or_create_settings(shop_id: str) -> EngineResult:
    store = RecordStore()

    def _op():
        require_text(shop_id, "shop_id")
        return _settings_locked(store, shop_id, create=True)

    return atomic(_op, name="get_or_create_savings_settings")


def update_savings_settings(shop_id: str, **changes) -> EngineResult:
    """
    Update the savings policy read by the automatic savings trigger.

    Balance fields are never accepted here; they only move through
    deposit() / withdraw().
    """
    store = RecordStore()

    def _op():
        unknown = sorted(set(changes) - set(SETTINGS_FIELDS))
        if unknown:
            raise LedgerValidationError(
                "Unknown savings settings fields",
                details={"fields": unknown, "valid": list(SETTINGS_FIELDS)},
            )

        settings = _settings_locked(store, require_text(shop_id, "shop_id"), create=True)
        for key, value in changes.items():
            if key == "savings_type":
                require_choice(value, SAVINGS_TYPES, key)
            elif key == "withdrawal_frequency":
                require_choice(value, WITHDRAWAL_FREQUENCIES, key)
            elif key in ("is_enabled", "auto_withdraw"):
                value = coerce_flag(value, key)
            elif value is not None:
                value = coerce_amount(value, key, allow_zero=True)
                if key == "savings_percentage" and value > HUNDRED:
                    raise LedgerValidationError("savings_percentage must be <= 100", details={key: str(value)})
            setattr(settings, key, value)

        store.update(settings)
        return settings

    result = atomic(_op, name="update_savings_settings")
    if result.is_success:
        current_app.logger.info("Savings settings updated for shop: %s", shop_id)
    return result


def create_savings_goal(
    shop_id: str,
    name: str,
    target_amount,
    *,
    description: str | None = None,
    target_date: int | None = None,
    priority: int = 0,
) -> EngineResult:
    store = RecordStore()

    def _op():
        goal = SavingsGoal(
            shop_id=require_text(shop_id, "shop_id"),
            name=require_text(name, "name"),
            description=description,
            target_amount=coerce_amount(target_amount, "target_amount"),
            target_date=target_date,
            current_amount=ZERO,
            amount_withdrawn=ZERO,
            progress_percentage=0,
            status=GOAL_STATUS_ACTIVE,
            started_at=store.now(),
            priority=priority,
        )
        store.insert(goal)
        return goal

    result = atomic(_op, name="create_savings_goal")
    if result.is_success:
        current_app.logger.info("Savings goal created for shop: %s", shop_id)
    return result


def set_goal_status(goal_id: str, status: str) -> EngineResult:
    """Pause, resume, complete or cancel a goal. Cancelled goals are final."""
    store = RecordStore()

    def _op():
        require_choice(status, GOAL_STATUSES, "status")
        goal = store.require(SavingsGoal, goal_id, lock=True, label="Savings goal")
        if goal.status == GOAL_STATUS_CANCELLED and status != GOAL_STATUS_CANCELLED:
            raise InvalidStateError(
                "Cancelled savings goals cannot be reopened",
                details={"goal_id": goal.id},
            )

        goal.status = status
        if status == GOAL_STATUS_COMPLETED and goal.completed_at is None:
            goal.completed_at = store.now()
        store.update(goal)
        return goal

    result = atomic(_op, name="set_goal_status")
    if result.is_success:
        current_app.logger.info("Savings goal %s set to %s", goal_id, status)
    return result


# =============================================================================
# LEDGER OPERATIONS
# =============================================================================

def deposit(
    shop_id: str,
    amount,
    goal_id: str | None = None,
    description: str | None = None,
    *,
    processed_by: str | None = None,
    is_automatic: bool = False,
) -> EngineResult:
    """
    Add money to the shop's savings balance, optionally towards a goal.

    Steps (one transaction):
    1. balance_before = settings.current_balance (settings created at 0 if missing)
    2. Append a deposit row with balance_before / balance_after
    3. current_balance = balance_after; total_saved += amount
    4. Goal (if any): current_amount += amount; progress re-derived

    Returns:
        EngineResult wrapping the SavingsTransaction
    """
    store = RecordStore()

    def _op():
        value = coerce_amount(amount, "amount")
        require_text(shop_id, "shop_id")

        goal = None
        if goal_id is not None:
            goal = _goal_for_shop(store, shop_id, goal_id)
            if goal.status == GOAL_STATUS_CANCELLED:
                raise InvalidStateError(
                    "Cannot deposit into a cancelled savings goal",
                    details={"goal_id": goal.id},
                )

        settings = _settings_locked(store, shop_id, create=True)
        balance_before = to_decimal(settings.current_balance)
        balance_after = balance_before + value

        transaction = _append_transaction(
            store,
            shop_id,
            transaction_type=TRANSACTION_DEPOSIT,
            amount=value,
            balance_before=balance_before,
            balance_after=balance_after,
            goal_id=goal_id,
            description=description,
            processed_by=processed_by,
            is_automatic=is_automatic,
        )

        settings.current_balance = balance_after
        settings.total_saved = to_decimal(settings.total_saved) + value
        settings.last_savings_date = transaction.transaction_date
        store.update(settings)

        if goal is not None:
            goal.current_amount = to_decimal(goal.current_amount) + value
            goal.progress_percentage = percent_of(goal.current_amount, goal.target_amount)
            store.update(goal)

        return transaction

    result = atomic(_op, name="savings_deposit")
    if result.is_success:
        current_app.logger.info("Deposit made: %s to shop %s", amount, shop_id)
    return result


def withdraw(
    shop_id: str,
    amount,
    goal_id: str | None = None,
    reason: str | None = None,
    *,
    processed_by: str | None = None,
) -> EngineResult:
    """
    Take money out of the shop's savings balance.

    GUARD: amount > current_balance -> insufficient_balance, nothing written.
    A goal_id only tags the ledger row; goal progress is left as it is.

    Returns:
        EngineResult wrapping the SavingsTransaction
    """
    store = RecordStore()

    def _op():
        value = coerce_amount(amount, "amount")
        require_text(shop_id, "shop_id")
        if goal_id is not None:
            _goal_for_shop(store, shop_id, goal_id)

        settings = _settings_locked(store, shop_id, create=False)
        balance_before = to_decimal(settings.current_balance) if settings is not None else ZERO
        if value > balance_before:
            raise InsufficientBalanceError(
                "Insufficient savings balance",
                details={
                    "shop_id": shop_id,
                    "requested": str(value),
                    "available": str(balance_before),
                },
            )

        balance_after = balance_before - value
        transaction = _append_transaction(
            store,
            shop_id,
            transaction_type=TRANSACTION_WITHDRAWAL,
            amount=value,
            balance_before=balance_before,
            balance_after=balance_after,
            goal_id=goal_id,
            description=reason,
            processed_by=processed_by,
            is_automatic=False,
        )

        settings.current_balance = balance_after
        settings.total_withdrawn = to_decimal(settings.total_withdrawn) + value
        settings.last_withdrawal_date = transaction.transaction_date
        store.update(settings)
        return transaction

    result = atomic(_op, name="savings_withdraw")
    if result.is_success:
        current_app.logger.info("Withdrawal made: %s from shop %s", amount, shop_id)
    return result


# =============================================================================
# QUERIES & AUDIT
# =============================================================================

def get_current_balance(shop_id: str) -> EngineResult:
    def _op():
        settings = db.session.query(ShopSavingsSettings).filter_by(shop_id=shop_id).first()
        return to_decimal(settings.current_balance) if settings is not None else ZERO

    return read_only(_op, name="get_current_balance")


def get_transactions(shop_id: str) -> EngineResult:
    store = RecordStore()
    return read_only(lambda: _ledger(store, shop_id), name="get_savings_transactions")


def verify_balance_chain(shop_id: str) -> EngineResult:
    """
    Replay the shop's savings ledger and compare it with the settings row.

    Returns a report dict:
        - ok: True when every link holds and the replay matches current_balance
        - transactions: number of rows replayed
        - replayed_balance / current_balance
        - breaks: [{sequence, expected_before, balance_before}] for broken links
    """
    store = RecordStore()

    def _op():
        breaks = []
        running = ZERO
        rows = _ledger(store, shop_id)
        for row in rows:
            if to_decimal(row.balance_before) != running:
                breaks.append({
                    "sequence": row.sequence,
                    "expected_before": str(running),
                    "balance_before": str(row.balance_before),
                })
            delta = to_decimal(row.amount)
            if row.transaction_type == TRANSACTION_WITHDRAWAL:
                delta = -delta
            if to_decimal(row.balance_after) != to_decimal(row.balance_before) + delta:
                breaks.append({
                    "sequence": row.sequence,
                    "expected_after": str(to_decimal(row.balance_before) + delta),
                    "balance_after": str(row.balance_after),
                })
            running = to_decimal(row.balance_after)

        settings = db.session.query(ShopSavingsSettings).filter_by(shop_id=shop_id).first()
        current = to_decimal(settings.current_balance) if settings is not None else ZERO

        return {
            "shop_id": shop_id,
            "ok": not breaks and running == current,
            "transactions": len(rows),
            "replayed_balance": str(running),
            "current_balance": str(current),
            "breaks": breaks,
        }

    return read_only(_op, name="verify_balance_chain")
