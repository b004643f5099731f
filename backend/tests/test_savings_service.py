# Overview: Pytest coverage for the savings ledger, goals and settings.

from decimal import Decimal

import pytest
from sqlalchemy import false
from maiduka.models import SavingsTransaction, ShopSavingsSettings
from maiduka.services import savings_service
from maiduka.services.errors import ErrorKind
from maiduka.services.savings_service import (
    create_savings_goal,
    deposit,
    get_current_balance,
    get_or_create_settings,
    get_transactions,
    set_goal_status,
    update_savings_settings,
    verify_balance_chain,
    withdraw,
)

from conftest import SHOP_ID, USER_ID


class TestDeposit:
    def test_first_deposit_creates_settings(self, db_session):
        result = deposit(SHOP_ID, "1000", description="Week 1")
        assert result.is_success

        transaction = result.value
        assert transaction.transaction_type == "deposit"
        assert transaction.balance_before == Decimal("0")
        assert transaction.balance_after == Decimal("1000")
        assert transaction.sequence == 1

        settings = db_session.query(ShopSavingsSettings).filter_by(shop_id=SHOP_ID).one()
        assert settings.current_balance == Decimal("1000")
        assert settings.total_saved == Decimal("1000")
        assert settings.last_savings_date == transaction.transaction_date

    def test_goal_progress(self, db_session, savings_goal):
        """Balance 0, deposit 1000 into a 5000 goal."""
        deposit(SHOP_ID, "1000", goal_id=savings_goal.id)
        db_session.refresh(savings_goal)
        assert savings_goal.current_amount == Decimal("1000")
        assert savings_goal.progress_percentage == 20

    def test_progress_rounds_half_up(self, db_session):
        goal = create_savings_goal(SHOP_ID, "Scale", "8").value
        deposit(SHOP_ID, "1", goal_id=goal.id)
        db_session.refresh(goal)
        assert goal.progress_percentage == 13

    def test_progress_not_clamped(self, db_session, savings_goal):
        deposit(SHOP_ID, "6000", goal_id=savings_goal.id)
        db_session.refresh(savings_goal)
        assert savings_goal.progress_percentage == 120
        assert savings_goal.remaining_amount == Decimal("0")
        assert savings_goal.status == "active"

    def test_goal_from_another_shop(self, db_session, savings_goal):
        result = deposit("shop-2", "100", goal_id=savings_goal.id)
        assert result.kind is ErrorKind.NOT_FOUND
        assert db_session.query(SavingsTransaction).count() == 0

    def test_cancelled_goal_rejects_deposit(self, db_session, savings_goal):
        set_goal_status(savings_goal.id, "cancelled")
        assert deposit(SHOP_ID, "100", goal_id=savings_goal.id).kind is ErrorKind.INVALID_STATE

    @pytest.mark.parametrize("amount", ["0", "-1", 10.5])
    def test_invalid_amount(self, db_session, amount):
        assert deposit(SHOP_ID, amount).kind is ErrorKind.VALIDATION

    def test_settings_created_by_concurrent_writer(self, db_session, monkeypatch):
        """Losing the race to create the settings row reuses the winner's row."""
        get_or_create_settings(SHOP_ID)
        calls = []

        def stale_lock(query):
            calls.append(query)
            if len(calls) == 1:
                # First read misses the row, as if it were committed a moment later
                return query.filter(false())
            return query.with_for_update()

        monkeypatch.setattr(savings_service, "lock_for_update", stale_lock)
        result = deposit(SHOP_ID, "100")

        assert result.is_success
        assert len(calls) == 2
        assert db_session.query(ShopSavingsSettings).count() == 1
        assert get_current_balance(SHOP_ID).value == Decimal("100")


class TestWithdraw:
    def test_insufficient_balance_leaves_state(self, db_session, savings_goal):
        """Deposit 1000, then try to withdraw 1500."""
        deposit(SHOP_ID, "1000", goal_id=savings_goal.id)

        result = withdraw(SHOP_ID, "1500")

        assert result.kind is ErrorKind.INSUFFICIENT_BALANCE
        assert result.details["available"] == "1000"
        assert get_current_balance(SHOP_ID).value == Decimal("1000")
        assert db_session.query(SavingsTransaction).count() == 1

    def test_without_settings_fails(self, db_session):
        assert withdraw(SHOP_ID, "1").kind is ErrorKind.INSUFFICIENT_BALANCE
        assert db_session.query(ShopSavingsSettings).count() == 0

    def test_withdraw_exact_balance(self, db_session):
        deposit(SHOP_ID, "750.50")
        transaction = withdraw(SHOP_ID, "750.50", reason="Rent", processed_by=USER_ID).value

        assert transaction.balance_before == Decimal("750.50")
        assert transaction.balance_after == Decimal("0")
        assert transaction.description == "Rent"

        settings = db_session.query(ShopSavingsSettings).filter_by(shop_id=SHOP_ID).one()
        assert settings.current_balance == Decimal("0")
        assert settings.total_withdrawn == Decimal("750.50")
        assert settings.last_withdrawal_date == transaction.transaction_date

    def test_withdraw_does_not_touch_goal(self, db_session, savings_goal):
        deposit(SHOP_ID, "2000", goal_id=savings_goal.id)
        withdraw(SHOP_ID, "1500", goal_id=savings_goal.id)

        db_session.refresh(savings_goal)
        assert savings_goal.current_amount == Decimal("2000")
        assert savings_goal.progress_percentage == 40
        assert savings_goal.amount_withdrawn == Decimal("0")

    def test_unknown_goal(self, db_session):
        deposit(SHOP_ID, "100")
        assert withdraw(SHOP_ID, "10", goal_id="ghost").kind is ErrorKind.NOT_FOUND


class TestBalanceChain:
    def test_replay_reproduces_balance(self, db_session, savings_goal):
        deposit(SHOP_ID, "1000")
        deposit(SHOP_ID, "250.25", goal_id=savings_goal.id)
        withdraw(SHOP_ID, "300")
        deposit(SHOP_ID, "49.75")
        withdraw(SHOP_ID, "5000")  # rejected

        rows = get_transactions(SHOP_ID).value
        assert [r.sequence for r in rows] == [1, 2, 3, 4]
        for previous, current in zip(rows, rows[1:]):
            assert current.balance_before == previous.balance_after

        report = verify_balance_chain(SHOP_ID).value
        assert report["ok"] is True
        assert report["transactions"] == 4
        assert Decimal(report["replayed_balance"]) == Decimal("1000")
        assert get_current_balance(SHOP_ID).value == Decimal("1000")

        settings = db_session.query(ShopSavingsSettings).filter_by(shop_id=SHOP_ID).one()
        assert settings.current_balance == settings.total_saved - settings.total_withdrawn

    def test_detects_tampering(self, db_session):
        deposit(SHOP_ID, "100")
        deposit(SHOP_ID, "100")
        row = db_session.query(SavingsTransaction).filter_by(sequence=2).one()
        row.balance_before = Decimal("150")
        db_session.commit()

        report = verify_balance_chain(SHOP_ID).value
        assert report["ok"] is False
        assert report["breaks"][0]["sequence"] == 2

    def test_empty_ledger(self, db_session):
        report = verify_balance_chain("nobody").value
        assert report["ok"] is True
        assert report["transactions"] == 0

    def test_shops_are_independent(self, db_session):
        deposit(SHOP_ID, "100")
        deposit("shop-2", "30")
        assert get_current_balance(SHOP_ID).value == Decimal("100")
        assert get_current_balance("shop-2").value == Decimal("30")
        assert [r.sequence for r in get_transactions("shop-2").value] == [1]


class TestSettingsAndGoals:
    def test_get_or_create_is_idempotent(self, db_session):
        first = get_or_create_settings(SHOP_ID).value
        second = get_or_create_settings(SHOP_ID).value
        assert first.id == second.id
        assert db_session.query(ShopSavingsSettings).count() == 1

    def test_update_policy(self, db_session):
        settings = update_savings_settings(
            SHOP_ID,
            is_enabled=True,
            savings_type="fixed_amount",
            fixed_amount="500",
            withdrawal_frequency="when_goal_reached",
        ).value
        assert settings.is_enabled is True
        assert settings.savings_type == "fixed_amount"
        assert settings.fixed_amount == Decimal("500")
        assert settings.withdrawal_frequency == "when_goal_reached"

    @pytest.mark.parametrize("flag", ["false", 0, 1, None])
    def test_flags_must_be_booleans(self, db_session, flag):
        result = update_savings_settings(SHOP_ID, is_enabled=flag)
        assert result.kind is ErrorKind.VALIDATION
        assert update_savings_settings(SHOP_ID, auto_withdraw=flag).kind is ErrorKind.VALIDATION
        assert get_or_create_settings(SHOP_ID).value.is_enabled is False

    def test_balance_fields_not_updatable(self, db_session):
        result = update_savings_settings(SHOP_ID, current_balance="1000000")
        assert result.kind is ErrorKind.VALIDATION

    def test_percentage_capped_at_hundred(self, db_session):
        result = update_savings_settings(SHOP_ID, savings_percentage="120")
        assert result.kind is ErrorKind.VALIDATION

    def test_invalid_frequency(self, db_session):
        assert update_savings_settings(SHOP_ID, withdrawal_frequency="daily").kind is ErrorKind.VALIDATION

    def test_goal_lifecycle(self, db_session):
        goal = create_savings_goal(SHOP_ID, "Shelves", "3000", priority=2).value
        assert goal.status == "active"
        assert goal.started_at is not None

        assert set_goal_status(goal.id, "paused").value.status == "paused"
        completed = set_goal_status(goal.id, "completed").value
        assert completed.completed_at is not None

        set_goal_status(goal.id, "cancelled")
        assert set_goal_status(goal.id, "active").kind is ErrorKind.INVALID_STATE

    def test_goal_requires_positive_target(self, db_session):
        assert create_savings_goal(SHOP_ID, "Nothing", "0").kind is ErrorKind.VALIDATION
