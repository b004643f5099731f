from __future__ import annotations

from ..extensions import db
from ..money import DecimalString, ZERO, to_decimal
from .base import SyncTrackedMixin, new_id, serialize_decimal


TRANSACTION_DEPOSIT = "deposit"
TRANSACTION_WITHDRAWAL = "withdrawal"

GOAL_STATUS_ACTIVE = "active"
GOAL_STATUS_COMPLETED = "completed"
GOAL_STATUS_CANCELLED = "cancelled"
GOAL_STATUS_PAUSED = "paused"
GOAL_STATUSES = (GOAL_STATUS_ACTIVE, GOAL_STATUS_COMPLETED, GOAL_STATUS_CANCELLED, GOAL_STATUS_PAUSED)

SAVINGS_TYPES = ("percentage", "fixed_amount")
WITHDRAWAL_FREQUENCIES = ("none", "weekly", "bi_weekly", "monthly", "quarterly", "when_goal_reached")


class ShopSavingsSettings(SyncTrackedMixin, db.Model):
    """
    One row per shop: savings policy plus the running savings balance.

    The policy fields (savings_type, percentage, fixed amount, withdrawal
    frequency) are read by the automatic savings trigger; the ledger only
    moves current_balance / total_saved / total_withdrawn.
    """
    __tablename__ = "shop_savings_settings"
    __table_args__ = (
        db.UniqueConstraint("shop_id", name="uq_shop_savings_settings_shop"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False)

    is_enabled = db.Column(db.Boolean, nullable=False, default=False)
    # percentage, fixed_amount
    savings_type = db.Column(db.String(16), nullable=False, default="percentage")
    savings_percentage = db.Column(DecimalString(), nullable=True)
    fixed_amount = db.Column(DecimalString(), nullable=True)
    target_amount = db.Column(DecimalString(), nullable=True)
    # none, weekly, bi_weekly, monthly, quarterly, when_goal_reached
    withdrawal_frequency = db.Column(db.String(24), nullable=False, default="monthly")
    auto_withdraw = db.Column(db.Boolean, nullable=False, default=False)
    minimum_withdrawal_amount = db.Column(DecimalString(), nullable=True)

    current_balance = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_saved = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_withdrawn = db.Column(DecimalString(), nullable=False, default=ZERO)
    last_savings_date = db.Column(db.BigInteger, nullable=True)
    last_withdrawal_date = db.Column(db.BigInteger, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "is_enabled": self.is_enabled,
            "savings_type": self.savings_type,
            "savings_percentage": serialize_decimal(self.savings_percentage),
            "fixed_amount": serialize_decimal(self.fixed_amount),
            "target_amount": serialize_decimal(self.target_amount),
            "withdrawal_frequency": self.withdrawal_frequency,
            "auto_withdraw": self.auto_withdraw,
            "minimum_withdrawal_amount": serialize_decimal(self.minimum_withdrawal_amount),
            "current_balance": serialize_decimal(self.current_balance),
            "total_saved": serialize_decimal(self.total_saved),
            "total_withdrawn": serialize_decimal(self.total_withdrawn),
            "last_savings_date": self.last_savings_date,
            "last_withdrawal_date": self.last_withdrawal_date,
            "version_id": self.version_id,
            **self.sync_dict(),
        }


class SavingsGoal(SyncTrackedMixin, db.Model):
    """
    Savings target for a shop.

    Only deposits move current_amount / progress_percentage; progress is not
    clamped, so over-funded goals report more than 100.
    """
    __tablename__ = "savings_goals"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    target_amount = db.Column(DecimalString(), nullable=False)
    target_date = db.Column(db.BigInteger, nullable=True)
    current_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    amount_withdrawn = db.Column(DecimalString(), nullable=False, default=ZERO)
    progress_percentage = db.Column(db.Integer, nullable=False, default=0)

    # active, completed, cancelled, paused
    status = db.Column(db.String(16), nullable=False, default=GOAL_STATUS_ACTIVE, index=True)
    started_at = db.Column(db.BigInteger, nullable=True)
    completed_at = db.Column(db.BigInteger, nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_amount(self):
        return max(ZERO, to_decimal(self.target_amount) - to_decimal(self.current_amount))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "description": self.description,
            "target_amount": serialize_decimal(self.target_amount),
            "target_date": self.target_date,
            "current_amount": serialize_decimal(self.current_amount),
            "amount_withdrawn": serialize_decimal(self.amount_withdrawn),
            "remaining_amount": serialize_decimal(self.remaining_amount),
            "progress_percentage": self.progress_percentage,
            "status": self.status,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "priority": self.priority,
            "version_id": self.version_id,
            **self.sync_dict(),
        }


class SavingsTransaction(SyncTrackedMixin, db.Model):
    """
    Append-only savings ledger row.

    AUDIT: per shop, rows ordered by (transaction_date, sequence) form a chain:
    each balance_before equals the previous balance_after, and the last
    balance_after equals ShopSavingsSettings.current_balance.
    """
    __tablename__ = "savings_transactions"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "sequence", name="uq_savings_transactions_shop_seq"),
        db.Index("ix_savings_transactions_shop_date", "shop_id", "transaction_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False, index=True)
    savings_goal_id = db.Column(db.String(36), db.ForeignKey("savings_goals.id"), nullable=True, index=True)

    # deposit, withdrawal
    transaction_type = db.Column(db.String(16), nullable=False)
    amount = db.Column(DecimalString(), nullable=False)
    balance_before = db.Column(DecimalString(), nullable=False)
    balance_after = db.Column(DecimalString(), nullable=False)

    is_automatic = db.Column(db.Boolean, nullable=False, default=False)
    description = db.Column(db.String(255), nullable=True)
    processed_by = db.Column(db.String(36), nullable=True)

    transaction_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    goal = db.relationship("SavingsGoal", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "savings_goal_id": self.savings_goal_id,
            "transaction_type": self.transaction_type,
            "amount": serialize_decimal(self.amount),
            "balance_before": serialize_decimal(self.balance_before),
            "balance_after": serialize_decimal(self.balance_after),
            "is_automatic": self.is_automatic,
            "description": self.description,
            "processed_by": self.processed_by,
            "transaction_date": self.transaction_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }
