from __future__ import annotations

from ..extensions import db
from ..money import DecimalString, ZERO, to_decimal
from .base import SyncTrackedMixin, new_id, serialize_decimal


class Customer(SyncTrackedMixin, db.Model):
    """
    Customer master data with running credit figures.

    DEBT MODEL:
    - current_debt is maintained incrementally (sale debt in, debt payments out).
    - Intended relationship: current_debt == max(0, total_purchases - total_paid).
      It is not recomputed, so refunds and cancellations do not move it.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_shop_name", "shop_id", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    credit_limit = db.Column(DecimalString(), nullable=False, default=ZERO)
    current_debt = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_purchases = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_paid = db.Column(DecimalString(), nullable=False, default=ZERO)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def has_debt(self) -> bool:
        return to_decimal(self.current_debt) > ZERO

    @property
    def is_over_credit_limit(self) -> bool:
        limit = to_decimal(self.credit_limit)
        return limit > ZERO and to_decimal(self.current_debt) > limit

    @property
    def available_credit(self):
        limit = to_decimal(self.credit_limit)
        if limit <= ZERO:
            return ZERO
        return max(ZERO, limit - to_decimal(self.current_debt))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "credit_limit": serialize_decimal(self.credit_limit),
            "current_debt": serialize_decimal(self.current_debt),
            "total_purchases": serialize_decimal(self.total_purchases),
            "total_paid": serialize_decimal(self.total_paid),
            "available_credit": serialize_decimal(self.available_credit),
            "version_id": self.version_id,
            **self.sync_dict(),
        }


class CustomerPayment(SyncTrackedMixin, db.Model):
    """Append-only record of a customer settling outstanding debt."""
    __tablename__ = "customer_payments"
    __table_args__ = (
        db.UniqueConstraint("customer_id", "sequence", name="uq_customer_payments_customer_seq"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=True)

    amount = db.Column(DecimalString(), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    debt_before = db.Column(DecimalString(), nullable=False)
    debt_after = db.Column(DecimalString(), nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    payment_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    customer = db.relationship("Customer", backref=db.backref("debt_payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "amount": serialize_decimal(self.amount),
            "payment_method": self.payment_method,
            "debt_before": serialize_decimal(self.debt_before),
            "debt_after": serialize_decimal(self.debt_after),
            "notes": self.notes,
            "payment_date": self.payment_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }
