from __future__ import annotations

from ..extensions import db
from ..money import DecimalString, ZERO, to_decimal
from .base import SyncTrackedMixin, new_id, serialize_decimal


# =============================================================================
# VALUE DOMAINS
# =============================================================================

SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_PENDING = "pending"
SALE_STATUS_CANCELLED = "cancelled"
SALE_STATUS_REFUNDED = "refunded"
SALE_STATUS_PARTIALLY_REFUNDED = "partially_refunded"

SALE_STATUSES = (
    SALE_STATUS_COMPLETED,
    SALE_STATUS_PENDING,
    SALE_STATUS_CANCELLED,
    SALE_STATUS_REFUNDED,
    SALE_STATUS_PARTIALLY_REFUNDED,
)

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PARTIALLY_PAID = "partially_paid"
PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_DEBT = "debt"

PAYMENT_METHODS = ("cash", "mobile_money", "bank_transfer", "credit", "cheque")


class Sale(SyncTrackedMixin, db.Model):
    """
    Sale document with its money figures.

    WHY: The sale row carries denormalized totals (amount_paid, debt_amount,
    payment_status) so lists render without touching the ledgers, but those
    figures are always re-derived from the payment/refund ledgers, never
    incremented in place.

    totalAmount == subtotal - discount_amount + tax_amount (checked at creation).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shop_status_date", "shop_id", "status", "sale_date"),
        db.Index("ix_sales_shop_customer", "shop_id", "customer_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.String(36), nullable=True)
    sale_number = db.Column(db.String(64), nullable=True, index=True)

    subtotal = db.Column(DecimalString(), nullable=False, default=ZERO)
    tax_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    discount_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    amount_paid = db.Column(DecimalString(), nullable=False, default=ZERO)
    change_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    debt_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    profit_amount = db.Column(DecimalString(), nullable=False, default=ZERO)

    # completed, pending, cancelled, refunded, partially_refunded
    status = db.Column(db.String(24), nullable=False, default=SALE_STATUS_COMPLETED, index=True)
    # paid, partially_paid, pending, debt
    payment_status = db.Column(db.String(24), nullable=False, default=PAYMENT_STATUS_PENDING, index=True)

    notes = db.Column(db.Text, nullable=True)
    sale_date = db.Column(db.BigInteger, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))

    @property
    def has_debt(self) -> bool:
        return to_decimal(self.debt_amount) > ZERO

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_STATUS_PAID

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "sale_number": self.sale_number,
            "subtotal": serialize_decimal(self.subtotal),
            "tax_amount": serialize_decimal(self.tax_amount),
            "discount_amount": serialize_decimal(self.discount_amount),
            "total_amount": serialize_decimal(self.total_amount),
            "amount_paid": serialize_decimal(self.amount_paid),
            "change_amount": serialize_decimal(self.change_amount),
            "debt_amount": serialize_decimal(self.debt_amount),
            "profit_amount": serialize_decimal(self.profit_amount),
            "status": self.status,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "sale_date": self.sale_date,
            "version_id": self.version_id,
            **self.sync_dict(),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [p.to_dict() for p in self.payments]
            data["refunds"] = [r.to_dict() for r in self.refunds]
        return data


class SaleItem(SyncTrackedMixin, db.Model):
    """
    Line item on a sale.

    profit is frozen at creation: (selling_price - cost_price) * quantity - discount_amount.
    product_id stays nullable so history survives product deletion.
    """
    __tablename__ = "sale_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(DecimalString(), nullable=False)
    selling_price = db.Column(DecimalString(), nullable=False)
    cost_price = db.Column(DecimalString(), nullable=False, default=ZERO)
    discount_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    subtotal = db.Column(DecimalString(), nullable=True)
    total = db.Column(DecimalString(), nullable=True)
    profit = db.Column(DecimalString(), nullable=True)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.created_at"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": serialize_decimal(self.quantity),
            "selling_price": serialize_decimal(self.selling_price),
            "cost_price": serialize_decimal(self.cost_price),
            "discount_amount": serialize_decimal(self.discount_amount),
            "subtotal": serialize_decimal(self.subtotal),
            "total": serialize_decimal(self.total),
            "profit": serialize_decimal(self.profit),
            **self.sync_dict(),
        }


class SalePayment(SyncTrackedMixin, db.Model):
    """
    Payment received against a sale.

    IMMUTABLE: append-only. sequence orders payments per sale.
    """
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "sequence", name="uq_sale_payments_sale_seq"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=True)

    # cash, mobile_money, bank_transfer, credit, cheque
    payment_method = db.Column(db.String(32), nullable=False)
    amount = db.Column(DecimalString(), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    payment_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True, order_by="SalePayment.sequence"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "user_id": self.user_id,
            "payment_method": self.payment_method,
            "amount": serialize_decimal(self.amount),
            "reference_number": self.reference_number,
            "notes": self.notes,
            "payment_date": self.payment_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }


class SaleRefund(SyncTrackedMixin, db.Model):
    """
    Money returned to the customer for a sale.

    IMMUTABLE: append-only. A refund never touches stock or customer debt.
    """
    __tablename__ = "sale_refunds"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "sequence", name="uq_sale_refunds_sale_seq"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False)

    amount = db.Column(DecimalString(), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    refund_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("refunds", lazy=True, order_by="SaleRefund.sequence"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "user_id": self.user_id,
            "amount": serialize_decimal(self.amount),
            "reason": self.reason,
            "refund_date": self.refund_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }
