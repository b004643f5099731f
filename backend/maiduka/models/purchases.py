from __future__ import annotations

from ..extensions import db
from ..money import DecimalString, ZERO, to_decimal
from .base import SyncTrackedMixin, new_id, serialize_decimal


PO_STATUS_PENDING = "pending"
PO_STATUS_APPROVED = "approved"
PO_STATUS_REJECTED = "rejected"
PO_STATUS_COMPLETED = "completed"
PO_STATUS_CANCELLED = "cancelled"

PO_TERMINAL_STATUSES = (PO_STATUS_REJECTED, PO_STATUS_COMPLETED, PO_STATUS_CANCELLED)


class PurchaseOrder(SyncTrackedMixin, db.Model):
    """
    Purchase order between a buyer shop and a seller shop.

    LIFECYCLE:
    - pending -> approved -> completed (completion is driven by payments)
    - pending -> rejected
    - pending / approved -> cancelled

    total_paid is re-derived from the payment ledger on every payment.
    A partially paid order is simply approved with total_paid < total_amount.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("reference_number", name="uq_purchase_orders_reference"),
        db.Index("ix_purchase_orders_buyer_status", "buyer_shop_id", "status"),
        db.Index("ix_purchase_orders_seller_status", "seller_shop_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    buyer_shop_id = db.Column(db.String(36), nullable=False, index=True)
    seller_shop_id = db.Column(db.String(36), nullable=False, index=True)
    is_internal = db.Column(db.Boolean, nullable=False, default=False)
    reference_number = db.Column(db.String(64), nullable=False)

    # pending, approved, rejected, completed, cancelled
    status = db.Column(db.String(16), nullable=False, default=PO_STATUS_PENDING, index=True)

    total_amount = db.Column(DecimalString(), nullable=False, default=ZERO)
    total_paid = db.Column(DecimalString(), nullable=False, default=ZERO)
    notes = db.Column(db.Text, nullable=True)

    approved_at = db.Column(db.BigInteger, nullable=True)
    approved_by = db.Column(db.String(36), nullable=True)
    rejected_at = db.Column(db.BigInteger, nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)
    cancelled_at = db.Column(db.BigInteger, nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)
    completed_at = db.Column(db.BigInteger, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def outstanding_amount(self):
        return to_decimal(self.total_amount) - to_decimal(self.total_paid)

    @property
    def is_paid(self) -> bool:
        return to_decimal(self.total_paid) >= to_decimal(self.total_amount)

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "buyer_shop_id": self.buyer_shop_id,
            "seller_shop_id": self.seller_shop_id,
            "is_internal": self.is_internal,
            "reference_number": self.reference_number,
            "status": self.status,
            "total_amount": serialize_decimal(self.total_amount),
            "total_paid": serialize_decimal(self.total_paid),
            "outstanding_amount": serialize_decimal(self.outstanding_amount),
            "notes": self.notes,
            "approved_at": self.approved_at,
            "approved_by": self.approved_by,
            "rejected_at": self.rejected_at,
            "rejection_reason": self.rejection_reason,
            "cancelled_at": self.cancelled_at,
            "cancellation_reason": self.cancellation_reason,
            "completed_at": self.completed_at,
            "version_id": self.version_id,
            **self.sync_dict(),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class PurchaseOrderItem(SyncTrackedMixin, db.Model):
    """Ordered product line; total_price == quantity * unit_price."""
    __tablename__ = "purchase_order_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_order_id = db.Column(db.String(36), db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    # Refers to the seller's catalogue, which may not exist on this device
    product_id = db.Column(db.String(36), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(DecimalString(), nullable=False)
    total_price = db.Column(DecimalString(), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("items", lazy=True, order_by="PurchaseOrderItem.created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": serialize_decimal(self.unit_price),
            "total_price": serialize_decimal(self.total_price),
            "notes": self.notes,
            **self.sync_dict(),
        }


class PurchasePayment(SyncTrackedMixin, db.Model):
    """
    Payment made against a purchase order.

    IMMUTABLE: append-only. Overpayment is recorded as-is.
    """
    __tablename__ = "purchase_payments"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "sequence", name="uq_purchase_payments_order_seq"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_order_id = db.Column(db.String(36), db.ForeignKey("purchase_orders.id"), nullable=False, index=True)

    amount = db.Column(DecimalString(), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)
    recorded_by = db.Column(db.String(36), nullable=False)

    payment_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("payments", lazy=True, order_by="PurchasePayment.sequence"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "amount": serialize_decimal(self.amount),
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "recorded_by": self.recorded_by,
            "payment_date": self.payment_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }
