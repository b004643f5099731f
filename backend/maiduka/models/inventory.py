from __future__ import annotations

from ..extensions import db
from ..money import DecimalString, ZERO
from .base import SyncTrackedMixin, new_id, serialize_decimal


# Adjustment types and how they move stock
SUBTRACTIVE_ADJUSTMENTS = (
    "damaged",
    "expired",
    "lost",
    "theft",
    "personal_use",
    "donation",
    "return_to_supplier",
    "other",
)
ADJUSTMENT_RESTOCK = "restock"
ADJUSTMENT_SET = "adjustment"
ADJUSTMENT_TYPES = SUBTRACTIVE_ADJUSTMENTS + (ADJUSTMENT_RESTOCK, ADJUSTMENT_SET)


class Product(SyncTrackedMixin, db.Model):
    """
    Product master data with its on-hand quantity.

    STOCK MODEL:
    - current_stock is a mutable integer owned by the inventory service.
    - Only meaningful when track_inventory is true; services and digital
      products leave it NULL and are never deducted.
    - Concurrent writers are detected through version_id (optimistic lock).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_shop_name", "shop_id", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    shop_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    product_type = db.Column(db.String(16), nullable=False, default="physical")

    cost_per_unit = db.Column(DecimalString(), nullable=True)
    price_per_unit = db.Column(DecimalString(), nullable=True)

    track_inventory = db.Column(db.Boolean, nullable=False, default=True)
    current_stock = db.Column(db.Integer, nullable=True)
    low_stock_threshold = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_tracked(self) -> bool:
        return bool(self.track_inventory) and self.current_stock is not None

    @property
    def is_low_stock(self) -> bool:
        return self.is_tracked and self.low_stock_threshold is not None and self.current_stock <= self.low_stock_threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.is_tracked and self.current_stock <= 0

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "sku": self.sku,
            "product_type": self.product_type,
            "cost_per_unit": serialize_decimal(self.cost_per_unit),
            "price_per_unit": serialize_decimal(self.price_per_unit),
            "track_inventory": self.track_inventory,
            "current_stock": self.current_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "is_out_of_stock": self.is_out_of_stock,
            "version_id": self.version_id,
            **self.sync_dict(),
        }


class StockAdjustment(SyncTrackedMixin, db.Model):
    """
    Manual stock movement outside of sales (damage, loss, restock, count fix).

    IMMUTABLE: append-only; the product row carries the resulting quantity.
    value_at_time freezes quantity * cost_per_unit at the moment of adjustment.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.UniqueConstraint("product_id", "sequence", name="uq_stock_adjustments_product_seq"),
        db.Index("ix_stock_adjustments_product_type", "product_id", "adjustment_type"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    # damaged, expired, lost, theft, personal_use, donation, return_to_supplier, other, restock, adjustment
    adjustment_type = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    stock_before = db.Column(db.Integer, nullable=True)
    stock_after = db.Column(db.Integer, nullable=True)
    value_at_time = db.Column(DecimalString(), nullable=False, default=ZERO)
    reason = db.Column(db.String(255), nullable=True)

    adjustment_date = db.Column(db.BigInteger, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", backref=db.backref("stock_adjustments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "adjustment_type": self.adjustment_type,
            "quantity": self.quantity,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "value_at_time": serialize_decimal(self.value_at_time),
            "reason": self.reason,
            "adjustment_date": self.adjustment_date,
            "sequence": self.sequence,
            **self.sync_dict(),
        }
