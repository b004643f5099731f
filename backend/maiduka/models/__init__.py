from .base import SyncTrackedMixin, SYNC_PENDING, SYNC_SYNCED
from .inventory import Product, StockAdjustment
from .customers import Customer, CustomerPayment
from .sales import Sale, SaleItem, SalePayment, SaleRefund
from .purchases import PurchaseOrder, PurchaseOrderItem, PurchasePayment
from .savings import ShopSavingsSettings, SavingsGoal, SavingsTransaction

# Entity names understood by the sync collaborator
SYNC_ENTITIES = {
    "product": Product,
    "stock_adjustment": StockAdjustment,
    "customer": Customer,
    "customer_payment": CustomerPayment,
    "sale": Sale,
    "sale_item": SaleItem,
    "sale_payment": SalePayment,
    "sale_refund": SaleRefund,
    "purchase_order": PurchaseOrder,
    "purchase_order_item": PurchaseOrderItem,
    "purchase_payment": PurchasePayment,
    "shop_savings_settings": ShopSavingsSettings,
    "savings_goal": SavingsGoal,
    "savings_transaction": SavingsTransaction,
}

__all__ = [
    'SyncTrackedMixin', 'SYNC_PENDING', 'SYNC_SYNCED', 'SYNC_ENTITIES',
    'Product', 'StockAdjustment',
    'Customer', 'CustomerPayment',
    'Sale', 'SaleItem', 'SalePayment', 'SaleRefund',
    'PurchaseOrder', 'PurchaseOrderItem', 'PurchasePayment',
    'ShopSavingsSettings', 'SavingsGoal', 'SavingsTransaction',
]
