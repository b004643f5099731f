"""Initial ledger schema: inventory, customers, sales, purchase orders, savings

Revision ID: 20261018_ledger
Revises:
Create Date: 2026-10-18

This migration adds:
1. products, stock_adjustments
2. customers, customer_payments
3. sales, sale_items, sale_payments, sale_refunds
4. purchase_orders, purchase_order_items, purchase_payments
5. shop_savings_settings, savings_goals, savings_transactions

Every table carries the sync columns (sync_status, last_synced_at,
deleted_at, created_at, updated_at as epoch milliseconds). Money and
quantity columns are canonical decimal strings.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_ledger'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False):
    return sa.Column(name, sa.String(length=64), nullable=nullable)


def _sync_columns():
    return [
        sa.Column('sync_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('last_synced_at', sa.BigInteger(), nullable=True),
        sa.Column('deleted_at', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
    ]


def _index_sync_status(table):
    with op.batch_alter_table(table, schema=None) as batch_op:
        batch_op.create_index(f'ix_{table}_sync_status', ['sync_status'], unique=False)


def upgrade():
    # ==========================================================================
    # 1. INVENTORY
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('product_type', sa.String(length=16), nullable=False, server_default='physical'),
        _money('cost_per_unit', nullable=True),
        _money('price_per_unit', nullable=True),
        sa.Column('track_inventory', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('current_stock', sa.Integer(), nullable=True),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_shop_id', ['shop_id'], unique=False)
        batch_op.create_index('ix_products_shop_name', ['shop_id', 'name'], unique=False)
    _index_sync_status('products')

    op.create_table('stock_adjustments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('adjustment_type', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('stock_before', sa.Integer(), nullable=True),
        sa.Column('stock_after', sa.Integer(), nullable=True),
        _money('value_at_time'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('adjustment_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'sequence', name='uq_stock_adjustments_product_seq'),
    )
    with op.batch_alter_table('stock_adjustments', schema=None) as batch_op:
        batch_op.create_index('ix_stock_adjustments_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_stock_adjustments_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_stock_adjustments_product_type', ['product_id', 'adjustment_type'], unique=False)
    _index_sync_status('stock_adjustments')

    # ==========================================================================
    # 2. CUSTOMERS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        _money('credit_limit'),
        _money('current_debt'),
        _money('total_purchases'),
        _money('total_paid'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_shop_id', ['shop_id'], unique=False)
        batch_op.create_index('ix_customers_shop_name', ['shop_id', 'name'], unique=False)
    _index_sync_status('customers')

    op.create_table('customer_payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        _money('amount'),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        _money('debt_before'),
        _money('debt_after'),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('payment_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', 'sequence', name='uq_customer_payments_customer_seq'),
    )
    with op.batch_alter_table('customer_payments', schema=None) as batch_op:
        batch_op.create_index('ix_customer_payments_customer_id', ['customer_id'], unique=False)
    _index_sync_status('customer_payments')

    # ==========================================================================
    # 3. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('sale_number', sa.String(length=64), nullable=True),
        _money('subtotal'),
        _money('tax_amount'),
        _money('discount_amount'),
        _money('total_amount'),
        _money('amount_paid'),
        _money('change_amount'),
        _money('debt_amount'),
        _money('profit_amount'),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='completed'),
        sa.Column('payment_status', sa.String(length=24), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sale_date', sa.BigInteger(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_shop_id', ['shop_id'], unique=False)
        batch_op.create_index('ix_sales_customer_id', ['customer_id'], unique=False)
        batch_op.create_index('ix_sales_sale_number', ['sale_number'], unique=False)
        batch_op.create_index('ix_sales_status', ['status'], unique=False)
        batch_op.create_index('ix_sales_payment_status', ['payment_status'], unique=False)
        batch_op.create_index('ix_sales_shop_status_date', ['shop_id', 'status', 'sale_date'], unique=False)
        batch_op.create_index('ix_sales_shop_customer', ['shop_id', 'customer_id'], unique=False)
    _index_sync_status('sales')

    op.create_table('sale_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        _money('quantity'),
        _money('selling_price'),
        _money('cost_price'),
        _money('discount_amount'),
        _money('subtotal', nullable=True),
        _money('total', nullable=True),
        _money('profit', nullable=True),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index('ix_sale_items_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_sale_items_product_id', ['product_id'], unique=False)
    _index_sync_status('sale_items')

    op.create_table('sale_payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        _money('amount'),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('payment_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'sequence', name='uq_sale_payments_sale_seq'),
    )
    with op.batch_alter_table('sale_payments', schema=None) as batch_op:
        batch_op.create_index('ix_sale_payments_sale_id', ['sale_id'], unique=False)
    _index_sync_status('sale_payments')

    op.create_table('sale_refunds',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        _money('amount'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('refund_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'sequence', name='uq_sale_refunds_sale_seq'),
    )
    with op.batch_alter_table('sale_refunds', schema=None) as batch_op:
        batch_op.create_index('ix_sale_refunds_sale_id', ['sale_id'], unique=False)
    _index_sync_status('sale_refunds')

    # ==========================================================================
    # 4. PURCHASE ORDERS
    # ==========================================================================
    op.create_table('purchase_orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('buyer_shop_id', sa.String(length=36), nullable=False),
        sa.Column('seller_shop_id', sa.String(length=36), nullable=False),
        sa.Column('is_internal', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('reference_number', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        _money('total_amount'),
        _money('total_paid'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('approved_at', sa.BigInteger(), nullable=True),
        sa.Column('approved_by', sa.String(length=36), nullable=True),
        sa.Column('rejected_at', sa.BigInteger(), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('cancelled_at', sa.BigInteger(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=255), nullable=True),
        sa.Column('completed_at', sa.BigInteger(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reference_number', name='uq_purchase_orders_reference'),
    )
    with op.batch_alter_table('purchase_orders', schema=None) as batch_op:
        batch_op.create_index('ix_purchase_orders_buyer_shop_id', ['buyer_shop_id'], unique=False)
        batch_op.create_index('ix_purchase_orders_seller_shop_id', ['seller_shop_id'], unique=False)
        batch_op.create_index('ix_purchase_orders_status', ['status'], unique=False)
        batch_op.create_index('ix_purchase_orders_buyer_status', ['buyer_shop_id', 'status'], unique=False)
        batch_op.create_index('ix_purchase_orders_seller_status', ['seller_shop_id', 'status'], unique=False)
    _index_sync_status('purchase_orders')

    op.create_table('purchase_order_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('purchase_order_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('unit_price'),
        _money('total_price', nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('purchase_order_items', schema=None) as batch_op:
        batch_op.create_index('ix_purchase_order_items_purchase_order_id', ['purchase_order_id'], unique=False)
    _index_sync_status('purchase_order_items')

    op.create_table('purchase_payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('purchase_order_id', sa.String(length=36), nullable=False),
        _money('amount'),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('recorded_by', sa.String(length=36), nullable=False),
        sa.Column('payment_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('purchase_order_id', 'sequence', name='uq_purchase_payments_order_seq'),
    )
    with op.batch_alter_table('purchase_payments', schema=None) as batch_op:
        batch_op.create_index('ix_purchase_payments_purchase_order_id', ['purchase_order_id'], unique=False)
    _index_sync_status('purchase_payments')

    # ==========================================================================
    # 5. SAVINGS
    # ==========================================================================
    op.create_table('shop_savings_settings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('savings_type', sa.String(length=16), nullable=False, server_default='percentage'),
        _money('savings_percentage', nullable=True),
        _money('fixed_amount', nullable=True),
        _money('target_amount', nullable=True),
        sa.Column('withdrawal_frequency', sa.String(length=24), nullable=False, server_default='monthly'),
        sa.Column('auto_withdraw', sa.Boolean(), nullable=False, server_default='0'),
        _money('minimum_withdrawal_amount', nullable=True),
        _money('current_balance'),
        _money('total_saved'),
        _money('total_withdrawn'),
        sa.Column('last_savings_date', sa.BigInteger(), nullable=True),
        sa.Column('last_withdrawal_date', sa.BigInteger(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', name='uq_shop_savings_settings_shop'),
    )
    _index_sync_status('shop_savings_settings')

    op.create_table('savings_goals',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _money('target_amount'),
        sa.Column('target_date', sa.BigInteger(), nullable=True),
        _money('current_amount'),
        _money('amount_withdrawn'),
        sa.Column('progress_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('started_at', sa.BigInteger(), nullable=True),
        sa.Column('completed_at', sa.BigInteger(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_sync_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('savings_goals', schema=None) as batch_op:
        batch_op.create_index('ix_savings_goals_shop_id', ['shop_id'], unique=False)
        batch_op.create_index('ix_savings_goals_status', ['status'], unique=False)
    _index_sync_status('savings_goals')

    op.create_table('savings_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop_id', sa.String(length=36), nullable=False),
        sa.Column('savings_goal_id', sa.String(length=36), nullable=True),
        sa.Column('transaction_type', sa.String(length=16), nullable=False),
        _money('amount'),
        _money('balance_before'),
        _money('balance_after'),
        sa.Column('is_automatic', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('processed_by', sa.String(length=36), nullable=True),
        sa.Column('transaction_date', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        *_sync_columns(),
        sa.ForeignKeyConstraint(['savings_goal_id'], ['savings_goals.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'sequence', name='uq_savings_transactions_shop_seq'),
    )
    with op.batch_alter_table('savings_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_savings_transactions_shop_id', ['shop_id'], unique=False)
        batch_op.create_index('ix_savings_transactions_savings_goal_id', ['savings_goal_id'], unique=False)
        batch_op.create_index('ix_savings_transactions_shop_date', ['shop_id', 'transaction_date'], unique=False)
    _index_sync_status('savings_transactions')


def downgrade():
    for table in (
        'savings_transactions',
        'savings_goals',
        'shop_savings_settings',
        'purchase_payments',
        'purchase_order_items',
        'purchase_orders',
        'sale_refunds',
        'sale_payments',
        'sale_items',
        'sales',
        'customer_payments',
        'customers',
        'stock_adjustments',
        'products',
    ):
        op.drop_table(table)
