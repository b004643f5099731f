"""
Pytest fixtures for MAIDUKA ledger tests.

Provides the test app on an in-memory database and committed fixture rows
(engine operations open their own write transaction, so fixture data must
be committed before they run).
"""

from decimal import Decimal

import pytest
from maiduka import create_app
from maiduka.extensions import db
from maiduka.models import (
    Customer, Product, PurchaseOrder, PurchaseOrderItem, Sale, SaleItem, SalePayment, SavingsGoal
)

SHOP_ID = "shop-1"
USER_ID = "user-1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def product(db_session):
    """Tracked product with 50 units on hand."""
    product = Product(
        shop_id=SHOP_ID,
        name="Sugar 1kg",
        sku="SUG-001",
        cost_per_unit=Decimal("2500"),
        price_per_unit=Decimal("3000"),
        track_inventory=True,
        current_stock=50,
        low_stock_threshold=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def service_product(db_session):
    """Untracked product (a service)."""
    product = Product(
        shop_id=SHOP_ID,
        name="Phone charging",
        product_type="service",
        price_per_unit=Decimal("500"),
        track_inventory=False,
        current_stock=None,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer with 500 of existing debt."""
    customer = Customer(
        shop_id=SHOP_ID,
        name="Asha",
        phone="+255700000000",
        credit_limit=Decimal("20000"),
        current_debt=Decimal("500"),
        total_purchases=Decimal("500"),
        total_paid=Decimal("0"),
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def savings_goal(db_session):
    """Active goal with a 5000 target."""
    goal = SavingsGoal(
        shop_id=SHOP_ID,
        name="New fridge",
        target_amount=Decimal("5000"),
        current_amount=Decimal("0"),
        amount_withdrawn=Decimal("0"),
        progress_percentage=0,
        status="active",
    )
    db_session.add(goal)
    db_session.commit()
    return goal


def make_sale(total="10000", *, subtotal=None, discount="0", tax="0", customer_id=None, status="completed"):
    """Unsaved sale document; subtotal defaults to the total."""
    return Sale(
        shop_id=SHOP_ID,
        user_id=USER_ID,
        customer_id=customer_id,
        subtotal=Decimal(subtotal if subtotal is not None else total),
        discount_amount=Decimal(discount),
        tax_amount=Decimal(tax),
        total_amount=Decimal(total),
        status=status,
    )


def make_item(product_id, quantity, selling_price, cost_price="0", discount="0"):
    return SaleItem(
        product_id=product_id,
        product_name="Line",
        quantity=Decimal(quantity),
        selling_price=Decimal(selling_price),
        cost_price=Decimal(cost_price),
        discount_amount=Decimal(discount),
    )


def make_payment(amount, method="cash"):
    return SalePayment(payment_method=method, amount=Decimal(amount), user_id=USER_ID)


def make_purchase_order(reference="PO-0001", lines=(("prod-a", 10, "5000"),)):
    """Unsaved purchase order plus its lines; lines are (product_id, quantity, unit_price)."""
    order = PurchaseOrder(
        buyer_shop_id=SHOP_ID,
        seller_shop_id="shop-2",
        reference_number=reference,
    )
    items = [
        PurchaseOrderItem(product_id=product_id, quantity=quantity, unit_price=Decimal(unit_price))
        for product_id, quantity, unit_price in lines
    ]
    return order, items
