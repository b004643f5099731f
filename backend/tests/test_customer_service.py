# Overview: Pytest coverage for customer credit figures and debt settlement.

from decimal import Decimal

from maiduka.models import Customer, CustomerPayment
from maiduka.services.customer_service import get_customer, record_debt_payment
from maiduka.services.errors import ErrorKind

from conftest import USER_ID


class TestCustomerFlags:
    def test_credit_helpers(self, db_session, customer):
        assert customer.has_debt
        assert not customer.is_over_credit_limit
        assert customer.available_credit == Decimal("19500")

    def test_over_limit(self, db_session):
        customer = Customer(shop_id="shop-1", name="Over", credit_limit=Decimal("100"), current_debt=Decimal("150"))
        assert customer.is_over_credit_limit
        assert customer.available_credit == Decimal("0")

    def test_no_limit_means_no_credit(self, db_session):
        customer = Customer(shop_id="shop-1", name="Cash only", credit_limit=Decimal("0"), current_debt=Decimal("0"))
        assert not customer.is_over_credit_limit
        assert customer.available_credit == Decimal("0")


class TestRecordDebtPayment:
    def test_reduces_debt(self, db_session, customer):
        result = record_debt_payment(customer.id, "200", "mobile_money", USER_ID, notes="Partial")
        assert result.is_success

        payment = result.value
        assert payment.debt_before == Decimal("500")
        assert payment.debt_after == Decimal("300")
        assert payment.sequence == 1

        updated = get_customer(customer.id).value
        assert updated.current_debt == Decimal("300")
        assert updated.total_paid == Decimal("200")

    def test_debt_floored_at_zero(self, db_session, customer):
        record_debt_payment(customer.id, "800", "cash")
        updated = get_customer(customer.id).value
        assert updated.current_debt == Decimal("0")
        assert updated.total_paid == Decimal("800")
        assert not updated.has_debt

    def test_invalid_method(self, db_session, customer):
        assert record_debt_payment(customer.id, "10", "gold").kind is ErrorKind.VALIDATION
        assert db_session.query(CustomerPayment).count() == 0

    def test_missing_customer(self, db_session):
        assert record_debt_payment("ghost", "10", "cash").kind is ErrorKind.NOT_FOUND
