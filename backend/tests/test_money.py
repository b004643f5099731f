# Overview: Pytest coverage for exact decimal primitives and their storage form.

from decimal import Decimal

import pytest
from maiduka.extensions import db
from maiduka.models import Customer
from maiduka.money import (
    ZERO, decimal_sum, non_negative, percent_of, round_money, to_decimal, to_plain_string, whole_units
)


class TestDecimalCoercion:
    """to_decimal accepts exact inputs only."""

    def test_accepts_str_int_decimal(self):
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(7) == Decimal("7")
        assert to_decimal(Decimal("0.0001")) == Decimal("0.0001")

    def test_strips_whitespace(self):
        assert to_decimal("  3.25 ") == Decimal("3.25")

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["", "abc", "NaN", "Infinity"])
    def test_rejects_invalid_or_non_finite(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


class TestDecimalFormatting:
    def test_plain_string_never_uses_exponent(self):
        assert to_plain_string(Decimal("1E+3")) == "1000"
        assert to_plain_string(Decimal("1E-7")) == "0.0000001"

    def test_plain_string_keeps_scale(self):
        assert to_plain_string("10.50") == "10.50"


class TestRounding:
    def test_round_money_half_up(self):
        assert round_money("2.345") == Decimal("2.35")
        assert round_money("2.344") == Decimal("2.34")
        assert round_money("-2.345") == Decimal("-2.35")

    def test_percent_of_half_up(self):
        assert percent_of("1000", "5000") == 20
        assert percent_of("1", "8") == 13  # 12.5 rounds up
        assert percent_of("1", "3") == 33

    def test_percent_of_not_clamped(self):
        assert percent_of("6000", "5000") == 120

    def test_percent_of_zero_target(self):
        assert percent_of("100", "0") == 0

    def test_whole_units_truncates(self):
        assert whole_units("2.9") == 2
        assert whole_units("0.5") == 0
        assert whole_units(Decimal("3")) == 3


class TestAggregation:
    def test_decimal_sum_is_exact(self):
        assert decimal_sum(["0.1", "0.2"]) == Decimal("0.3")
        assert decimal_sum([]) == ZERO

    def test_non_negative(self):
        assert non_negative("-5") == ZERO
        assert non_negative("5") == Decimal("5")


class TestStorageRoundTrip:
    """Decimal columns survive the database unchanged."""

    @pytest.mark.parametrize("value", ["1234.56", "0.0001", "98765432109876543210.1234"])
    def test_customer_money_round_trip(self, db_session, value):
        customer = Customer(shop_id="shop-1", name="Round trip", credit_limit=Decimal(value))
        db_session.add(customer)
        db_session.commit()
        customer_id = customer.id
        db_session.expunge_all()

        reloaded = db.session.get(Customer, customer_id)
        assert reloaded.credit_limit == Decimal(value)
        assert to_plain_string(reloaded.credit_limit) == value
