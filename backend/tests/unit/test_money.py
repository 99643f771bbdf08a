"""
Unit Tests - Monetary helpers
Rounding is pinned to ROUND_HALF_UP (half away from zero).
"""
from decimal import Decimal

import pytest

from mt5crm.utils.money import (
    money_to_float,
    profit_loss,
    profit_loss_percentage,
    round_money,
    to_decimal,
)


class TestToDecimal:

    def test_float_keeps_its_shortest_repr(self):
        assert to_decimal(1000.005) == Decimal("1000.005")

    def test_passthrough_and_strings(self):
        assert to_decimal(Decimal("1.5")) == Decimal("1.5")
        assert to_decimal("12.30") == Decimal("12.30")
        assert to_decimal(7) == Decimal("7")

    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0")

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_decimal("ten dollars")

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            to_decimal(True)


class TestRoundMoney:

    @pytest.mark.parametrize("value, expected", [
        (1000.005, Decimal("1000.01")),
        (1000.015, Decimal("1000.02")),
        (1000.025, Decimal("1000.03")),
        (0.125, Decimal("0.13")),
        (2.675, Decimal("2.68")),
        (-1.005, Decimal("-1.01")),
        ("1000.004999", Decimal("1000.00")),
        (Decimal("99.994"), Decimal("99.99")),
    ])
    def test_half_up(self, value, expected):
        assert round_money(value) == expected

    @pytest.mark.parametrize("value, bankers", [
        ("1000.025", Decimal("1000.02")),
        ("0.125", Decimal("0.12")),
    ])
    def test_differs_from_bankers_rounding_on_even_boundaries(self, value, bankers):
        """Half-even would round these down; half-up rounds them up."""
        assert round_money(value) != bankers
        assert round_money(value) == bankers + Decimal("0.01")

    def test_money_to_float(self):
        assert money_to_float(1000.005) == 1000.01


class TestProfitLoss:

    def test_profit_loss(self):
        assert profit_loss(Decimal("1000"), Decimal("1100.50")) == Decimal("100.50")

    def test_percentage(self):
        assert profit_loss_percentage(Decimal("1000"), Decimal("1100")) == Decimal("10")

    def test_percentage_negative(self):
        assert round_money(profit_loss_percentage(Decimal("1000"), Decimal("900"))) == Decimal("-10.00")

    def test_percentage_zero_balance(self):
        assert profit_loss_percentage(Decimal("0"), Decimal("50")) == Decimal("0")
