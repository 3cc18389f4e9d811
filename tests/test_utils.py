from datetime import date
from decimal import Decimal

import pytest

from emi_calc.utils import add_months, decimal_from_str, parse_year_month, period_date, to_decimal


class TestParseYearMonth:
    def test_valid(self):
        assert parse_year_month("2025-03") == date(2025, 3, 1)

    def test_day_ignored(self):
        assert parse_year_month("2025-03-17") == date(2025, 3, 1)

    @pytest.mark.parametrize("value", ["2025", "2025-13", "March 2025", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_year_month(value)


class TestMonthArithmetic:
    def test_day_clamped_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2024, 11, 1), 3) == date(2025, 2, 1)

    def test_first_period_is_start_month(self):
        assert period_date(date(2024, 11, 1), 1) == date(2024, 11, 1)
        assert period_date(date(2024, 11, 1), 3) == date(2025, 1, 1)


class TestDecimalConversion:
    def test_commas_stripped(self):
        assert decimal_from_str("5,00,000") == Decimal("500000")

    def test_invalid_string(self):
        with pytest.raises(ValueError):
            decimal_from_str("five")

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_decimal(self):
        assert to_decimal(12) == Decimal("12")
        assert to_decimal(Decimal("9.5")) == Decimal("9.5")

    @pytest.mark.parametrize("value", [True, None, [1]])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)
