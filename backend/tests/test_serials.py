"""Serial arithmetic: fixed-width parsing, inclusive counting, exact money."""

from decimal import Decimal

import pytest

from lotto_pos.services import serials
from lotto_pos.services.serials import SerialFormatError


class TestToInt:
    def test_parses_zero_padded_serial(self):
        assert serials.to_int("000") == 0
        assert serials.to_int("007") == 7
        assert serials.to_int("149") == 149

    @pytest.mark.parametrize("bad", ["1", "01", "0001", "abc", "", " 01", "1.0", "-01", "١٢٣", None, 7])
    def test_rejects_malformed_serial(self, bad):
        with pytest.raises(SerialFormatError):
            serials.to_int(bad)

    def test_format_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            serials.to_int("1")


class TestTicketsSold:
    @pytest.mark.parametrize(
        "starting,ending,expected",
        [
            ("000", "014", 15),
            ("005", "054", 50),
            ("000", "000", 1),
            ("000", "149", 150),
        ],
    )
    def test_inclusive_count(self, starting, ending, expected):
        assert serials.tickets_sold(starting, ending) == expected

    def test_count_matches_formula_over_range(self):
        for start in range(0, 60, 7):
            for end in range(start, 60, 11):
                s, e = f"{start:03d}", f"{end:03d}"
                assert serials.tickets_sold(s, e) == end - start + 1

    def test_serial_delta_is_zero_for_unchanged_reading(self):
        assert serials.serial_delta("010", "010") == 0
        assert serials.serial_delta("010", "035") == 25


class TestSalesAmount:
    def test_exact_decimal_amounts(self):
        assert serials.sales_amount(15, Decimal("5.00")) == Decimal("75.00")
        assert serials.sales_amount(50, "10.00") == Decimal("500.00")

    def test_float_price_does_not_drift(self):
        assert serials.sales_amount(3, 0.1) == Decimal("0.30")
        assert serials.sales_amount(7, 1.15) == Decimal("8.05")

    def test_zero_tickets(self):
        assert serials.sales_amount(0, "20.00") == Decimal("0.00")
