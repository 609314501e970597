"""Tests for minor unit amount conversion."""

from decimal import Decimal

import pytest

from payments_adapter.amounts import (
    CurrencyUnit,
    MAX_MINOR_UNITS,
    SUPPORTED_CURRENCIES,
    convert_amount,
    currency_exponent,
    normalize,
    to_minor_units,
)
from payments_adapter.errors import AmountConversionFailed


class TestCurrencyExponent:
    """Tests for ISO 4217 exponent lookup."""

    @pytest.mark.parametrize("currency,expected", [
        ("USD", 2),
        ("usd", 2),
        ("JPY", 0),
        ("KWD", 3),
    ])
    def test_known_currencies(self, currency, expected):
        assert currency_exponent(currency) == expected

    def test_unknown_currency_rejected(self):
        with pytest.raises(AmountConversionFailed):
            currency_exponent("XYZ")

    def test_supported_currencies_table(self):
        assert SUPPORTED_CURRENCIES["EUR"] == 2
        assert SUPPORTED_CURRENCIES["JPY"] == 0
        assert SUPPORTED_CURRENCIES["BHD"] == 3


class TestNormalize:
    """Tests for minor units to decimal conversion."""

    def test_two_decimal(self):
        assert normalize(1025, "USD") == Decimal("10.25")

    def test_zero_decimal(self):
        assert normalize(500, "JPY") == Decimal("500")

    def test_three_decimal(self):
        assert normalize(1005, "KWD") == Decimal("1.005")

    def test_zero_amount(self):
        assert normalize(0, "USD") == Decimal("0")

    def test_exact_for_large_amounts(self):
        # Float arithmetic would lose the last digit here.
        assert normalize(123456789012345, "USD") == Decimal("1234567890123.45")

    def test_negative_rejected(self):
        with pytest.raises(AmountConversionFailed):
            normalize(-1, "USD")

    def test_above_maximum_rejected(self):
        with pytest.raises(AmountConversionFailed):
            normalize(MAX_MINOR_UNITS + 1, "USD")

    @pytest.mark.parametrize("value", [10.25, "1025", True])
    def test_non_integer_rejected(self, value):
        with pytest.raises(AmountConversionFailed):
            normalize(value, "USD")


class TestToMinorUnits:
    """Tests for decimal to minor units conversion."""

    @pytest.mark.parametrize("currency", sorted(SUPPORTED_CURRENCIES))
    @pytest.mark.parametrize("minor_units", [0, 1, 1025, MAX_MINOR_UNITS])
    def test_inverse_of_normalize(self, currency, minor_units):
        assert to_minor_units(normalize(minor_units, currency), currency) == minor_units

    def test_string_input(self):
        assert to_minor_units("10.25", "USD") == 1025

    def test_too_many_decimal_places_rejected(self):
        with pytest.raises(AmountConversionFailed):
            to_minor_units("10.255", "USD")

    def test_fraction_on_zero_decimal_currency_rejected(self):
        with pytest.raises(AmountConversionFailed):
            to_minor_units("1.5", "JPY")

    def test_not_a_number_rejected(self):
        with pytest.raises(AmountConversionFailed):
            to_minor_units("ten", "USD")

    def test_infinite_rejected(self):
        with pytest.raises(AmountConversionFailed):
            to_minor_units(Decimal("Infinity"), "USD")


class TestConvertAmount:
    """Tests for rendering amounts in a connector's unit."""

    def test_base_unit(self):
        assert convert_amount(CurrencyUnit.BASE, 1025, "USD") == Decimal("10.25")

    def test_minor_unit(self):
        assert convert_amount(CurrencyUnit.MINOR, 1025, "USD") == Decimal(1025)

    def test_minor_unit_still_checks_currency(self):
        with pytest.raises(AmountConversionFailed):
            convert_amount(CurrencyUnit.MINOR, 1025, "XYZ")
