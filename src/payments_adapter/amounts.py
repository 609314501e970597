"""Conversion between integer minor units and connector decimal amounts."""

import enum
from decimal import Decimal, InvalidOperation
from typing import Dict, Union

from .errors import AmountConversionFailed

# Upper bound accepted for a single amount, in minor units.
MAX_MINOR_UNITS = 10**15


class CurrencyUnit(str, enum.Enum):
    """Representation a connector expects amounts in."""
    BASE = "base"  # decimal major units, e.g. 10.25
    MINOR = "minor"  # integer minor units, e.g. 1025


# ISO 4217 minor-unit exponents. Currencies not listed are rejected.
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG",
    "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

THREE_DECIMAL_CURRENCIES = frozenset({
    "BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND",
})

TWO_DECIMAL_CURRENCIES = frozenset({
    "AED", "ARS", "AUD", "BDT", "BGN", "BRL", "CAD", "CHF", "CNY", "COP",
    "CZK", "DKK", "EGP", "EUR", "GBP", "GHS", "HKD", "HUF", "IDR", "ILS",
    "INR", "KES", "MAD", "MXN", "MYR", "NGN", "NOK", "NZD", "PEN", "PHP",
    "PKR", "PLN", "QAR", "RON", "RUB", "SAR", "SEK", "SGD", "THB", "TRY",
    "TWD", "UAH", "USD", "UYU", "ZAR",
})


def currency_exponent(currency: str) -> int:
    """Return the number of minor-unit digits for ``currency``.

    Raises:
        AmountConversionFailed: If the currency is not a known ISO code.
    """
    code = (currency or "").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    if code in TWO_DECIMAL_CURRENCIES:
        return 2
    raise AmountConversionFailed(f"Unknown minor unit exponent for currency '{currency}'")


def _check_minor_units(minor_units: int) -> None:
    if isinstance(minor_units, bool) or not isinstance(minor_units, int):
        raise AmountConversionFailed(f"Amount must be an integer, got {minor_units!r}")
    if minor_units < 0:
        raise AmountConversionFailed(f"Amount must be non-negative, got {minor_units}")
    if minor_units > MAX_MINOR_UNITS:
        raise AmountConversionFailed(f"Amount {minor_units} exceeds the supported maximum")


def normalize(minor_units: int, currency: str) -> Decimal:
    """Convert an integer minor-unit amount to its exact decimal value.

    >>> normalize(1025, "USD")
    Decimal('10.25')
    >>> normalize(500, "JPY")
    Decimal('500')
    """
    _check_minor_units(minor_units)
    exponent = currency_exponent(currency)
    return Decimal(minor_units).scaleb(-exponent)


def to_minor_units(value: Union[Decimal, int, str], currency: str) -> int:
    """Convert a decimal amount back to integer minor units.

    Raises:
        AmountConversionFailed: If ``value`` is not a number, is negative or
            has more fractional digits than the currency allows.
    """
    exponent = currency_exponent(currency)
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError) as e:
        raise AmountConversionFailed(f"Amount {value!r} is not a decimal number") from e
    if not amount.is_finite():
        raise AmountConversionFailed(f"Amount {value!r} is not finite")

    scaled = amount.scaleb(exponent)
    if scaled != scaled.to_integral_value():
        raise AmountConversionFailed(
            f"Amount {value} has more than {exponent} decimal places for {currency}"
        )
    minor_units = int(scaled)
    _check_minor_units(minor_units)
    return minor_units


def convert_amount(currency_unit: CurrencyUnit, minor_units: int, currency: str) -> Decimal:
    """Render ``minor_units`` in the unit a connector expects."""
    if currency_unit == CurrencyUnit.MINOR:
        _check_minor_units(minor_units)
        currency_exponent(currency)
        return Decimal(minor_units)
    return normalize(minor_units, currency)


SUPPORTED_CURRENCIES: Dict[str, int] = {
    **{c: 0 for c in ZERO_DECIMAL_CURRENCIES},
    **{c: 2 for c in TWO_DECIMAL_CURRENCIES},
    **{c: 3 for c in THREE_DECIMAL_CURRENCIES},
}
