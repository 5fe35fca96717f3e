# test_currency.py
# Description: Currency table and amount formatting
#
"""
test_currency.py
----------------
"""

import pytest

from shoptrack.currency import (
    CURRENCY_CODES, currency_name, currency_symbol, format_currency, get_currency,
)


def test_codes_are_unique():
    assert len(CURRENCY_CODES) == len(set(CURRENCY_CODES))
    assert CURRENCY_CODES[0] == "USD"


@pytest.mark.parametrize("code, expected", [
    ("USD", "$ 1,234.50"),
    ("OMR", "OMR 1,234.500"),
    ("JPY", "¥ 1,234"),
    ("EUR", "€ 1,234.50"),
])
def test_format_uses_currency_digits(code, expected):
    assert format_currency(1234.5, code) == expected


def test_unknown_code_falls_back_to_dollars():
    assert format_currency(3, "XYZ") == "$ 3.00"
    assert get_currency("XYZ") is None


def test_symbol_and_name_fall_back_to_code():
    assert currency_symbol("GBP") == "£"
    assert currency_name("KWD") == "Kuwaiti Dinar"
    assert currency_symbol("XYZ") == "XYZ"
    assert currency_name("XYZ") == "XYZ"
