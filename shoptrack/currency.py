"""Supported shop currencies and amount formatting."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str
    digits: int = 2


SUPPORTED_CURRENCIES = [
    Currency("USD", "US Dollar", "$"),
    Currency("OMR", "Omani Rial", "OMR", 3),
    Currency("EUR", "Euro", "€"),
    Currency("GBP", "British Pound", "£"),
    Currency("AED", "UAE Dirham", "AED"),
    Currency("SAR", "Saudi Riyal", "SAR"),
    Currency("INR", "Indian Rupee", "₹"),
    Currency("QAR", "Qatari Riyal", "QAR"),
    Currency("KWD", "Kuwaiti Dinar", "KWD", 3),
    Currency("BHD", "Bahraini Dinar", "BHD", 3),
    Currency("JPY", "Japanese Yen", "¥", 0),
    Currency("CNY", "Chinese Yuan", "¥"),
    Currency("AUD", "Australian Dollar", "A$"),
    Currency("CAD", "Canadian Dollar", "C$"),
    Currency("CHF", "Swiss Franc", "CHF"),
    Currency("SEK", "Swedish Krona", "SEK"),
    Currency("NZD", "New Zealand Dollar", "NZ$"),
    Currency("SGD", "Singapore Dollar", "S$"),
    Currency("HKD", "Hong Kong Dollar", "HK$"),
    Currency("KRW", "South Korean Won", "₩", 0),
]

CURRENCY_CODES = [c.code for c in SUPPORTED_CURRENCIES]

_BY_CODE = {c.code: c for c in SUPPORTED_CURRENCIES}


def get_currency(code):
    return _BY_CODE.get(code)


def currency_symbol(code):
    currency = _BY_CODE.get(code)
    return currency.symbol if currency else code


def currency_name(code):
    currency = _BY_CODE.get(code)
    return currency.name if currency else code


def format_currency(amount, code):
    """Format ``amount`` as ``"<symbol> <grouped amount>"``.

    Unknown codes fall back to dollars with two decimals.
    """
    currency = _BY_CODE.get(code)
    if currency is None:
        return f"$ {amount:,.2f}"
    return f"{currency.symbol} {amount:,.{currency.digits}f}"
