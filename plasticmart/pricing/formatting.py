from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from babel import Locale
from babel.numbers import format_currency as _babel_format_currency
from babel.numbers import format_decimal

DEFAULT_LOCALE = "en-IN"
DEFAULT_CURRENCY = "INR"


def _locale(locale: str) -> Locale:
    # accepts BCP 47 ("en-IN") as well as POSIX ("en_IN") tags
    return Locale.parse((locale or DEFAULT_LOCALE).replace("-", "_"))


def round_currency(amount, digits: int = 2) -> Decimal:
    """Display-time rounding, half up (2.675 -> 2.68)."""
    quantum = Decimal(1).scaleb(-digits)
    return Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)


def format_currency(amount, locale: str = DEFAULT_LOCALE, currency_code: str = DEFAULT_CURRENCY) -> str:
    """format_currency(123456) -> '₹1,23,456.00'"""
    return _babel_format_currency(amount, currency_code, locale=_locale(locale))


def format_number(value, fraction_digits: int = 2, locale: str = DEFAULT_LOCALE) -> str:
    """Fixed number of fraction digits, locale grouping: 123456.5 -> '1,23,456.50'."""
    loc = _locale(locale)
    integer_part = loc.decimal_formats.get(None).pattern.split(";")[0].split(".")[0]
    pattern = integer_part + ("." + "0" * fraction_digits if fraction_digits > 0 else "")
    return format_decimal(round_currency(value, fraction_digits), format=pattern, locale=loc)
