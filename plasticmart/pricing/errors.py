from __future__ import annotations
import math
from decimal import Decimal
from numbers import Real
from typing import Any


class InvalidAmountError(ValueError):
    """A quantity, rate or amount that cannot be priced (negative, NaN, inf, not a number)."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {value!r} ({reason})")


def check_amount(value: Any, field: str) -> Any:
    """Returns `value` untouched if it is a finite, non-negative number."""
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise InvalidAmountError(field, value, "not a number")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmountError(field, value, "not finite")
    elif not math.isfinite(value):
        raise InvalidAmountError(field, value, "not finite")
    if value < 0:
        raise InvalidAmountError(field, value, "negative")
    return value


class InvoiceValidationError(ValueError):
    """An invoice that cannot be saved as it stands."""

    def __init__(self, errors) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
