"""
Rate conversion between display units.

A rate is a cost per unit: if 1 `from_unit` = k `to_unit`, a rate in
`from_unit` becomes `rate / k` in `to_unit` (120/dozen -> 10/piece).
Quantities convert the other way (`quantity * k`).

Unknown unit pairs are a no-op: the rate comes back unchanged.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

# alias -> canonical name
UNIT_ALIASES: Dict[str, str] = {
    "PC": "PCS", "PCS": "PCS", "PIECE": "PCS", "PIECES": "PCS",
    "DOZ": "DOZ", "DOZEN": "DOZ",
    "KG": "KG", "KGS": "KG", "KILOGRAM": "KG", "KILOGRAMS": "KG",
    "G": "G", "GM": "G", "GRAM": "G", "GRAMS": "G",
    "M": "M", "METER": "M", "METRE": "M", "METERS": "M",
    "CM": "CM", "CENTIMETER": "CM", "CENTIMETRE": "CM",
    "L": "L", "LTR": "L", "LITER": "L", "LITRE": "L",
    "ML": "ML", "MILLILITER": "ML", "MILLILITRE": "ML",
}

# (from, to, k) with 1 from = k to; inverses are registered automatically
DEFAULT_CONVERSIONS: Tuple[Tuple[str, str, float], ...] = (
    ("DOZ", "PCS", 12),
    ("KG", "G", 1000),
    ("M", "CM", 100),
    ("L", "ML", 1000),
)


def _scale(value, mul, div):
    # Decimal values stay Decimal whatever type the registered factor has
    if isinstance(value, Decimal):
        return value * Decimal(str(mul)) / Decimal(str(div))
    return value * float(mul) / float(div)


def normalize_unit(unit: Optional[str]) -> str:
    u = (unit or "").strip().upper()
    return UNIT_ALIASES.get(u, u)


class UnitConverter:
    def __init__(self, conversions: Iterable[Tuple[str, str, float]] = DEFAULT_CONVERSIONS) -> None:
        # (from, to) -> (num, den): 1 from = num/den to
        self._ratios: Dict[Tuple[str, str], Tuple[float, float]] = {}
        for from_unit, to_unit, k in conversions:
            self.register(from_unit, to_unit, k)

    def register(self, from_unit: str, to_unit: str, k: float) -> None:
        """Declares 1 `from_unit` = `k` `to_unit` (and the inverse)."""
        if not k or k <= 0:
            raise ValueError(f"Conversion factor must be > 0, got {k!r}")
        a, b = normalize_unit(from_unit), normalize_unit(to_unit)
        if not a or not b:
            raise ValueError("Unit names are required")
        if a == b:
            raise ValueError(f"Cannot register a conversion from {a} to itself")
        self._ratios[(a, b)] = (k, 1)
        self._ratios[(b, a)] = (1, k)

    def _ratio(self, from_unit: Optional[str], to_unit: Optional[str]) -> Optional[Tuple[float, float]]:
        a, b = normalize_unit(from_unit), normalize_unit(to_unit)
        if not a or not b:
            return None
        if a == b:
            return (1, 1)
        return self._ratios.get((a, b))

    def factor(self, from_unit: Optional[str], to_unit: Optional[str]) -> Optional[float]:
        """k such that 1 `from_unit` = k `to_unit`, or None when unknown."""
        r = self._ratio(from_unit, to_unit)
        if r is None:
            return None
        num, den = r
        return num if den == 1 else num / den

    def has_conversion(self, from_unit: Optional[str], to_unit: Optional[str]) -> bool:
        a, b = normalize_unit(from_unit), normalize_unit(to_unit)
        return bool(a and b and a != b and (a, b) in self._ratios)

    def convert_rate(self, rate, from_unit: Optional[str], to_unit: Optional[str]):
        r = self._ratio(from_unit, to_unit)
        if r is None:
            logger.debug("No conversion %r -> %r, rate kept at %r", from_unit, to_unit, rate)
            return rate
        num, den = r
        if num == den:
            return rate
        return _scale(rate, den, num)

    def convert_quantity(self, quantity, from_unit: Optional[str], to_unit: Optional[str]):
        r = self._ratio(from_unit, to_unit)
        if r is None:
            return quantity
        num, den = r
        if num == den:
            return quantity
        return _scale(quantity, num, den)


default_converter = UnitConverter()


def convert_rate(rate, from_unit: Optional[str], to_unit: Optional[str]):
    return default_converter.convert_rate(rate, from_unit, to_unit)


def convert_quantity(quantity, from_unit: Optional[str], to_unit: Optional[str]):
    return default_converter.convert_quantity(quantity, from_unit, to_unit)


def has_conversion(from_unit: Optional[str], to_unit: Optional[str]) -> bool:
    return default_converter.has_conversion(from_unit, to_unit)


def get_conversion_factor(from_unit: Optional[str], to_unit: Optional[str]) -> float:
    k = default_converter.factor(from_unit, to_unit)
    return 1 if k is None else k
