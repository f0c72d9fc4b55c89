"""Line amounts, sub-totals, bundle charges and grand totals.

Nothing here rounds: amounts are formatted for display separately
(see `plasticmart.pricing.formatting`).
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, NamedTuple

from plasticmart.pricing.errors import check_amount


class InvoiceTotals(NamedTuple):
    sub_total: float
    bundle_charge: float
    grand_total: float


def _line_value(line: Any, key: str) -> Any:
    if isinstance(line, Mapping):
        return line.get(key)
    return getattr(line, key, None)


def compute_line_amount(quantity, rate):
    check_amount(quantity, "quantity")
    check_amount(rate, "rate")
    return quantity * rate


def compute_sub_total(lines: Iterable[Any]):
    """Sum of `quantity * rate` over `lines` (models or mappings). Empty -> 0."""
    sub_total = 0
    for ln in lines:
        sub_total += compute_line_amount(_line_value(ln, "quantity"), _line_value(ln, "rate"))
    return sub_total


def compute_bundle_charge(bundle_quantity, bundle_rate):
    check_amount(bundle_quantity, "bundle_quantity")
    check_amount(bundle_rate, "bundle_rate")
    return bundle_quantity * bundle_rate


def compute_grand_total(sub_total, bundle_charge):
    check_amount(sub_total, "sub_total")
    check_amount(bundle_charge, "bundle_charge")
    return sub_total + bundle_charge


def compute_invoice_totals(lines: Iterable[Any], bundle_charge) -> InvoiceTotals:
    sub_total = compute_sub_total(lines)
    return InvoiceTotals(sub_total, bundle_charge, compute_grand_total(sub_total, bundle_charge))
