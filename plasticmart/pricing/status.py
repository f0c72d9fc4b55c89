"""Payment status of an invoice, derived on read from its total and payments."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, NamedTuple

from plasticmart.models.invoice import PaymentStatus
from plasticmart.pricing.errors import check_amount

PENDING: PaymentStatus = "PENDING"
PARTIAL: PaymentStatus = "PARTIAL"
PAID: PaymentStatus = "PAID"


class PaymentSummary(NamedTuple):
    total_amount: float
    amount_received: float
    amount_pending: float
    balance: float
    status: PaymentStatus


def derive_invoice_status(total_amount, received_amount) -> PaymentStatus:
    check_amount(total_amount, "total_amount")
    check_amount(received_amount, "received_amount")
    if received_amount <= 0:
        # also covers a zero-total invoice: nothing has been paid
        return PENDING
    if received_amount < total_amount:
        return PARTIAL
    return PAID


def compute_amount_received(payments: Iterable[Any]):
    received = 0
    for p in payments:
        amount = p.get("amount") if isinstance(p, Mapping) else getattr(p, "amount", None)
        received += check_amount(amount, "payment amount")
    return received


def compute_balance(total_amount, received_amount):
    """Signed: negative when the invoice is overpaid."""
    return total_amount - received_amount


def compute_amount_pending(total_amount, received_amount):
    return max(compute_balance(total_amount, received_amount), 0)


def summarize_payments(total_amount, payments: Iterable[Any]) -> PaymentSummary:
    received = compute_amount_received(payments)
    return PaymentSummary(
        total_amount=total_amount,
        amount_received=received,
        amount_pending=compute_amount_pending(total_amount, received),
        balance=compute_balance(total_amount, received),
        status=derive_invoice_status(total_amount, received),
    )
