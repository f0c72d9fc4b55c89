"""Unit tests for payment status derivation"""

import pytest

from plasticmart.models.invoice import Payment
from plasticmart.pricing.errors import InvalidAmountError
from plasticmart.pricing.status import (
    PAID,
    PARTIAL,
    PENDING,
    compute_amount_pending,
    compute_amount_received,
    compute_balance,
    derive_invoice_status,
    summarize_payments,
)


class TestDeriveInvoiceStatus:
    """Test status boundaries"""

    @pytest.mark.parametrize(
        "total,received,expected",
        [
            (1000, 0, PENDING),
            (1000, 500, PARTIAL),
            (1000, 999.99, PARTIAL),
            (1000, 1000, PAID),
            (1000, 1200, PAID),
            (0, 0, PENDING),
            (0, 50, PAID),
        ],
    )
    def test_boundaries(self, total, received, expected):
        assert derive_invoice_status(total, received) == expected

    def test_negative_received_raises(self):
        with pytest.raises(InvalidAmountError):
            derive_invoice_status(100, -1)


class TestPendingAmounts:
    """Test pending/balance conventions"""

    def test_pending_is_clamped_at_zero(self):
        assert compute_amount_pending(1000, 1200) == 0

    def test_balance_keeps_the_sign(self):
        assert compute_balance(1000, 1200) == -200

    def test_amount_received_sums_models_and_dicts(self):
        payments = [Payment(invoice_id="1", amount=200), {"amount": 20}]
        assert compute_amount_received(payments) == 220


class TestScenario:
    """Invoice of 420 (two lines plus a bundle of 20)"""

    def test_fully_paid(self):
        s = summarize_payments(420, [{"amount": 420}])
        assert s.status == PAID
        assert s.amount_pending == 0

    def test_partially_paid(self):
        s = summarize_payments(420, [{"amount": 200}])
        assert s.status == PARTIAL
        assert s.amount_pending == 220
        assert s.balance == 220

    def test_unpaid(self):
        s = summarize_payments(420, [])
        assert s.status == PENDING
        assert s.amount_received == 0
        assert s.amount_pending == 420

    def test_overpaid(self):
        s = summarize_payments(420, [{"amount": 300}, {"amount": 200}])
        assert s.status == PAID
        assert s.amount_pending == 0
        assert s.balance == -80
