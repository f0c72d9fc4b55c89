from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional
from datetime import date, datetime
import secrets
import string

from .common import gen_id, TimeStamped, SoftDeletable
from plasticmart.pricing.totals import compute_line_amount, compute_sub_total

PaymentStatus = Literal["PENDING", "PARTIAL", "PAID"]

_PUBLIC_ID_ALPHABET = string.ascii_lowercase + string.digits

def gen_public_id() -> str:
    return "inv_" + "".join(secrets.choice(_PUBLIC_ID_ALPHABET) for _ in range(12))


class InvoiceLineItem(BaseModel):
    id: str = Field(default_factory=gen_id)
    item_id: Optional[str] = None  # None once the catalog item is gone
    item_name: str
    quantity: float = Field(gt=0)
    rate: float = Field(ge=0)
    unit_name: Optional[str] = None
    amount: float = 0.0
    position: int = 0

    # rate/unit captured when the line was added; unit changes convert from these
    original_rate: Optional[float] = None
    original_unit: Optional[str] = None

    @model_validator(mode="after")
    def _recompute_amount(self) -> "InvoiceLineItem":
        # stored amounts are never trusted
        object.__setattr__(self, "amount", compute_line_amount(self.quantity, self.rate))
        return self


class Invoice(TimeStamped, SoftDeletable):
    id: str = Field(default_factory=gen_id)
    public_id: str = Field(default_factory=gen_public_id)
    party_id: Optional[str] = None
    party_name: str  # snapshot, never re-derived from the live party
    invoice_date: date = Field(default_factory=date.today)

    bundle_rate: float = Field(default=0.0, ge=0)
    bundle_quantity: float = Field(default=1.0, ge=0)
    bundle_charge: float = Field(default=0.0, ge=0)

    items: List[InvoiceLineItem] = Field(default_factory=list)
    total_amount: float = Field(default=0.0, ge=0)
    is_offline: bool = False
    notes: Optional[str] = None

    def ordered_items(self) -> List[InvoiceLineItem]:
        return sorted(self.items, key=lambda ln: (ln.position, ln.id))

    def sub_total(self) -> float:
        return compute_sub_total(self.items)


class Payment(TimeStamped):
    id: str = Field(default_factory=gen_id)
    invoice_id: str
    amount: float = Field(gt=0)
    payment_date: date = Field(default_factory=date.today)
    notes: Optional[str] = None


class InvoiceSummary(BaseModel):
    """Read model: an invoice with its payment position, derived on every read."""
    invoice: Invoice
    amount_received: float = 0.0
    amount_pending: float = 0.0
    balance: float = 0.0  # signed, negative on overpayment
    status: PaymentStatus = "PENDING"
    computed_at: datetime = Field(default_factory=datetime.utcnow)
