from __future__ import annotations
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from plasticmart.models.invoice import InvoiceSummary
from plasticmart.models.party import Party
from plasticmart.pricing.status import compute_amount_pending
from plasticmart.services.invoice_service import InvoiceService, effective_total
from plasticmart.storage.repo import RecordNotFoundError


class PartyStatement(BaseModel):
    party: Party
    opening_balance: float = 0.0
    total_billed: float = 0.0
    total_received: float = 0.0
    # opening balance + billed - received, may go negative on overpayment
    outstanding: float = 0.0
    invoices: List[InvoiceSummary] = Field(default_factory=list)

    @property
    def amount_due(self) -> float:
        return compute_amount_pending(self.outstanding, 0)


class ReportService:
    def __init__(self, invoices: InvoiceService):
        self.invoices = invoices

    def party_statement(self, party_id: str, *, start: Optional[date] = None, end: Optional[date] = None) -> PartyStatement:
        """
        Position of a party over its active invoices.
        Invoices before `start` are folded into the opening balance.
        """
        party = self.invoices.parties.get_by_id(party_id)
        if party is None:
            raise RecordNotFoundError(f"party with id={party_id} not found")

        opening = party.opening_balance
        in_range: List[InvoiceSummary] = []
        for s in self.invoices.list_summaries(party_id=party.id):
            d = s.invoice.invoice_date
            if start and d < start:
                opening += s.balance
                continue
            if end and d > end:
                continue
            in_range.append(s)

        in_range.sort(key=lambda s: (s.invoice.invoice_date, s.invoice.created_at))
        billed = sum(effective_total(s.invoice) for s in in_range)
        received = sum(s.amount_received for s in in_range)
        return PartyStatement(
            party=party,
            opening_balance=opening,
            total_billed=billed,
            total_received=received,
            outstanding=opening + billed - received,
            invoices=in_range,
        )
