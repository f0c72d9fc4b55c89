# plasticmart/services/invoice_service.py
from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from plasticmart.models.invoice import Invoice, InvoiceLineItem, InvoiceSummary
from plasticmart.pricing.draft import InvoiceDraft
from plasticmart.pricing.errors import InvoiceValidationError
from plasticmart.pricing.rates import resolve_bundle_rate, resolve_item_rate
from plasticmart.pricing.status import summarize_payments
from plasticmart.pricing.totals import compute_grand_total, compute_sub_total
from plasticmart.pricing.units import convert_quantity, convert_rate
from plasticmart.services.activity_service import ActivityService
from plasticmart.services.catalog_service import CatalogService
from plasticmart.services.party_service import PartyService
from plasticmart.services.payment_service import PaymentService
from plasticmart.storage.repo import RecordNotFoundError
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

UpdateField = Literal["party_name", "item_name", "item_unit", "rate"]


class CatalogUpdate(BaseModel):
    """A difference between a saved invoice snapshot and the live catalog."""
    field: UpdateField
    index: Optional[int] = None  # line position, None for party_name
    item_id: Optional[str] = None
    old_value: Any = None
    new_value: Any = None


def effective_total(inv: Invoice) -> float:
    """Total recomputed from the lines; offline invoices only have their entered total."""
    if inv.is_offline:
        return inv.total_amount
    return compute_grand_total(compute_sub_total(inv.items), inv.bundle_charge)


class InvoiceService:
    def __init__(
        self,
        store: PersistenceStore,
        *,
        catalog: Optional[CatalogService] = None,
        parties: Optional[PartyService] = None,
        payments: Optional[PaymentService] = None,
        activity: Optional[ActivityService] = None,
    ) -> None:
        self.repo = store.invoices
        self.settings = store.settings
        self.activity = activity or ActivityService(store)
        self.catalog = catalog or CatalogService(store, self.activity)
        self.parties = parties or PartyService(store, self.activity)
        self.payments = payments or PaymentService(store, self.activity)

    # ----------- Lookups -----------

    def _hydrate(self, rows: Iterable[Dict[str, Any]]) -> List[Invoice]:
        out: List[Invoice] = []
        for d in rows:
            try:
                out.append(Invoice(**d))
            except ValidationError as e:
                logger.warning("Skipping invalid invoice %s: %s", d.get("id"), e)
        return out

    def list_invoices(self, include_deleted: bool = False) -> List[Invoice]:
        rows = self.repo.list_all() if include_deleted else self.repo.list_active()
        invoices = self._hydrate(rows)
        invoices.sort(key=lambda i: (i.invoice_date, i.created_at), reverse=True)
        return invoices

    def list_deleted_invoices(self) -> List[Invoice]:
        return self._hydrate(self.repo.list_deleted())

    def list_by_party(self, party_id: str) -> List[Invoice]:
        return [i for i in self.list_invoices() if i.party_id == str(party_id)]

    def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        found = self._hydrate([d for d in [self.repo.get_by_id(invoice_id)] if d])
        return found[0] if found else None

    def get_by_public_id(self, public_id: str) -> Optional[Invoice]:
        found = self._hydrate(self.repo.find(lambda x: x.get("public_id") == public_id and not x.get("deleted_at")))
        return found[0] if found else None

    def _require(self, invoice_id: str) -> Invoice:
        inv = self.get_by_id(invoice_id)
        if inv is None:
            raise RecordNotFoundError(f"invoice with id={invoice_id} not found")
        return inv

    # ----------- Status -----------

    def summarize(self, inv: Invoice) -> InvoiceSummary:
        s = summarize_payments(effective_total(inv), self.payments.list_for_invoice(inv.id))
        return InvoiceSummary(
            invoice=inv,
            amount_received=s.amount_received,
            amount_pending=s.amount_pending,
            balance=s.balance,
            status=s.status,
        )

    def get_summary(self, invoice_id: str) -> InvoiceSummary:
        return self.summarize(self._require(invoice_id))

    def list_summaries(self, party_id: Optional[str] = None) -> List[InvoiceSummary]:
        invoices = self.list_by_party(party_id) if party_id else self.list_invoices()
        return [self.summarize(i) for i in invoices]

    # ----------- Drafts -----------

    def new_draft(self, party_id: Optional[str] = None) -> InvoiceDraft:
        default_rate = self.settings.get_default_bundle_rate()
        draft = InvoiceDraft(bundle_rate=default_rate)
        if party_id:
            self.change_draft_party(draft, party_id)
        return draft

    def edit_draft(self, invoice_id: str) -> InvoiceDraft:
        inv = self._require(invoice_id)
        if inv.is_deleted:
            raise InvoiceValidationError(["Deleted invoices cannot be edited"])
        return InvoiceDraft.from_invoice(inv)

    def change_draft_party(self, draft: InvoiceDraft, party_id: str) -> InvoiceDraft:
        party = self.parties.get_active(party_id)
        if party is None:
            raise RecordNotFoundError(f"party with id={party_id} not found")
        draft.set_party(
            party,
            items=self.catalog.items_by_id(),
            overrides=self.catalog.list_party_prices(),
            default_bundle_rate=self.settings.get_default_bundle_rate(),
        )
        return draft

    def add_item_to_draft(self, draft: InvoiceDraft, item_id: str, quantity: float = 1, unit_name: Optional[str] = None) -> InvoiceLineItem:
        item = self.catalog.get_item(item_id)
        if item is None or item.is_deleted:
            raise RecordNotFoundError(f"item with id={item_id} not found")
        return draft.add_item(item, quantity, self.catalog.list_party_prices(item_id=item_id), unit_name=unit_name)

    def save_draft(self, draft: InvoiceDraft) -> Invoice:
        inv = draft.to_invoice()
        existing = self.repo.get_by_id(inv.id) if draft.invoice_id else None
        if existing is None:
            self.repo.add(inv)
            self.activity.log("CREATE", "invoices", inv.id, new_values=inv.model_dump(mode="json"))
            logger.info("Invoice %s created for %s, total %s", inv.id, inv.party_name, inv.total_amount)
        else:
            if existing.get("deleted_at"):
                raise InvoiceValidationError(["Deleted invoices cannot be edited"])
            inv.touch()
            payload = inv.model_dump(mode="json", exclude={"created_at", "deleted_at"})
            self.repo.update(payload)
            self.activity.log("UPDATE", "invoices", inv.id, old_values=existing, new_values=payload)
            logger.info("Invoice %s updated, total %s", inv.id, inv.total_amount)
        draft.invoice_id, draft.public_id = inv.id, inv.public_id
        return self._require(inv.id)

    def create_quick_entry(
        self,
        party_id: str,
        total_amount: float,
        *,
        invoice_date: Optional[date] = None,
        amount_received: float = 0.0,
        notes: Optional[str] = None,
    ) -> Invoice:
        """Offline invoice: an amount, no line items, optionally paid on the spot."""
        party = self.parties.get_active(party_id)
        if party is None:
            raise RecordNotFoundError(f"party with id={party_id} not found")
        if amount_received < 0 or amount_received > total_amount:
            raise InvoiceValidationError(["Amount received must be between 0 and the total amount"])
        draft = InvoiceDraft(
            party_id=party.id, party_name=party.name, invoice_date=invoice_date,
            bundle_rate=0.0, bundle_quantity=0.0, is_offline=True, notes=notes,
        )
        draft.set_total_amount(total_amount)
        inv = self.save_draft(draft)
        if amount_received > 0:
            self.payments.add_payment(inv.id, amount_received, payment_date=inv.invoice_date)
        return inv

    # ----------- Delete / restore -----------

    def delete_invoice(self, invoice_id: str) -> None:
        self._require(invoice_id)
        self.repo.soft_delete(invoice_id)
        self.activity.log("DELETE", "invoices", invoice_id)
        logger.info("Invoice %s deleted", invoice_id)

    def restore_invoice(self, invoice_id: str) -> Invoice:
        self._require(invoice_id)
        self.repo.restore(invoice_id)
        self.activity.log("RESTORE", "invoices", invoice_id)
        return self._require(invoice_id)

    def purge_invoice(self, invoice_id: str) -> int:
        """Removes the invoice for good, with its payments. Returns the number of payments removed."""
        old = self._require(invoice_id)
        removed = self.payments.delete_for_invoice(invoice_id)
        self.repo.delete(invoice_id)
        self.activity.log("PURGE", "invoices", invoice_id, old_values=old.model_dump(mode="json"))
        logger.info("Invoice %s purged with %d payment(s)", invoice_id, removed)
        return removed

    # ----------- Catalog updates -----------

    def find_catalog_updates(self, invoice_id: str) -> List[CatalogUpdate]:
        """
        Saved invoices keep snapshots of party names, item names, units and rates.
        Lists where the live catalog now differs; nothing is changed here.
        """
        inv = self._require(invoice_id)
        updates: List[CatalogUpdate] = []

        if inv.party_id:
            party = self.parties.get_active(inv.party_id)
            if party and party.name != inv.party_name:
                updates.append(CatalogUpdate(field="party_name", old_value=inv.party_name, new_value=party.name))

        items = self.catalog.items_by_id()
        prices = self.catalog.list_party_prices(party_id=inv.party_id) if inv.party_id else []
        for idx, ln in enumerate(inv.ordered_items()):
            item = items.get(ln.item_id) if ln.item_id else None
            if item is None:
                continue
            if ln.item_name != item.name:
                updates.append(CatalogUpdate(field="item_name", index=idx, item_id=item.id,
                                             old_value=ln.item_name, new_value=item.name))
            catalog_unit = ln.original_unit if ln.original_unit is not None else ln.unit_name
            # rate is compared in the unit the line will have once a unit update is applied
            line_unit, line_rate = ln.unit_name, ln.rate
            if item.unit_name and catalog_unit != item.unit_name:
                updates.append(CatalogUpdate(field="item_unit", index=idx, item_id=item.id,
                                             old_value=catalog_unit, new_value=item.unit_name))
                if ln.unit_name == catalog_unit:
                    line_unit = item.unit_name
                    line_rate = convert_rate(ln.rate, ln.unit_name, line_unit)
            expected = convert_rate(resolve_item_rate(item, inv.party_id, prices), item.unit_name, line_unit)
            if not math.isclose(line_rate, expected, rel_tol=1e-9, abs_tol=1e-9):
                updates.append(CatalogUpdate(field="rate", index=idx, item_id=item.id,
                                             old_value=ln.rate, new_value=expected))
        return updates

    def apply_catalog_updates(self, invoice_id: str, updates: Iterable[CatalogUpdate]) -> Invoice:
        """Applies the chosen updates and saves the invoice with recomputed totals."""
        draft = self.edit_draft(invoice_id)
        updates = list(updates)
        items = self.catalog.items_by_id()
        prices = self.catalog.list_party_prices(party_id=draft.party_id) if draft.party_id else []

        # units first, so that a rate update lands in the line's final unit
        order = {"party_name": 0, "item_name": 1, "item_unit": 2, "rate": 3}
        for u in sorted(updates, key=lambda u: order[u.field]):
            if u.field == "party_name":
                draft.party_name = u.new_value
                continue
            if u.index is None or u.index >= len(draft.lines):
                continue
            ln = draft.lines[u.index]
            if u.field == "item_name":
                draft.lines[u.index] = ln.model_copy(update={"item_name": u.new_value})
            elif u.field == "item_unit":
                base_unit = ln.original_unit if ln.original_unit is not None else ln.unit_name
                changes: Dict[str, Any] = {"original_unit": u.new_value}
                if ln.original_rate is not None:
                    changes["original_rate"] = convert_rate(ln.original_rate, base_unit, u.new_value)
                if ln.unit_name == base_unit:
                    # the line follows its item's unit: same goods restated in the new unit
                    changes["unit_name"] = u.new_value
                    changes["quantity"] = convert_quantity(ln.quantity, ln.unit_name, u.new_value)
                    changes["rate"] = convert_rate(ln.rate, ln.unit_name, u.new_value)
                draft.lines[u.index] = InvoiceLineItem.model_validate({**ln.model_dump(), **changes})
            elif u.field == "rate":
                item = items.get(ln.item_id) if ln.item_id else None
                if item is None:
                    continue
                base = resolve_item_rate(item, draft.party_id, prices)
                draft.lines[u.index] = InvoiceLineItem.model_validate({
                    **ln.model_dump(),
                    "rate": convert_rate(base, item.unit_name, ln.unit_name),
                    "original_rate": base,
                    "original_unit": item.unit_name,
                })
        return self.save_draft(draft)

    def default_bundle_rate_for(self, party_id: Optional[str]) -> float:
        party = self.parties.get_active(party_id) if party_id else None
        return resolve_bundle_rate(party, self.settings.get_default_bundle_rate())
