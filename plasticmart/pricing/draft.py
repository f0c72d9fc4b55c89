"""
Invoice editing session.

Every mutation recomputes the derived totals straight away, so
`sub_total`, `bundle_charge` and `grand_total` are always current.
`bundle_charge` is derived but overridable: changing the bundle rate or
quantity recomputes it, `set_bundle_charge` overwrites it until the next
such change.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from plasticmart.models.invoice import Invoice, InvoiceLineItem
from plasticmart.pricing.errors import InvoiceValidationError, check_amount
from plasticmart.pricing.rates import Overrides, resolve_bundle_rate, resolve_item_rate
from plasticmart.pricing.totals import compute_bundle_charge, compute_grand_total, compute_sub_total
from plasticmart.pricing.units import convert_rate

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


class InvoiceDraft:
    def __init__(
        self,
        *,
        party_id: Optional[str] = None,
        party_name: str = "",
        invoice_date: Optional[date] = None,
        bundle_rate: float = 0.0,
        bundle_quantity: float = 1.0,
        bundle_charge: Optional[float] = None,
        is_offline: bool = False,
        total_amount: float = 0.0,
        notes: Optional[str] = None,
        invoice_id: Optional[str] = None,
        public_id: Optional[str] = None,
    ) -> None:
        self.invoice_id = invoice_id
        self.public_id = public_id
        self.party_id = party_id
        self.party_name = party_name
        self.invoice_date = invoice_date or date.today()
        self.is_offline = is_offline
        self.notes = notes
        self.lines: List[InvoiceLineItem] = []

        self.bundle_rate = check_amount(bundle_rate, "bundle_rate")
        self.bundle_quantity = check_amount(bundle_quantity, "bundle_quantity")
        if bundle_charge is None:
            bundle_charge = 0.0 if is_offline else compute_bundle_charge(bundle_quantity, bundle_rate)
        self.bundle_charge = check_amount(bundle_charge, "bundle_charge")
        self.total_amount = check_amount(total_amount, "total_amount")

        self.sub_total = 0
        self.grand_total = 0
        self._recalculate()

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceDraft":
        """Opens a saved invoice for editing; its stored bundle charge is kept as is."""
        draft = cls(
            party_id=invoice.party_id,
            party_name=invoice.party_name,
            invoice_date=invoice.invoice_date,
            bundle_rate=invoice.bundle_rate,
            bundle_quantity=invoice.bundle_quantity,
            bundle_charge=invoice.bundle_charge,
            is_offline=invoice.is_offline,
            total_amount=invoice.total_amount,
            notes=invoice.notes,
            invoice_id=invoice.id,
            public_id=invoice.public_id,
        )
        draft.lines = [ln.model_copy() for ln in invoice.ordered_items()]
        draft._renumber()
        draft._recalculate()
        return draft

    # ---------------- Recompute ---------------- #

    def _recalculate(self) -> None:
        self.sub_total = compute_sub_total(self.lines)
        if self.is_offline:
            self.grand_total = self.total_amount
        else:
            self.grand_total = compute_grand_total(self.sub_total, self.bundle_charge)
            self.total_amount = self.grand_total

    def _renumber(self) -> None:
        for i, ln in enumerate(self.lines):
            ln.position = i

    def _replace_line(self, index: int, **changes: Any) -> InvoiceLineItem:
        current = self.lines[index]
        line = InvoiceLineItem.model_validate({**current.model_dump(), **changes})
        self.lines[index] = line
        self._recalculate()
        return line

    def _require_itemised(self) -> None:
        if self.is_offline:
            raise InvoiceValidationError(["Offline invoices have no line items"])

    # ---------------- Lines ---------------- #

    def add_item(self, item: Any, quantity: float = 1, overrides: Overrides = (), unit_name: Optional[str] = None) -> InvoiceLineItem:
        """Adds a catalog item at the rate resolved for the current party."""
        self._require_itemised()
        base_rate = resolve_item_rate(item, self.party_id, overrides)
        base_unit = _get(item, "unit_name")
        unit = unit_name or base_unit
        rate = convert_rate(base_rate, base_unit, unit)
        line = InvoiceLineItem(
            item_id=str(_get(item, "id")),
            item_name=_get(item, "name"),
            quantity=check_amount(quantity, "quantity"),
            rate=rate,
            unit_name=unit,
            position=len(self.lines),
            original_rate=base_rate,
            original_unit=base_unit,
        )
        self.lines.append(line)
        self._recalculate()
        return line

    def add_line(self, item_name: str, quantity: float, rate: float, unit_name: Optional[str] = None, item_id: Optional[str] = None) -> InvoiceLineItem:
        self._require_itemised()
        line = InvoiceLineItem(
            item_id=item_id,
            item_name=item_name,
            quantity=check_amount(quantity, "quantity"),
            rate=check_amount(rate, "rate"),
            unit_name=unit_name,
            position=len(self.lines),
            original_rate=rate,
            original_unit=unit_name,
        )
        self.lines.append(line)
        self._recalculate()
        return line

    def update_line(self, index: int, *, quantity: Optional[float] = None, rate: Optional[float] = None, item_name: Optional[str] = None) -> InvoiceLineItem:
        changes: dict = {}
        if quantity is not None:
            changes["quantity"] = check_amount(quantity, "quantity")
        if rate is not None:
            # a typed rate becomes the new base for later unit changes
            changes["rate"] = check_amount(rate, "rate")
            changes["original_rate"] = rate
            changes["original_unit"] = self.lines[index].unit_name
        if item_name is not None:
            changes["item_name"] = item_name
        return self._replace_line(index, **changes)

    def change_line_unit(self, index: int, unit_name: str) -> InvoiceLineItem:
        line = self.lines[index]
        base_rate = line.original_rate if line.original_rate is not None else line.rate
        base_unit = line.original_unit if line.original_unit is not None else line.unit_name
        return self._replace_line(
            index,
            unit_name=unit_name,
            rate=convert_rate(base_rate, base_unit, unit_name),
            original_rate=base_rate,
            original_unit=base_unit,
        )

    def remove_line(self, index: int) -> InvoiceLineItem:
        line = self.lines.pop(index)
        self._renumber()
        self._recalculate()
        return line

    def move_line(self, from_index: int, to_index: int) -> None:
        line = self.lines.pop(from_index)
        self.lines.insert(to_index, line)
        self._renumber()

    # ---------------- Party & bundle ---------------- #

    def set_party(
        self,
        party: Any,
        *,
        items: Optional[Mapping[str, Any]] = None,
        overrides: Iterable[Any] = (),
        default_bundle_rate: Optional[float] = None,
    ) -> None:
        """
        Switches the party and re-prices what depends on it:
        - lines linked to an item found in `items` get the party's rate again
          (converted to the line's unit)
        - the bundle rate, when `default_bundle_rate` is given
        """
        self.party_id = str(_get(party, "id")) if party is not None else None
        self.party_name = (_get(party, "name") or "") if party is not None else ""

        overrides = list(overrides)
        for i, ln in enumerate(list(self.lines)):
            item = (items or {}).get(ln.item_id) if ln.item_id else None
            if item is None:
                logger.debug("Line %d (%s) not in catalog, rate kept", i, ln.item_name)
                continue
            base_rate = resolve_item_rate(item, self.party_id, overrides)
            base_unit = _get(item, "unit_name")
            self.lines[i] = InvoiceLineItem.model_validate({
                **ln.model_dump(),
                "rate": convert_rate(base_rate, base_unit, ln.unit_name),
                "original_rate": base_rate,
                "original_unit": base_unit,
            })

        if default_bundle_rate is not None and not self.is_offline:
            self.set_bundle_rate(resolve_bundle_rate(party, default_bundle_rate))
        else:
            self._recalculate()

    def set_bundle_rate(self, bundle_rate: float) -> None:
        self.bundle_rate = check_amount(bundle_rate, "bundle_rate")
        self.bundle_charge = compute_bundle_charge(self.bundle_quantity, self.bundle_rate)
        self._recalculate()

    def set_bundle_quantity(self, bundle_quantity: float) -> None:
        self.bundle_quantity = check_amount(bundle_quantity, "bundle_quantity")
        self.bundle_charge = compute_bundle_charge(self.bundle_quantity, self.bundle_rate)
        self._recalculate()

    def set_bundle_charge(self, bundle_charge: float) -> None:
        """Manual override; bundle rate and quantity are left alone."""
        self.bundle_charge = check_amount(bundle_charge, "bundle_charge")
        self._recalculate()

    def set_total_amount(self, total_amount: float) -> None:
        if not self.is_offline:
            raise InvoiceValidationError(["The total of an itemised invoice is computed from its lines"])
        self.total_amount = check_amount(total_amount, "total_amount")
        self._recalculate()

    # ---------------- Validation ---------------- #

    def validate(self) -> None:
        errors: List[str] = []
        if not (self.party_name or "").strip():
            errors.append("Party name is required")
        if self.is_offline:
            if self.lines:
                errors.append("Offline invoices have no line items")
            if not self.total_amount > 0:
                errors.append("Amount must be greater than 0")
        elif not self.lines:
            errors.append("At least one item is required")
        if errors:
            raise InvoiceValidationError(errors)

    def to_invoice(self) -> Invoice:
        self.validate()
        self._recalculate()
        data: dict = dict(
            party_id=self.party_id,
            party_name=self.party_name,
            invoice_date=self.invoice_date,
            bundle_rate=self.bundle_rate,
            bundle_quantity=self.bundle_quantity,
            bundle_charge=self.bundle_charge,
            items=[ln.model_dump() for ln in self.lines],
            total_amount=self.grand_total,
            is_offline=self.is_offline,
            notes=self.notes,
        )
        if self.invoice_id:
            data["id"] = self.invoice_id
        if self.public_id:
            data["public_id"] = self.public_id
        return Invoice.model_validate(data)
