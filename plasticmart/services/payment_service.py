from __future__ import annotations
import logging
from datetime import date
from typing import List, Optional

from pydantic import ValidationError

from plasticmart.models.invoice import Payment
from plasticmart.services.activity_service import ActivityService
from plasticmart.storage.repo import RecordNotFoundError
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, store: PersistenceStore, activity: Optional[ActivityService] = None):
        self.repo = store.payments
        self.invoices_repo = store.invoices
        self.activity = activity or ActivityService(store)

    def _require_active_invoice(self, invoice_id: str) -> None:
        row = self.invoices_repo.get_by_id(invoice_id)
        if row is None or row.get("deleted_at"):
            raise RecordNotFoundError(f"invoice with id={invoice_id} not found")

    def list_for_invoice(self, invoice_id: str) -> List[Payment]:
        out: List[Payment] = []
        for d in self.repo.find(lambda x: str(x.get("invoice_id")) == str(invoice_id)):
            try:
                out.append(Payment(**d))
            except ValidationError as e:
                logger.warning("Skipping invalid payment %s: %s", d.get("id"), e)
        out.sort(key=lambda p: (p.payment_date, p.created_at))
        return out

    def get_by_id(self, payment_id: str) -> Optional[Payment]:
        d = self.repo.get_by_id(payment_id)
        return Payment(**d) if d else None

    def add_payment(self, invoice_id: str, amount: float, payment_date: Optional[date] = None, notes: Optional[str] = None) -> Payment:
        self._require_active_invoice(invoice_id)
        pay = Payment(invoice_id=str(invoice_id), amount=amount, payment_date=payment_date or date.today(), notes=notes)
        self.repo.add(pay)
        self.activity.log("CREATE", "payments", pay.id, new_values=pay.model_dump(mode="json"))
        logger.info("Payment %s of %s recorded on invoice %s", pay.id, pay.amount, invoice_id)
        return pay

    def update_payment(self, payment_id: str, *, amount: Optional[float] = None, payment_date: Optional[date] = None, notes: Optional[str] = None) -> Payment:
        current = self.get_by_id(payment_id)
        if current is None:
            raise RecordNotFoundError(f"payment with id={payment_id} not found")
        changes = {k: v for k, v in (("amount", amount), ("payment_date", payment_date), ("notes", notes)) if v is not None}
        pay = Payment.model_validate({**current.model_dump(), **changes})
        pay.touch()
        self.repo.update(pay)
        self.activity.log("UPDATE", "payments", pay.id,
                          old_values=current.model_dump(mode="json"), new_values=pay.model_dump(mode="json"))
        return pay

    def delete_payment(self, payment_id: str) -> bool:
        old = self.repo.get_by_id(payment_id)
        removed = self.repo.delete(payment_id)
        if removed:
            self.activity.log("DELETE", "payments", payment_id, old_values=old)
        return removed

    def delete_for_invoice(self, invoice_id: str) -> int:
        return self.repo.delete_where(lambda x: str(x.get("invoice_id")) == str(invoice_id))
