from __future__ import annotations
import logging
from typing import List, Optional

from pydantic import ValidationError

from plasticmart.models.party import PurchaseParty
from plasticmart.services.activity_service import ActivityService
from plasticmart.storage.repo import DuplicateRecordError, RecordInUseError, RecordNotFoundError
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)


class PurchasePartyService:
    """
    Suppliers items are bought from.
    Party codes are unique across all records, deleted ones included:
    a deleted supplier is restored rather than created again.
    """

    def __init__(self, store: PersistenceStore, activity: Optional[ActivityService] = None):
        self.repo = store.purchase_parties
        self.items_repo = store.items
        self.activity = activity or ActivityService(store)

    def _hydrate(self, rows) -> List[PurchaseParty]:
        out: List[PurchaseParty] = []
        for d in rows:
            try:
                out.append(PurchaseParty(**d))
            except ValidationError as e:
                logger.warning("Skipping invalid purchase party %s: %s", d.get("id"), e)
        return out

    def _ensure_unique_code(self, party: PurchaseParty) -> None:
        for d in self.repo.list_all():
            if d.get("id") != party.id and str(d.get("party_code", "")).upper() == party.party_code:
                if d.get("deleted_at"):
                    raise DuplicateRecordError(
                        f"Purchase party {party.party_code} is deleted, restore it instead of creating it again"
                    )
                raise DuplicateRecordError(f"Purchase party {party.party_code} already exists")

    def list_purchase_parties(self, include_deleted: bool = False) -> List[PurchaseParty]:
        rows = self.repo.list_all() if include_deleted else self.repo.list_active()
        return sorted(self._hydrate(rows), key=lambda p: p.party_code)

    def list_deleted(self) -> List[PurchaseParty]:
        return self._hydrate(self.repo.list_deleted())

    def get_by_id(self, purchase_party_id: str) -> Optional[PurchaseParty]:
        found = self._hydrate([d for d in [self.repo.get_by_id(purchase_party_id)] if d])
        return found[0] if found else None

    def get_by_code(self, party_code: str) -> Optional[PurchaseParty]:
        code = (party_code or "").strip().upper()
        found = self._hydrate(self.repo.find(lambda d: str(d.get("party_code", "")).upper() == code))
        return found[0] if found else None

    def item_count(self, purchase_party_id: str) -> int:
        """Active items bought from this supplier."""
        return self.items_repo.count(
            lambda r: not r.get("deleted_at") and str(r.get("purchase_party_id")) == str(purchase_party_id)
        )

    def add_purchase_party(self, party: PurchaseParty) -> PurchaseParty:
        self._ensure_unique_code(party)
        self.repo.add(party)
        self.activity.log("CREATE", "purchase_parties", party.id, new_values=party.model_dump(mode="json"))
        logger.info("Purchase party %s created (%s)", party.party_code, party.name)
        return party

    def update_purchase_party(self, party: PurchaseParty) -> PurchaseParty:
        old = self.repo.get_by_id(party.id)
        if old is None:
            raise RecordNotFoundError(f"purchase party with id={party.id} not found")
        self._ensure_unique_code(party)
        party.touch()
        self.repo.update(party)
        self.activity.log("UPDATE", "purchase_parties", party.id,
                          old_values=old, new_values=party.model_dump(mode="json"))
        return party

    def delete_purchase_party(self, purchase_party_id: str) -> None:
        count = self.item_count(purchase_party_id)
        if count:
            raise RecordInUseError(f"Cannot delete. This purchase party is used by {count} item(s).")
        self.repo.soft_delete(purchase_party_id)
        self.activity.log("DELETE", "purchase_parties", purchase_party_id)
        logger.info("Purchase party %s deleted", purchase_party_id)

    def restore_purchase_party(self, purchase_party_id: str) -> PurchaseParty:
        row = self.repo.restore(purchase_party_id)
        self.activity.log("RESTORE", "purchase_parties", purchase_party_id, new_values=row)
        return PurchaseParty(**row)
