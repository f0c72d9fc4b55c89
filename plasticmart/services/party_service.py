from __future__ import annotations
import logging
from typing import List, Optional

from pydantic import ValidationError

from plasticmart.models.party import Party
from plasticmart.services.activity_service import ActivityService
from plasticmart.storage.repo import DuplicateRecordError, RecordNotFoundError
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)


def _norm(name: str) -> str:
    return " ".join((name or "").split()).casefold()


class PartyService:
    def __init__(self, store: PersistenceStore, activity: Optional[ActivityService] = None):
        self.repo = store.parties
        self.activity = activity or ActivityService(store)

    def _hydrate(self, rows) -> List[Party]:
        out: List[Party] = []
        for d in rows:
            try:
                out.append(Party(**d))
            except ValidationError as e:
                logger.warning("Skipping invalid party %s: %s", d.get("id"), e)
        return out

    def _ensure_unique_name(self, party: Party) -> None:
        name = _norm(party.name)
        for d in self.repo.list_active():
            if d.get("id") != party.id and _norm(d.get("name", "")) == name:
                raise DuplicateRecordError(f"A party named '{party.name}' already exists")

    def list_parties(self, include_deleted: bool = False) -> List[Party]:
        rows = self.repo.list_all() if include_deleted else self.repo.list_active()
        return sorted(self._hydrate(rows), key=lambda p: p.name.casefold())

    def list_deleted(self) -> List[Party]:
        return self._hydrate(self.repo.list_deleted())

    def get_by_id(self, party_id: str) -> Optional[Party]:
        """Deleted parties are still returned: old invoices point at them."""
        d = self.repo.get_by_id(party_id)
        if not d:
            return None
        try:
            return Party(**d)
        except ValidationError as e:
            logger.warning("Invalid party %s: %s", party_id, e)
            return None

    def get_active(self, party_id: str) -> Optional[Party]:
        p = self.get_by_id(party_id)
        return p if p and not p.is_deleted else None

    def add_party(self, party: Party) -> Party:
        self._ensure_unique_name(party)
        self.repo.add(party)
        self.activity.log("CREATE", "parties", party.id, new_values=party.model_dump(mode="json"))
        logger.info("Party %s created (%s)", party.id, party.name)
        return party

    def update_party(self, party: Party) -> Party:
        old = self.repo.get_by_id(party.id)
        if old is None:
            raise RecordNotFoundError(f"party with id={party.id} not found")
        self._ensure_unique_name(party)
        party.touch()
        self.repo.update(party)
        self.activity.log("UPDATE", "parties", party.id, old_values=old, new_values=party.model_dump(mode="json"))
        return party

    def delete_party(self, party_id: str) -> Party:
        old = self.repo.get_by_id(party_id)
        row = self.repo.soft_delete(party_id)
        self.activity.log("DELETE", "parties", party_id, old_values=old)
        logger.info("Party %s deleted", party_id)
        return Party(**row)

    def restore_party(self, party_id: str) -> Party:
        row = self.repo.get_by_id(party_id)
        if row is None:
            raise RecordNotFoundError(f"party with id={party_id} not found")
        self._ensure_unique_name(Party(**{**row, "deleted_at": None}))
        row = self.repo.restore(party_id)
        self.activity.log("RESTORE", "parties", party_id, new_values=row)
        return Party(**row)
