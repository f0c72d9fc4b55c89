from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from plasticmart.models.activity import ActivityAction, ActivityLog
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

class ActivityService:
    def __init__(self, store: PersistenceStore):
        self.repo = store.activity

    def log(
        self,
        action: ActivityAction,
        table_name: str,
        record_id: Any,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            action=action, table_name=table_name, record_id=str(record_id),
            old_values=old_values, new_values=new_values,
        )
        self.repo.add(entry)
        return entry

    def list_entries(self, table_name: Optional[str] = None) -> List[ActivityLog]:
        out: List[ActivityLog] = []
        for d in self.repo.list_all():
            if table_name and d.get("table_name") != table_name:
                continue
            try:
                out.append(ActivityLog(**d))
            except ValidationError as e:
                logger.warning("Skipping invalid activity log %s: %s", d.get("id"), e)
        out.sort(key=lambda e: e.created_at, reverse=True)
        return out

    def list_for_record(self, table_name: str, record_id: Any) -> List[ActivityLog]:
        return [e for e in self.list_entries(table_name) if e.record_id == str(record_id)]
