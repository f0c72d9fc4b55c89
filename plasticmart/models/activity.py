from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime
from .common import gen_id

ActivityAction = Literal["CREATE", "UPDATE", "DELETE", "RESTORE", "PURGE"]

class ActivityLog(BaseModel):
    id: str = Field(default_factory=gen_id)
    action: ActivityAction
    table_name: str
    record_id: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
