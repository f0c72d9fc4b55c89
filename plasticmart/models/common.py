from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
import uuid

def gen_id() -> str:
    return str(uuid.uuid4())

class TimeStamped(BaseModel):
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def touch(self):
        object.__setattr__(self, "updated_at", datetime.utcnow())

class SoftDeletable(BaseModel):
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
