from __future__ import annotations
import re
from pydantic import EmailStr, Field, field_validator
from typing import Optional
from .common import gen_id, TimeStamped, SoftDeletable

_PARTY_CODE = re.compile(r"[A-Z0-9]{1,10}")


class Party(TimeStamped, SoftDeletable):
    id: str = Field(default_factory=gen_id)
    name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    # None -> the default_bundle_rate setting applies
    bundle_rate: Optional[float] = Field(default=None, ge=0)
    opening_balance: float = 0.0

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Party name is required")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def _empty_email(cls, v):
        # the forms send "" for a cleared field
        return v or None


class PurchaseParty(TimeStamped, SoftDeletable):
    """Supplier an item is bought from, identified by a short code (e.g. "RK01")."""
    id: str = Field(default_factory=gen_id)
    party_code: str
    name: str = Field(max_length=255)

    @field_validator("party_code")
    @classmethod
    def _code_format(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if not _PARTY_CODE.fullmatch(v):
            raise ValueError("Party code must be 1 to 10 letters or digits")
        return v

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name is required")
        return v
