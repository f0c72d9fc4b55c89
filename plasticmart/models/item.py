from __future__ import annotations
from pydantic import Field
from typing import Optional
from .common import gen_id, TimeStamped, SoftDeletable


class Unit(TimeStamped, SoftDeletable):
    id: str = Field(default_factory=gen_id)
    name: str = Field(min_length=1)
    abbreviation: Optional[str] = None


class Category(TimeStamped, SoftDeletable):
    id: str = Field(default_factory=gen_id)
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class Item(TimeStamped, SoftDeletable):
    id: str = Field(default_factory=gen_id)
    name: str = Field(min_length=1)
    default_rate: float = Field(default=0.0, ge=0)
    purchase_rate: Optional[float] = Field(default=None, ge=0)
    unit_id: Optional[str] = None
    # denormalised unit name, shown on invoice lines
    unit_name: Optional[str] = None
    category_id: Optional[str] = None
    # supplier the item is bought from
    purchase_party_id: Optional[str] = None


class ItemPartyPrice(TimeStamped):
    id: str = Field(default_factory=gen_id)
    item_id: str
    party_id: str
    price: float = Field(ge=0)
