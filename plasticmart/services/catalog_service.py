from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from plasticmart.models.item import Category, Item, ItemPartyPrice, Unit
from plasticmart.pricing.rates import resolve_item_rate
from plasticmart.services.activity_service import ActivityService
from plasticmart.storage.repo import DuplicateRecordError, JsonRepository, RecordInUseError, RecordNotFoundError
from plasticmart.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _norm(name: Optional[str]) -> str:
    return " ".join((name or "").split()).casefold()


class CatalogService:
    """
    Units, categories, items and party-specific item prices.
    - Item, unit and category names are unique among active records (case-insensitive)
    - Units and categories used by active items cannot be deleted
    - One price per (party, item) pair: set_party_price updates it in place
    - Items and units are soft-deleted so old invoice lines keep resolving
    """

    def __init__(self, store: PersistenceStore, activity: Optional[ActivityService] = None) -> None:
        self.units_repo = store.units
        self.items_repo = store.items
        self.categories_repo = store.categories
        self.purchase_parties_repo = store.purchase_parties
        self.prices_repo = store.item_party_prices
        self.activity = activity or ActivityService(store)

    # ---------- Helpers ---------- #

    @staticmethod
    def _hydrate(d: Optional[Dict[str, Any]], model: Type[T]) -> Optional[T]:
        if d is None:
            return None
        try:
            return model.model_validate(d)
        except ValidationError as e:
            logger.warning("Skipping invalid %s %s: %s", model.__name__, d.get("id"), e)
            return None

    def _hydrate_list(self, rows: List[Dict[str, Any]], model: Type[T]) -> List[T]:
        return [o for o in (self._hydrate(d, model) for d in rows) if o is not None]

    @staticmethod
    def _ensure_unique_name(repo: JsonRepository, obj_id: str, name: str) -> None:
        wanted = _norm(name)
        for r in repo.list_active():
            if r.get("id") != obj_id and _norm(r.get("name")) == wanted:
                raise DuplicateRecordError(f"{repo.entity_name.capitalize()} with this name already exists.")

    def _ensure_not_in_use(self, field: str, obj_id: str, entity_name: str) -> None:
        count = self.items_repo.count(lambda r: not r.get("deleted_at") and str(r.get(field)) == str(obj_id))
        if count:
            raise RecordInUseError(f"Cannot delete. This {entity_name} is used by {count} item(s).")

    @staticmethod
    def _require_active(repo: JsonRepository, obj_id: Optional[str]) -> None:
        if obj_id is None:
            return
        row = repo.get_by_id(obj_id)
        if row is None or row.get("deleted_at"):
            raise RecordNotFoundError(f"{repo.entity_name} with id={obj_id} not found")

    def _restore(self, repo: JsonRepository, obj_id: str, table_name: str) -> None:
        row = repo.get_by_id(obj_id)
        if row is None:
            raise RecordNotFoundError(f"{repo.entity_name} with id={obj_id} not found")
        self._ensure_unique_name(repo, obj_id, row.get("name", ""))
        repo.restore(obj_id)
        self.activity.log("RESTORE", table_name, obj_id)

    # ---------- Units ---------- #

    def list_units(self, include_deleted: bool = False) -> List[Unit]:
        rows = self.units_repo.list_all() if include_deleted else self.units_repo.list_active()
        return self._hydrate_list(rows, Unit)

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        return self._hydrate(self.units_repo.get_by_id(unit_id), Unit)

    def add_unit(self, unit: Unit) -> Unit:
        self._ensure_unique_name(self.units_repo, unit.id, unit.name)
        self.units_repo.add(unit)
        self.activity.log("CREATE", "units", unit.id, new_values=unit.model_dump(mode="json"))
        return unit

    def update_unit(self, unit: Unit) -> Unit:
        self._ensure_unique_name(self.units_repo, unit.id, unit.name)
        unit.touch()
        old = self.units_repo.get_by_id(unit.id)
        self.units_repo.update(unit)
        self.activity.log("UPDATE", "units", unit.id, old_values=old, new_values=unit.model_dump(mode="json"))
        return unit

    def delete_unit(self, unit_id: str) -> None:
        self._ensure_not_in_use("unit_id", unit_id, "unit")
        self.units_repo.soft_delete(unit_id)
        self.activity.log("DELETE", "units", unit_id)

    def restore_unit(self, unit_id: str) -> None:
        self._restore(self.units_repo, unit_id, "units")

    # ---------- Categories ---------- #

    def list_categories(self, include_deleted: bool = False) -> List[Category]:
        rows = self.categories_repo.list_all() if include_deleted else self.categories_repo.list_active()
        return sorted(self._hydrate_list(rows, Category), key=lambda c: c.name.casefold())

    def list_deleted_categories(self) -> List[Category]:
        return self._hydrate_list(self.categories_repo.list_deleted(), Category)

    def get_category(self, category_id: str) -> Optional[Category]:
        return self._hydrate(self.categories_repo.get_by_id(category_id), Category)

    def add_category(self, category: Category) -> Category:
        self._ensure_unique_name(self.categories_repo, category.id, category.name)
        self.categories_repo.add(category)
        self.activity.log("CREATE", "item_categories", category.id, new_values=category.model_dump(mode="json"))
        return category

    def update_category(self, category: Category) -> Category:
        old = self.categories_repo.get_by_id(category.id)
        if old is None:
            raise RecordNotFoundError(f"category with id={category.id} not found")
        self._ensure_unique_name(self.categories_repo, category.id, category.name)
        category.touch()
        self.categories_repo.update(category)
        self.activity.log("UPDATE", "item_categories", category.id,
                          old_values=old, new_values=category.model_dump(mode="json"))
        return category

    def delete_category(self, category_id: str) -> None:
        self._ensure_not_in_use("category_id", category_id, "category")
        self.categories_repo.soft_delete(category_id)
        self.activity.log("DELETE", "item_categories", category_id)

    def restore_category(self, category_id: str) -> None:
        self._restore(self.categories_repo, category_id, "item_categories")

    # ---------- Items ---------- #

    def list_items(
        self,
        include_deleted: bool = False,
        *,
        category_id: Optional[str] = None,
        purchase_party_id: Optional[str] = None,
    ) -> List[Item]:
        rows = self.items_repo.list_all() if include_deleted else self.items_repo.list_active()
        items = self._hydrate_list(rows, Item)
        if category_id is not None:
            items = [i for i in items if i.category_id == str(category_id)]
        if purchase_party_id is not None:
            items = [i for i in items if i.purchase_party_id == str(purchase_party_id)]
        return sorted(items, key=lambda i: i.name.casefold())

    def items_by_id(self) -> Dict[str, Item]:
        """Active items keyed by id, for re-pricing invoice drafts."""
        return {i.id: i for i in self.list_items()}

    def get_item(self, item_id: str) -> Optional[Item]:
        return self._hydrate(self.items_repo.get_by_id(item_id), Item)

    def _with_unit_name(self, item: Item) -> Item:
        if item.unit_id and not item.unit_name:
            unit = self.get_unit(item.unit_id)
            if unit:
                item.unit_name = unit.name
        return item

    def _check_references(self, item: Item, old: Optional[Dict[str, Any]] = None) -> None:
        """Newly set unit, category and supplier must be active records."""
        for field, repo in (
            ("unit_id", self.units_repo),
            ("category_id", self.categories_repo),
            ("purchase_party_id", self.purchase_parties_repo),
        ):
            value = getattr(item, field)
            if old is None or value != old.get(field):
                self._require_active(repo, value)

    def add_item(self, item: Item) -> Item:
        self._ensure_unique_name(self.items_repo, item.id, item.name)
        self._check_references(item)
        item = self._with_unit_name(item)
        self.items_repo.add(item)
        self.activity.log("CREATE", "items", item.id, new_values=item.model_dump(mode="json"))
        logger.info("Item %s created (%s @ %s)", item.id, item.name, item.default_rate)
        return item

    def update_item(self, item: Item) -> Item:
        old = self.items_repo.get_by_id(item.id)
        if old is None:
            raise RecordNotFoundError(f"item with id={item.id} not found")
        self._ensure_unique_name(self.items_repo, item.id, item.name)
        self._check_references(item, old)
        if item.unit_id != old.get("unit_id"):
            item.unit_name = None
        item = self._with_unit_name(item)
        item.touch()
        self.items_repo.update(item)
        self.activity.log("UPDATE", "items", item.id, old_values=old, new_values=item.model_dump(mode="json"))
        return item

    def delete_item(self, item_id: str) -> None:
        self.items_repo.soft_delete(item_id)
        self.activity.log("DELETE", "items", item_id)

    def restore_item(self, item_id: str) -> None:
        self._restore(self.items_repo, item_id, "items")

    # ---------- Party prices ---------- #

    def list_party_prices(self, item_id: Optional[str] = None, party_id: Optional[str] = None) -> List[ItemPartyPrice]:
        rows = self.prices_repo.find(
            lambda r: (item_id is None or str(r.get("item_id")) == str(item_id))
            and (party_id is None or str(r.get("party_id")) == str(party_id))
        )
        return self._hydrate_list(rows, ItemPartyPrice)

    def set_party_price(self, item_id: str, party_id: str, price: float) -> ItemPartyPrice:
        """Creates or replaces the price of `item_id` for `party_id`."""
        if self.items_repo.get_by_id(item_id) is None:
            raise RecordNotFoundError(f"item with id={item_id} not found")
        existing = self.list_party_prices(item_id=item_id, party_id=party_id)
        if existing:
            pp = existing[0].model_copy(update={"price": price})
            pp = ItemPartyPrice.model_validate(pp.model_dump())
            pp.touch()
            self.prices_repo.update(pp)
            self.activity.log("UPDATE", "item_party_prices", pp.id,
                              old_values=existing[0].model_dump(mode="json"), new_values=pp.model_dump(mode="json"))
            return pp
        pp = ItemPartyPrice(item_id=str(item_id), party_id=str(party_id), price=price)
        self.prices_repo.add(pp)
        self.activity.log("CREATE", "item_party_prices", pp.id, new_values=pp.model_dump(mode="json"))
        return pp

    def remove_party_price(self, item_id: str, party_id: str) -> bool:
        removed = self.prices_repo.delete_where(
            lambda r: str(r.get("item_id")) == str(item_id) and str(r.get("party_id")) == str(party_id)
        )
        if removed:
            self.activity.log("DELETE", "item_party_prices", f"{item_id}:{party_id}")
        return bool(removed)

    def resolve_rate(self, item_id: str, party_id: Optional[str] = None) -> float:
        item = self.get_item(item_id)
        if item is None:
            raise RecordNotFoundError(f"item with id={item_id} not found")
        return resolve_item_rate(item, party_id, self.list_party_prices(item_id=item_id))
