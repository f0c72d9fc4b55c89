from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from plasticmart.pricing.errors import check_amount

# Either a mapping party_id -> price already scoped to one item, or
# ItemPartyPrice-like records (objects or dicts) for any item.
Overrides = Union[Mapping[Any, Any], Iterable[Any]]


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def find_party_price(item_id: Any, party_id: Any, overrides: Overrides) -> Optional[float]:
    """Price override for (party_id, item_id), or None."""
    if party_id is None or overrides is None:
        return None
    pid = str(party_id)
    if isinstance(overrides, Mapping):
        for k, price in overrides.items():
            if str(k) == pid:
                return price
        return None
    iid = str(item_id)
    for ov in overrides:
        if str(_get(ov, "party_id")) == pid and str(_get(ov, "item_id")) == iid:
            return _get(ov, "price")
    return None


def resolve_item_rate(item: Any, party_id: Any = None, overrides: Overrides = ()) -> float:
    """
    Effective rate of `item` for a party:
    - the party's override for this item if there is one
    - else item.default_rate
    """
    override = find_party_price(_get(item, "id"), party_id, overrides)
    if override is not None:
        return check_amount(override, "price")
    return check_amount(_get(item, "default_rate"), "default_rate")


def resolve_bundle_rate(party: Any, default_bundle_rate: float) -> float:
    """Party bundle rate when set and > 0, else the global default."""
    rate = _get(party, "bundle_rate") if party is not None else None
    if rate is not None and rate > 0:
        return rate
    return check_amount(default_bundle_rate, "default_bundle_rate")
