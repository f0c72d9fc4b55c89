"""Unit tests for rate resolution"""

import pytest

from plasticmart.models.item import Item, ItemPartyPrice
from plasticmart.models.party import Party
from plasticmart.pricing.errors import InvalidAmountError
from plasticmart.pricing.rates import find_party_price, resolve_bundle_rate, resolve_item_rate


@pytest.fixture
def item():
    return Item(id="42", name="Bucket", default_rate=100)


@pytest.fixture
def overrides():
    return [
        ItemPartyPrice(item_id="42", party_id="5", price=80),
        ItemPartyPrice(item_id="43", party_id="6", price=10),
    ]


class TestResolveItemRate:
    """Test override precedence"""

    def test_override_wins_for_its_party(self, item, overrides):
        assert resolve_item_rate(item, 5, overrides) == 80

    def test_other_party_gets_default_rate(self, item, overrides):
        """Party 6 only has an override for another item"""
        assert resolve_item_rate(item, 6, overrides) == 100

    def test_no_party_gets_default_rate(self, item, overrides):
        assert resolve_item_rate(item, None, overrides) == 100

    def test_mapping_scoped_to_item(self, item):
        assert resolve_item_rate(item, "5", {5: 75}) == 75
        assert resolve_item_rate(item, "7", {5: 75}) == 100

    def test_plain_dicts_are_accepted(self):
        item = {"id": 1, "default_rate": 50}
        overrides = [{"item_id": 1, "party_id": 2, "price": 45}]
        assert resolve_item_rate(item, 2, overrides) == 45

    def test_zero_override_is_still_an_override(self, item):
        assert resolve_item_rate(item, "5", [{"item_id": "42", "party_id": "5", "price": 0}]) == 0

    def test_find_party_price_without_party(self, overrides):
        assert find_party_price("42", None, overrides) is None

    def test_invalid_default_rate_raises(self):
        with pytest.raises(InvalidAmountError):
            resolve_item_rate({"id": 1, "default_rate": None})


class TestResolveBundleRate:
    """Test party bundle rate versus the global default"""

    def test_party_rate_used_when_positive(self):
        assert resolve_bundle_rate(Party(name="A", bundle_rate=15), 10) == 15

    @pytest.mark.parametrize("bundle_rate", [None, 0])
    def test_default_used_when_party_rate_unset_or_zero(self, bundle_rate):
        assert resolve_bundle_rate(Party(name="A", bundle_rate=bundle_rate), 10) == 10

    def test_default_used_without_party(self):
        assert resolve_bundle_rate(None, 12.5) == 12.5
