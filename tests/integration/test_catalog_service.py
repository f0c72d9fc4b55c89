"""Integration tests for units, items and party prices"""

import pytest

from plasticmart.models.item import Category, Item, Unit
from plasticmart.storage.repo import DuplicateRecordError, RecordInUseError, RecordNotFoundError


class TestUnitsAndItems:

    def test_item_gets_unit_name_from_unit(self, seeded, catalog):
        assert catalog.get_item(seeded["bucket"].id).unit_name == "PCS"

    def test_changing_unit_refreshes_unit_name(self, seeded, catalog):
        bucket = catalog.get_item(seeded["bucket"].id)

        updated = catalog.update_item(bucket.model_copy(update={"unit_id": seeded["doz"].id}))

        assert updated.unit_name == "DOZ"
        assert catalog.get_item(bucket.id).unit_name == "DOZ"

    def test_duplicate_item_name_rejected(self, seeded, catalog):
        with pytest.raises(DuplicateRecordError, match="Item with this name already exists"):
            catalog.add_item(Item(name="MUG", default_rate=1))

    def test_duplicate_unit_name_rejected(self, seeded, catalog):
        with pytest.raises(DuplicateRecordError):
            catalog.add_unit(Unit(name="pcs"))

    def test_deleted_item_is_hidden_but_kept(self, seeded, catalog):
        mug_id = seeded["mug"].id

        catalog.delete_item(mug_id)

        assert mug_id not in catalog.items_by_id()
        assert catalog.get_item(mug_id).is_deleted
        catalog.restore_item(mug_id)
        assert mug_id in catalog.items_by_id()

    def test_update_unknown_item(self, catalog):
        with pytest.raises(RecordNotFoundError):
            catalog.update_item(Item(name="Ghost"))


class TestPartyPrices:

    def test_override_applies_only_to_its_party(self, seeded, catalog):
        bucket = seeded["bucket"].id

        assert catalog.resolve_rate(bucket, seeded["sharma"].id) == 80
        assert catalog.resolve_rate(bucket, seeded["gupta"].id) == 100
        assert catalog.resolve_rate(bucket) == 100

    def test_set_party_price_replaces_existing(self, seeded, catalog):
        bucket, sharma = seeded["bucket"].id, seeded["sharma"].id

        catalog.set_party_price(bucket, sharma, 85)

        prices = catalog.list_party_prices(item_id=bucket)
        assert [(p.party_id, p.price) for p in prices] == [(sharma, 85)]

    def test_remove_party_price(self, seeded, catalog):
        bucket, sharma = seeded["bucket"].id, seeded["sharma"].id

        assert catalog.remove_party_price(bucket, sharma) is True
        assert catalog.resolve_rate(bucket, sharma) == 100
        assert catalog.remove_party_price(bucket, sharma) is False

    def test_price_for_unknown_item(self, seeded, catalog):
        with pytest.raises(RecordNotFoundError):
            catalog.set_party_price("nope", seeded["sharma"].id, 10)


class TestUnitDeleteRestore:

    def test_unit_used_by_an_item_cannot_be_deleted(self, seeded, catalog):
        with pytest.raises(RecordInUseError, match="used by 1 item"):
            catalog.delete_unit(seeded["pcs"].id)
        assert not catalog.get_unit(seeded["pcs"].id).is_deleted

    def test_unit_is_free_once_its_items_are_deleted(self, seeded, catalog):
        catalog.delete_item(seeded["mug"].id)

        catalog.delete_unit(seeded["doz"].id)

        assert catalog.get_unit(seeded["doz"].id).is_deleted

    def test_restore_blocked_when_name_was_reused(self, catalog):
        # Arrange
        old = catalog.add_unit(Unit(name="BOX"))
        catalog.delete_unit(old.id)
        catalog.add_unit(Unit(name="box"))

        # Act / Assert
        with pytest.raises(DuplicateRecordError):
            catalog.restore_unit(old.id)
        assert catalog.get_unit(old.id).is_deleted
        assert [u.name for u in catalog.list_units()] == ["box"]

    def test_restore_unknown_unit(self, catalog):
        with pytest.raises(RecordNotFoundError):
            catalog.restore_unit("nope")


class TestCategories:

    @pytest.fixture
    def buckets(self, seeded, catalog):
        category = catalog.add_category(Category(name="Buckets"))
        bucket = catalog.get_item(seeded["bucket"].id)
        catalog.update_item(bucket.model_copy(update={"category_id": category.id}))
        return category

    def test_listed_by_name(self, catalog):
        catalog.add_category(Category(name="Mugs"))
        catalog.add_category(Category(name="buckets"))

        assert [c.name for c in catalog.list_categories()] == ["buckets", "Mugs"]

    def test_duplicate_name_rejected(self, buckets, catalog):
        with pytest.raises(DuplicateRecordError):
            catalog.add_category(Category(name=" BUCKETS "))

    def test_rename(self, buckets, catalog):
        catalog.update_category(buckets.model_copy(update={"name": "Pails"}))
        assert catalog.get_category(buckets.id).name == "Pails"

    def test_update_unknown_category(self, catalog):
        with pytest.raises(RecordNotFoundError):
            catalog.update_category(Category(name="Ghost"))

    def test_items_filtered_by_category(self, seeded, buckets, catalog):
        assert [i.name for i in catalog.list_items(category_id=buckets.id)] == ["Bucket 10L"]

    def test_category_in_use_cannot_be_deleted(self, seeded, buckets, catalog):
        with pytest.raises(RecordInUseError):
            catalog.delete_category(buckets.id)

        catalog.delete_item(seeded["bucket"].id)
        catalog.delete_category(buckets.id)
        assert [c.id for c in catalog.list_deleted_categories()] == [buckets.id]

    def test_restore_blocked_when_name_was_reused(self, catalog):
        old = catalog.add_category(Category(name="Tubs"))
        catalog.delete_category(old.id)
        catalog.add_category(Category(name="Tubs"))

        with pytest.raises(DuplicateRecordError):
            catalog.restore_category(old.id)

    def test_item_with_unknown_category_rejected(self, catalog):
        with pytest.raises(RecordNotFoundError):
            catalog.add_item(Item(name="Jug", default_rate=40, category_id="nope"))

    def test_item_cannot_move_into_a_deleted_category(self, seeded, catalog):
        tubs = catalog.add_category(Category(name="Tubs"))
        catalog.delete_category(tubs.id)
        mug = catalog.get_item(seeded["mug"].id)

        with pytest.raises(RecordNotFoundError):
            catalog.update_item(mug.model_copy(update={"category_id": tubs.id}))
