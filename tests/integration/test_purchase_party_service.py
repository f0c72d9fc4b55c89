"""Integration tests for suppliers and the items bought from them"""

import pytest

from plasticmart.models.item import Item
from plasticmart.models.party import PurchaseParty
from plasticmart.storage.repo import DuplicateRecordError, RecordInUseError, RecordNotFoundError


@pytest.fixture
def ravi(purchase_parties):
    return purchase_parties.add_purchase_party(PurchaseParty(party_code="rk01", name="Ravi Kumar Plastics"))


class TestPurchaseParties:

    def test_code_is_stored_upper_case(self, ravi, purchase_parties):
        assert purchase_parties.get_by_code("rk01").id == ravi.id
        assert purchase_parties.get_by_id(ravi.id).party_code == "RK01"

    def test_duplicate_code_rejected(self, ravi, purchase_parties):
        with pytest.raises(DuplicateRecordError, match="already exists"):
            purchase_parties.add_purchase_party(PurchaseParty(party_code="RK01", name="Other"))

    def test_deleted_code_must_be_restored(self, ravi, purchase_parties):
        # Arrange
        purchase_parties.delete_purchase_party(ravi.id)

        # Act / Assert
        with pytest.raises(DuplicateRecordError, match="restore it"):
            purchase_parties.add_purchase_party(PurchaseParty(party_code="RK01", name="Ravi again"))

        restored = purchase_parties.restore_purchase_party(ravi.id)
        assert restored.name == "Ravi Kumar Plastics"
        assert [p.id for p in purchase_parties.list_purchase_parties()] == [ravi.id]

    def test_rename_keeps_code(self, ravi, purchase_parties):
        purchase_parties.update_purchase_party(ravi.model_copy(update={"name": "RK Polymers"}))

        assert purchase_parties.get_by_code("RK01").name == "RK Polymers"


class TestSuppliedItems:

    @pytest.fixture
    def jug(self, ravi, catalog):
        return catalog.add_item(Item(name="Jug", default_rate=40, purchase_rate=25, purchase_party_id=ravi.id))

    def test_items_listed_per_supplier(self, seeded, jug, ravi, catalog, purchase_parties):
        assert [i.name for i in catalog.list_items(purchase_party_id=ravi.id)] == ["Jug"]
        assert purchase_parties.item_count(ravi.id) == 1

    def test_supplier_in_use_cannot_be_deleted(self, jug, ravi, catalog, purchase_parties):
        with pytest.raises(RecordInUseError, match="used by 1 item"):
            purchase_parties.delete_purchase_party(ravi.id)

        catalog.delete_item(jug.id)
        purchase_parties.delete_purchase_party(ravi.id)
        assert [p.id for p in purchase_parties.list_deleted()] == [ravi.id]

    def test_deleted_supplier_cannot_be_assigned(self, ravi, catalog, purchase_parties):
        purchase_parties.delete_purchase_party(ravi.id)

        with pytest.raises(RecordNotFoundError):
            catalog.add_item(Item(name="Tub", default_rate=60, purchase_party_id=ravi.id))
