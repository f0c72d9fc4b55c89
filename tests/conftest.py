import pytest

from plasticmart.models.item import Item, Unit
from plasticmart.models.party import Party
from plasticmart.services.activity_service import ActivityService
from plasticmart.services.catalog_service import CatalogService
from plasticmart.services.invoice_service import InvoiceService
from plasticmart.services.party_service import PartyService
from plasticmart.services.payment_service import PaymentService
from plasticmart.services.purchase_party_service import PurchasePartyService
from plasticmart.storage.store import PersistenceStore


@pytest.fixture
def store(tmp_path):
    return PersistenceStore(tmp_path / "data")


@pytest.fixture
def activity(store):
    return ActivityService(store)


@pytest.fixture
def parties(store, activity):
    return PartyService(store, activity)


@pytest.fixture
def catalog(store, activity):
    return CatalogService(store, activity)


@pytest.fixture
def payments(store, activity):
    return PaymentService(store, activity)


@pytest.fixture
def purchase_parties(store, activity):
    return PurchasePartyService(store, activity)


@pytest.fixture
def invoices(store, activity, catalog, parties, payments):
    return InvoiceService(store, catalog=catalog, parties=parties, payments=payments, activity=activity)


@pytest.fixture
def seeded(catalog, parties):
    """Two parties, two units and two items; Sharma Traders pays 80 for a bucket."""
    pcs = catalog.add_unit(Unit(name="PCS"))
    doz = catalog.add_unit(Unit(name="DOZ"))
    bucket = catalog.add_item(Item(name="Bucket 10L", default_rate=100, unit_id=pcs.id))
    mug = catalog.add_item(Item(name="Mug", default_rate=120, unit_id=doz.id))
    sharma = parties.add_party(Party(name="Sharma Traders", bundle_rate=15))
    gupta = parties.add_party(Party(name="Gupta Stores"))
    catalog.set_party_price(bucket.id, sharma.id, 80)
    return {"pcs": pcs, "doz": doz, "bucket": bucket, "mug": mug, "sharma": sharma, "gupta": gupta}
