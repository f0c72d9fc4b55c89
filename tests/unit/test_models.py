"""Unit tests for domain models"""

import re

import pytest
from pydantic import ValidationError

from plasticmart.models.invoice import Invoice, InvoiceLineItem, Payment, gen_public_id
from plasticmart.models.item import Category, Item, ItemPartyPrice
from plasticmart.models.party import Party, PurchaseParty
from plasticmart.pricing.draft import InvoiceDraft


class TestInvoiceLineItem:

    def test_stored_amount_is_not_trusted(self):
        """A tampered amount is recomputed from quantity and rate"""
        line = InvoiceLineItem.model_validate({"item_name": "Bucket", "quantity": 3, "rate": 100, "amount": 999})
        assert line.amount == 300

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError):
            InvoiceLineItem(item_name="Bucket", quantity=quantity, rate=1)

    def test_item_id_may_be_missing(self):
        line = InvoiceLineItem(item_name="Deleted item", quantity=1, rate=5)
        assert line.item_id is None


class TestInvoice:

    def test_public_id_format(self):
        assert re.fullmatch(r"inv_[a-z0-9]{12}", gen_public_id())

    def test_sub_total_and_defaults(self):
        inv = Invoice(party_name="X", items=[InvoiceLineItem(item_name="A", quantity=2, rate=5)])
        assert inv.sub_total() == 10
        assert not inv.is_offline
        assert not inv.is_deleted

    def test_negative_bundle_charge_rejected(self):
        with pytest.raises(ValidationError):
            Invoice(party_name="X", bundle_charge=-1)


class TestCatalogModels:

    def test_item_rate_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            Item(name="Bucket", default_rate=-1)

    def test_party_price_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            ItemPartyPrice(item_id="1", party_id="2", price=-5)

    def test_party_name_is_trimmed_and_required(self):
        assert Party(name="  Sharma  ").name == "Sharma"
        with pytest.raises(ValidationError):
            Party(name="   ")

    def test_party_blank_email_is_none(self):
        assert Party(name="A", email="").email is None

    def test_party_invalid_email(self):
        with pytest.raises(ValidationError):
            Party(name="A", email="not-an-email")


class TestPayment:

    @pytest.mark.parametrize("amount", [0, -10])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            Payment(invoice_id="1", amount=amount)


class TestBundleDefaults:

    def test_saved_invoice_and_draft_share_the_bundle_quantity_default(self):
        assert Invoice(party_name="X").bundle_quantity == InvoiceDraft().bundle_quantity == 1


class TestCategoryAndPurchaseParty:

    def test_category_name_required(self):
        with pytest.raises(ValidationError):
            Category(name="")

    def test_party_code_is_upper_cased(self):
        assert PurchaseParty(party_code=" rk01 ", name=" Ravi Kumar ").party_code == "RK01"

    @pytest.mark.parametrize("code", ["", "RK-01", "ABCDEFGHIJK"])
    def test_invalid_party_code(self, code):
        with pytest.raises(ValidationError):
            PurchaseParty(party_code=code, name="Ravi Kumar")

    def test_item_links_default_to_none(self):
        item = Item(name="Bucket")
        assert item.category_id is None
        assert item.purchase_party_id is None
