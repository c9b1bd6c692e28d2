"""
Tests for clients, suppliers and supplier rate cards.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from pluridesk_kernel.exceptions import InvalidCurrencyError, NotFoundError, ValidationError
from pluridesk_modules.parties.models import BillingUnit
from pluridesk_modules.parties.service import PartyService


class TestClients:

    def test_create_normalizes_currency(self, party_service):
        client = party_service.create_client("Northwind", "usd", payment_terms_days=30)
        assert client.default_currency == "USD"
        assert party_service.get_client(client.id) == client

    def test_name_required(self, party_service):
        with pytest.raises(ValidationError):
            party_service.create_client("", "USD")

    def test_unknown_currency(self, party_service):
        with pytest.raises(InvalidCurrencyError):
            party_service.create_client("Northwind", "ZZZ")

    def test_negative_terms(self, party_service):
        with pytest.raises(ValidationError):
            party_service.create_client("Northwind", "USD", payment_terms_days=-1)

    def test_update(self, party_service, client):
        updated = party_service.update_client(client.id, payment_terms_days=45, notes="VIP")
        assert updated.payment_terms_days == 45
        assert updated.notes == "VIP"

    def test_update_unknown_field(self, party_service, client):
        with pytest.raises(ValidationError):
            party_service.update_client(client.id, owner_id=uuid4())

    def test_list_sorted_by_name(self, party_service, client, eur_client):
        assert [c.name for c in party_service.list_clients()] == ["Acme Publishing", "Maison Dupont"]

    def test_missing(self, party_service):
        with pytest.raises(NotFoundError):
            party_service.get_client(uuid4())


class TestSuppliers:

    def test_currency_optional(self, party_service):
        assert party_service.create_supplier("Solo Editor").default_currency is None

    def test_rate_card(self, supplier):
        assert len(supplier.rates) == 1
        rate = supplier.rates[0]
        assert rate.service_name == "Translation"
        assert rate.rate == Decimal("0.08")
        assert rate.unit == BillingUnit.WORD.value
        assert supplier.rate_for("translation") == rate
        assert supplier.rate_for("Proofreading") is None
        assert supplier.rate_for(None) is None

    def test_duplicate_service_rejected(self, party_service, supplier):
        with pytest.raises(ValidationError):
            party_service.add_supplier_rate(supplier.id, "TRANSLATION", Decimal("0.09"), "word", "EUR")

    def test_rate_validation(self, party_service, supplier):
        with pytest.raises(ValidationError):
            party_service.add_supplier_rate(supplier.id, "Proofreading", Decimal("0"), "word", "EUR")
        with pytest.raises(ValidationError):
            party_service.add_supplier_rate(supplier.id, "Proofreading", Decimal("0.02"), "furlong", "EUR")

    def test_remove_rate(self, party_service, supplier):
        party_service.remove_supplier_rate(supplier.rates[0].id)
        assert party_service.get_supplier(supplier.id).rates == ()

    def test_update_supplier(self, party_service, supplier):
        assert party_service.update_supplier(supplier.id, default_currency="gbp").default_currency == "GBP"

    def test_other_owner_isolated(self, session, other_owner_id, supplier):
        other = PartyService(session, other_owner_id)
        assert other.list_suppliers() == []
        with pytest.raises(NotFoundError):
            other.get_supplier(supplier.id)
