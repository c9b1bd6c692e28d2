"""
Parties Module (``pluridesk_modules.parties``).

Clients, suppliers and supplier rate cards.
"""

from pluridesk_modules.parties.models import BillingUnit, Client, Supplier, SupplierRate
from pluridesk_modules.parties.service import PartyService

__all__ = [
    "BillingUnit",
    "Client",
    "PartyService",
    "Supplier",
    "SupplierRate",
]
