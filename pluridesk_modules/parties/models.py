"""
Party Domain Models.

The counterparties of the engine: clients who are billed, suppliers who
are paid, and the rate cards suppliers quote per service.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class BillingUnit(Enum):
    """Unit a rate is quoted in."""
    WORD = "word"
    HOUR = "hour"
    PAGE = "page"
    PROJECT = "project"
    FILE = "file"


@dataclass(frozen=True)
class Client:
    """A billed client.  ``payment_terms_days`` of None means engine default."""
    id: UUID
    name: str
    default_currency: str
    email: str | None = None
    payment_terms_days: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SupplierRate:
    """One rate-card entry: the supplier's price for a named service."""
    id: UUID
    supplier_id: UUID
    service_name: str
    rate: Decimal
    unit: str
    currency: str


@dataclass(frozen=True)
class Supplier:
    """A subcontractor with an optional default currency and rate card."""
    id: UUID
    name: str
    default_currency: str | None = None
    email: str | None = None
    notes: str | None = None
    rates: tuple[SupplierRate, ...] = ()

    def rate_for(self, service_type: str | None) -> SupplierRate | None:
        """Rate-card entry whose service name matches ``service_type``, ignoring case."""
        if not service_type:
            return None
        wanted = service_type.strip().casefold()
        for rate in self.rates:
            if rate.service_name.strip().casefold() == wanted:
                return rate
        return None
