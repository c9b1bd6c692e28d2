"""
Party Service (``pluridesk_modules.parties.service``).

Responsibility
--------------
Per-record maintenance of clients, suppliers and supplier rate cards.  The
lifecycle engine only reads these records: a client's default currency and
payment terms seed jobs and invoices, and a supplier's rate card and
default currency seed outsourcing records.

Invariants enforced
-------------------
* Currencies are validated against the supported set; a client must
  carry a default currency, a supplier may leave it unset.
* Rate-card rates are positive and quoted in a known billing unit.
* Each public method owns its transaction boundary.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_kernel.db.types import validate_currency
from pluridesk_kernel.exceptions import ValidationError
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules._helpers import check_fields, get_owned
from pluridesk_modules.parties.models import BillingUnit, Client, Supplier, SupplierRate
from pluridesk_modules.parties.orm import ClientModel, SupplierModel, SupplierRateModel

logger = get_logger("modules.parties.service")

_CLIENT_FIELDS = ("name", "email", "default_currency", "payment_terms_days", "notes")
_SUPPLIER_FIELDS = ("name", "email", "default_currency", "notes")


def _require_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError("name", "is required")
    return name.strip()


def _check_terms(days: int | None) -> int | None:
    if days is not None and days < 0:
        raise ValidationError("payment_terms_days", "cannot be negative")
    return days


class PartyService:
    """Clients, suppliers and rate cards of one owner."""

    def __init__(self, session: Session, owner_id: UUID):
        self._session = session
        self._owner_id = owner_id

    # =========================================================================
    # Clients
    # =========================================================================

    def create_client(
        self,
        name: str,
        default_currency: str,
        email: str | None = None,
        payment_terms_days: int | None = None,
        notes: str | None = None,
    ) -> Client:
        try:
            client = ClientModel(
                owner_id=self._owner_id,
                name=_require_name(name),
                default_currency=validate_currency(default_currency, "Client"),
                email=email,
                payment_terms_days=_check_terms(payment_terms_days),
                notes=notes,
            )
            self._session.add(client)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("client_created", extra={"client_id": str(client.id)})
        return client.to_dto()

    def update_client(self, client_id: UUID, **changes: Any) -> Client:
        check_fields(changes, _CLIENT_FIELDS, "client")
        try:
            client = get_owned(self._session, ClientModel, self._owner_id, client_id, "Client")
            if "name" in changes:
                changes["name"] = _require_name(changes["name"])
            if "default_currency" in changes:
                changes["default_currency"] = validate_currency(changes["default_currency"], "Client")
            if "payment_terms_days" in changes:
                _check_terms(changes["payment_terms_days"])
            for key, value in changes.items():
                setattr(client, key, value)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "client_updated",
            extra={"client_id": str(client_id), "fields": sorted(changes)},
        )
        return client.to_dto()

    def get_client(self, client_id: UUID) -> Client:
        return get_owned(self._session, ClientModel, self._owner_id, client_id, "Client").to_dto()

    def list_clients(self) -> list[Client]:
        rows = self._session.execute(
            select(ClientModel)
            .where(ClientModel.owner_id == self._owner_id)
            .order_by(ClientModel.name)
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Suppliers
    # =========================================================================

    def create_supplier(
        self,
        name: str,
        default_currency: str | None = None,
        email: str | None = None,
        notes: str | None = None,
    ) -> Supplier:
        try:
            supplier = SupplierModel(
                owner_id=self._owner_id,
                name=_require_name(name),
                default_currency=(
                    validate_currency(default_currency, "Supplier")
                    if default_currency is not None
                    else None
                ),
                email=email,
                notes=notes,
            )
            self._session.add(supplier)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("supplier_created", extra={"supplier_id": str(supplier.id)})
        return supplier.to_dto()

    def update_supplier(self, supplier_id: UUID, **changes: Any) -> Supplier:
        check_fields(changes, _SUPPLIER_FIELDS, "supplier")
        try:
            supplier = get_owned(
                self._session, SupplierModel, self._owner_id, supplier_id, "Supplier"
            )
            if "name" in changes:
                changes["name"] = _require_name(changes["name"])
            if changes.get("default_currency") is not None:
                changes["default_currency"] = validate_currency(
                    changes["default_currency"], "Supplier"
                )
            for key, value in changes.items():
                setattr(supplier, key, value)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "supplier_updated",
            extra={"supplier_id": str(supplier_id), "fields": sorted(changes)},
        )
        return supplier.to_dto()

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        return get_owned(
            self._session, SupplierModel, self._owner_id, supplier_id, "Supplier"
        ).to_dto()

    def list_suppliers(self) -> list[Supplier]:
        rows = self._session.execute(
            select(SupplierModel)
            .where(SupplierModel.owner_id == self._owner_id)
            .order_by(SupplierModel.name)
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Rate cards
    # =========================================================================

    def add_supplier_rate(
        self,
        supplier_id: UUID,
        service_name: str,
        rate: Decimal,
        unit: BillingUnit | str,
        currency: str,
    ) -> SupplierRate:
        """Add a rate-card entry.  One entry per service name, ignoring case."""
        if not service_name or not service_name.strip():
            raise ValidationError("service_name", "is required")
        rate = Decimal(str(rate))
        if rate <= 0:
            raise ValidationError("rate", "must be positive")
        try:
            unit_value = BillingUnit(unit).value
        except ValueError as exc:
            raise ValidationError("unit", f"unknown billing unit {unit!r}") from exc

        try:
            supplier = get_owned(
                self._session, SupplierModel, self._owner_id, supplier_id, "Supplier"
            )
            if supplier.to_dto().rate_for(service_name) is not None:
                raise ValidationError(
                    "service_name", f"{service_name!r} already has a rate for this supplier"
                )
            entry = SupplierRateModel(
                owner_id=self._owner_id,
                supplier_id=supplier.id,
                service_name=service_name.strip(),
                rate=rate,
                unit=unit_value,
                currency=validate_currency(currency, "SupplierRate"),
            )
            supplier.rates.append(entry)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "supplier_rate_added",
            extra={
                "supplier_id": str(supplier_id),
                "service_name": entry.service_name,
                "rate": str(rate),
                "currency": entry.currency,
            },
        )
        return entry.to_dto()

    def remove_supplier_rate(self, rate_id: UUID) -> None:
        try:
            entry = get_owned(
                self._session, SupplierRateModel, self._owner_id, rate_id, "SupplierRate"
            )
            supplier = self._session.get(SupplierModel, entry.supplier_id)
            supplier.rates.remove(entry)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("supplier_rate_removed", extra={"rate_id": str(rate_id)})
