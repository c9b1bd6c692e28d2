"""
SQLAlchemy ORM persistence models for clients, suppliers and rate cards.

Invariants enforced
-------------------
* Every row is owner-scoped (``OwnedBase``).
* Rate-card rows belong to exactly one supplier and are deleted with it.
* Monetary rates are Numeric(38,9), each paired with a currency column.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pluridesk_kernel.db.base import OwnedBase


class ClientModel(OwnedBase):
    """A billed client.  Maps to ``Client``."""

    __tablename__ = "clients"

    __table_args__ = (
        Index("idx_client_owner_name", "owner_id", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_terms_days: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from pluridesk_modules.parties.models import Client

        return Client(
            id=self.id,
            name=self.name,
            default_currency=self.default_currency,
            email=self.email,
            payment_terms_days=self.payment_terms_days,
            notes=self.notes,
        )


class SupplierModel(OwnedBase):
    """A subcontractor.  Maps to ``Supplier``."""

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_supplier_owner_name", "owner_id", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    rates: Mapped[list["SupplierRateModel"]] = relationship(
        "SupplierRateModel",
        back_populates="supplier",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SupplierRateModel.service_name",
    )

    def to_dto(self):
        from pluridesk_modules.parties.models import Supplier

        return Supplier(
            id=self.id,
            name=self.name,
            default_currency=self.default_currency,
            email=self.email,
            notes=self.notes,
            rates=tuple(rate.to_dto() for rate in self.rates),
        )


class SupplierRateModel(OwnedBase):
    """A rate-card entry.  Maps to ``SupplierRate``."""

    __tablename__ = "supplier_rates"

    __table_args__ = (
        Index("idx_supplier_rate_supplier", "supplier_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False
    )
    service_name: Mapped[str] = mapped_column(String(100), nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    supplier: Mapped[SupplierModel] = relationship(
        "SupplierModel", back_populates="rates"
    )

    def to_dto(self):
        from pluridesk_modules.parties.models import SupplierRate

        return SupplierRate(
            id=self.id,
            supplier_id=self.supplier_id,
            service_name=self.service_name,
            rate=self.rate,
            unit=self.unit,
            currency=self.currency,
        )
