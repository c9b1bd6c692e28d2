"""
SQLAlchemy ORM persistence models for invoices and their line items.

Invariants enforced
-------------------
* ``invoice_number`` is unique per owner.
* Monetary columns are Numeric(38,9); the invoice carries one currency
  for all of its lines.
* Line items belong to exactly one invoice, keep their position, and are
  deleted with it.  Jobs are linked by ``jobs.invoice_id`` only.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pluridesk_kernel.db.base import OwnedBase, TrackedBase


class InvoiceModel(OwnedBase):
    """A client invoice.  Maps to ``Invoice``."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("owner_id", "invoice_number", name="uq_invoice_owner_number"),
        Index("idx_invoice_client", "client_id"),
        Index("idx_invoice_status", "status"),
    )

    client_id: Mapped[UUID] = mapped_column(ForeignKey("clients.id"), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["InvoiceItemModel"]] = relationship(
        "InvoiceItemModel",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItemModel.position",
    )

    def to_dto(self, job_ids: tuple[UUID, ...] = ()):
        from pluridesk_modules.invoicing.models import Invoice, InvoiceStatus

        return Invoice(
            id=self.id,
            client_id=self.client_id,
            invoice_number=self.invoice_number,
            currency=self.currency,
            items=tuple(item.to_dto() for item in self.items),
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            total=self.total,
            invoice_date=self.invoice_date,
            status=InvoiceStatus(self.status),
            due_date=self.due_date,
            notes=self.notes,
            job_ids=job_ids,
        )


class InvoiceItemModel(TrackedBase):
    """One line of an invoice.  Maps to ``LineItem``."""

    __tablename__ = "invoice_items"

    __table_args__ = (
        Index("idx_invoice_item_invoice", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    job_id: Mapped[UUID | None] = mapped_column(nullable=True)

    invoice: Mapped[InvoiceModel] = relationship("InvoiceModel", back_populates="items")

    def to_dto(self):
        from pluridesk_modules.invoicing.models import LineItem

        return LineItem(
            description=self.description,
            quantity=self.quantity,
            rate=self.rate,
            amount=self.amount,
            job_id=self.job_id,
        )
