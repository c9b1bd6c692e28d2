"""
SQLAlchemy ORM persistence models for quotes and their line items.

Invariants enforced
-------------------
* ``quote_number`` is unique per owner.
* Line items are ordered by position and deleted with their quote.
* ``job_id`` records the job created by conversion.  It is a plain
  reference and survives deletion of that job.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pluridesk_kernel.db.base import OwnedBase, TrackedBase


class QuoteModel(OwnedBase):
    """A client quote.  Maps to ``Quote``."""

    __tablename__ = "quotes"

    __table_args__ = (
        UniqueConstraint("owner_id", "quote_number", name="uq_quote_owner_number"),
        Index("idx_quote_client", "client_id"),
    )

    client_id: Mapped[UUID] = mapped_column(ForeignKey("clients.id"), nullable=False)
    quote_number: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    quote_date: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_id: Mapped[UUID | None] = mapped_column(nullable=True)

    items: Mapped[list["QuoteItemModel"]] = relationship(
        "QuoteItemModel",
        back_populates="quote",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuoteItemModel.position",
    )

    def to_dto(self):
        from pluridesk_modules.quotes.models import Quote, QuoteStatus

        return Quote(
            id=self.id,
            client_id=self.client_id,
            quote_number=self.quote_number,
            currency=self.currency,
            items=tuple(item.to_dto() for item in self.items),
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            total=self.total,
            quote_date=self.quote_date,
            status=QuoteStatus(self.status),
            valid_until=self.valid_until,
            notes=self.notes,
            job_id=self.job_id,
        )


class QuoteItemModel(TrackedBase):
    """One line of a quote.  Maps to ``LineItem``."""

    __tablename__ = "quote_items"

    quote_id: Mapped[UUID] = mapped_column(
        ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    quote: Mapped[QuoteModel] = relationship("QuoteModel", back_populates="items")

    def to_dto(self):
        from pluridesk_modules.invoicing.models import LineItem

        return LineItem(
            description=self.description,
            quantity=self.quantity,
            rate=self.rate,
            amount=self.amount,
        )
