"""
SQLAlchemy ORM persistence model for purchase orders.

Invariants enforced
-------------------
* ``number`` is unique per owner.
* ``amount`` is Numeric(38,9), paired with ``currency``.
* Outsourcing records point at their order through
  ``outsourcing_records.purchase_order_id``; the order holds no list.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pluridesk_kernel.db.base import OwnedBase


class PurchaseOrderModel(OwnedBase):
    """A supplier purchase order.  Maps to ``PurchaseOrder``."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("owner_id", "number", name="uq_purchase_order_owner_number"),
        Index("idx_purchase_order_supplier", "supplier_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    number: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self, outsourcing_ids: tuple[UUID, ...] = ()):
        from pluridesk_modules.purchase_orders.models import PurchaseOrder

        return PurchaseOrder(
            id=self.id,
            supplier_id=self.supplier_id,
            number=self.number,
            currency=self.currency,
            amount=self.amount,
            issue_date=self.issue_date,
            outsourcing_ids=outsourcing_ids,
            notes=self.notes,
        )
