"""
SQLAlchemy ORM persistence model for outsourcing records.

Invariants enforced
-------------------
* Each record belongs to exactly one job and is deleted with it.
* ``supplier_total`` is Numeric(38,9), paired with ``supplier_currency``,
  which is independent of the job's currency.
* ``expense_id`` is a weak reference to the payable booked on delivery.
* ``purchase_order_id`` links the record to at most one purchase order and
  is cleared when that order is deleted.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pluridesk_kernel.db.base import OwnedBase
from pluridesk_modules.jobs.orm import JobModel


class OutsourcingModel(OwnedBase):
    """A subcontract.  Maps to ``OutsourcingRecord``."""

    __tablename__ = "outsourcing_records"

    __table_args__ = (
        Index("idx_outsourcing_job", "job_id"),
        Index("idx_outsourcing_supplier", "supplier_id"),
        Index("idx_outsourcing_status", "status"),
        Index("idx_outsourcing_purchase_order", "purchase_order_id"),
    )

    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    supplier_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    supplier_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    supplier_total: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    expense_id: Mapped[UUID | None] = mapped_column(nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True
    )

    job: Mapped[JobModel] = relationship("JobModel", back_populates="outsourcing")

    def to_dto(self):
        from pluridesk_modules.outsourcing.models import OutsourcingRecord, OutsourcingStatus

        return OutsourcingRecord(
            id=self.id,
            job_id=self.job_id,
            supplier_id=self.supplier_id,
            supplier_currency=self.supplier_currency,
            status=OutsourcingStatus(self.status),
            service_type=self.service_type,
            quantity=self.quantity,
            unit=self.unit,
            supplier_rate=self.supplier_rate,
            supplier_total=self.supplier_total,
            paid=self.paid,
            start_date=self.start_date,
            due_date=self.due_date,
            delivery_date=self.delivery_date,
            notes=self.notes,
            expense_id=self.expense_id,
            purchase_order_id=self.purchase_order_id,
        )
