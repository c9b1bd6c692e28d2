"""
SQLAlchemy ORM persistence model for jobs.

Invariants enforced
-------------------
* ``job_code`` is unique per owner.
* ``total_amount`` is Numeric(38,9), paired with ``currency``.
* Outsourcing records belong to their job and are deleted with it.
* ``invoice_id`` is a weak back-reference: deleting an invoice clears it
  and never deletes the job.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pluridesk_kernel.db.base import OwnedBase


class JobModel(OwnedBase):
    """A job.  Maps to the ``Job`` DTO in ``pluridesk_modules.jobs.models``."""

    __tablename__ = "jobs"

    __table_args__ = (
        UniqueConstraint("owner_id", "job_code", name="uq_job_owner_code"),
        Index("idx_job_client", "client_id"),
        Index("idx_job_status", "status"),
        Index("idx_job_invoice", "invoice_id"),
    )

    client_id: Mapped[UUID] = mapped_column(ForeignKey("clients.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    job_code: Mapped[str] = mapped_column(String(50), nullable=False)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pricing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="created")
    held_from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    has_outsourcing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    outsourcing: Mapped[list["OutsourcingModel"]] = relationship(
        "OutsourcingModel",
        back_populates="job",
        cascade="all, delete-orphan",
    )

    def to_dto(self):
        from pluridesk_engines.pricing import PricingType
        from pluridesk_modules.jobs.models import Job, JobStatus

        return Job(
            id=self.id,
            client_id=self.client_id,
            title=self.title,
            job_code=self.job_code,
            pricing_type=PricingType(self.pricing_type),
            currency=self.currency,
            total_amount=self.total_amount,
            status=JobStatus(self.status),
            service_type=self.service_type,
            quantity=self.quantity,
            rate=self.rate,
            unit=self.unit,
            held_from_status=(
                JobStatus(self.held_from_status) if self.held_from_status else None
            ),
            start_date=self.start_date,
            due_date=self.due_date,
            has_outsourcing=self.has_outsourcing,
            invoice_id=self.invoice_id,
            notes=self.notes,
        )
