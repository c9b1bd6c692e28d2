"""
Job Domain Models.

The unit of billable work for a client, and its status lifecycle.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pluridesk_engines.pricing import PricingType
from pluridesk_kernel.domain.values import Money
from pluridesk_modules._results import ChangeSet


class JobStatus(Enum):
    """Job lifecycle states."""
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    INVOICED = "invoiced"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


# Fields that carry or determine money; frozen once the job is invoiced
FINANCIAL_FIELDS: tuple[str, ...] = (
    "client_id",
    "pricing_type",
    "quantity",
    "rate",
    "currency",
    "total_amount",
    "invoice_id",
)


@dataclass(frozen=True)
class Job:
    """A job record."""
    id: UUID
    client_id: UUID
    title: str
    job_code: str
    pricing_type: PricingType
    currency: str
    total_amount: Decimal
    status: JobStatus = JobStatus.CREATED
    service_type: str | None = None
    quantity: Decimal | None = None
    rate: Decimal | None = None
    unit: str | None = None
    held_from_status: JobStatus | None = None
    start_date: date | None = None
    due_date: date | None = None
    has_outsourcing: bool = False
    invoice_id: UUID | None = None
    notes: str | None = None

    @property
    def total(self) -> Money:
        return Money.of(self.total_amount, self.currency)

    @property
    def is_invoiced(self) -> bool:
        return self.status is JobStatus.INVOICED


@dataclass(frozen=True)
class JobTransitionResult:
    """Outcome of a job status change, including the cancel cascade."""
    job: Job
    previous_status: JobStatus
    cancelled_outsourcing_ids: tuple[UUID, ...] = ()
    changes: ChangeSet = field(default_factory=ChangeSet)

    @property
    def changed(self) -> bool:
        return self.previous_status is not self.job.status
