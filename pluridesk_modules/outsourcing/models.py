"""
Outsourcing Domain Models.

Subcontracts of a job to a supplier, the terms they are created with, and
the confirmation token that gates booking a delivery's payable.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pluridesk_kernel.domain.values import Money
from pluridesk_modules._results import ChangeSet
from pluridesk_modules.expense.models import Expense


class OutsourcingStatus(Enum):
    """Subcontract lifecycle states."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# States a job cancellation sweeps into ``cancelled``
OPEN_STATUSES: frozenset[OutsourcingStatus] = frozenset({
    OutsourcingStatus.PENDING,
    OutsourcingStatus.ASSIGNED,
    OutsourcingStatus.IN_PROGRESS,
})


@dataclass(frozen=True)
class OutsourcingRecord:
    """A subcontract of (part of) a job to one supplier."""
    id: UUID
    job_id: UUID
    supplier_id: UUID
    supplier_currency: str
    status: OutsourcingStatus = OutsourcingStatus.PENDING
    service_type: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None
    supplier_rate: Decimal | None = None
    supplier_total: Decimal | None = None
    paid: bool = False
    start_date: date | None = None
    due_date: date | None = None
    delivery_date: date | None = None
    notes: str | None = None
    expense_id: UUID | None = None
    purchase_order_id: UUID | None = None

    @property
    def total(self) -> Money | None:
        if self.supplier_total is None:
            return None
        return Money.of(self.supplier_total, self.supplier_currency)


@dataclass(frozen=True)
class OutsourcingTerms:
    """
    Caller-supplied terms for a new subcontract.

    Every field is optional: unset fields are filled from the job and the
    supplier's rate card.  A field set here always wins over those defaults.
    """
    service_type: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None
    supplier_rate: Decimal | None = None
    supplier_currency: str | None = None
    supplier_total: Decimal | None = None
    start_date: date | None = None
    due_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PendingExpenseConfirmation:
    """
    The payable a delivery would book, awaiting explicit confirmation.

    Issued by ``OutsourcingService.set_status(..., DELIVERED)``; nothing is
    written until ``confirm_delivery`` is called with this token.  The
    token is rejected if the record's status or amount changed since.
    """
    record_id: UUID
    job_id: UUID
    supplier_id: UUID
    supplier_name: str
    amount: Money
    description: str
    expected_status: OutsourcingStatus
    mark_paid: bool = False


@dataclass(frozen=True)
class DeliveryResult:
    """A confirmed delivery: the updated record and the expense it booked."""
    record: OutsourcingRecord
    expense: Expense
    changes: ChangeSet = field(default_factory=ChangeSet)
