"""
Quote Domain Models.

Priced offers to a client that can be converted into a job.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pluridesk_modules._results import ChangeSet
from pluridesk_modules.invoicing.models import LineItem
from pluridesk_modules.jobs.models import Job


class QuoteStatus(Enum):
    """Quote lifecycle states."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Quote:
    """A quote.  ``job_id`` is set once it has been converted."""
    id: UUID
    client_id: UUID
    quote_number: str
    currency: str
    items: tuple[LineItem, ...]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    quote_date: date
    status: QuoteStatus = QuoteStatus.DRAFT
    valid_until: date | None = None
    notes: str | None = None
    job_id: UUID | None = None

    @property
    def is_converted(self) -> bool:
        return self.job_id is not None


@dataclass(frozen=True)
class QuoteConversionResult:
    """The accepted quote and the job created from it."""
    quote: Quote
    job: Job
    changes: ChangeSet = field(default_factory=ChangeSet)
