"""
Invoicing Domain Models.

Client invoices and the line items shared with quotes.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

from pluridesk_kernel.domain.values import Money
from pluridesk_kernel.exceptions import ValidationError
from pluridesk_modules._results import ChangeSet


class InvoiceStatus(Enum):
    """Invoice payment states."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class LineItem:
    """One priced line of an invoice or quote.  ``amount == quantity * rate``."""
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    job_id: UUID | None = None


@dataclass(frozen=True)
class LineItemInput:
    """A line as entered by the caller; the amount is computed."""
    description: str
    quantity: Decimal | int | str
    rate: Decimal | int | str


def _decimal(field_name: str, value: Decimal | int | str) -> Decimal:
    if value is None or isinstance(value, float):
        raise ValidationError(field_name, "must be a Decimal, int or numeric string")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(field_name, f"not a number: {value!r}") from exc


def build_line_item(
    description: str,
    quantity: Decimal | int | str,
    rate: Decimal | int | str,
    job_id: UUID | None = None,
) -> LineItem:
    """Validate a line and compute its amount exactly."""
    if description is None or not description.strip():
        raise ValidationError("description", "is required")
    qty = _decimal("quantity", quantity)
    unit_rate = _decimal("rate", rate)
    if qty <= 0:
        raise ValidationError("quantity", "must be positive")
    if unit_rate < 0:
        raise ValidationError("rate", "cannot be negative")
    return LineItem(
        description=description.strip(),
        quantity=qty,
        rate=unit_rate,
        amount=qty * unit_rate,
        job_id=job_id,
    )


def document_totals(items: tuple[LineItem, ...], tax_amount: Decimal) -> tuple[Decimal, Decimal]:
    """(subtotal, total) with ``subtotal == sum(amounts)`` and ``total == subtotal + tax``."""
    subtotal = sum((item.amount for item in items), Decimal("0"))
    return subtotal, subtotal + tax_amount


@dataclass(frozen=True)
class Invoice:
    """A client invoice."""
    id: UUID
    client_id: UUID
    invoice_number: str
    currency: str
    items: tuple[LineItem, ...]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    invoice_date: date
    status: InvoiceStatus = InvoiceStatus.DRAFT
    due_date: date | None = None
    notes: str | None = None
    job_ids: tuple[UUID, ...] = ()

    @property
    def total_money(self) -> Money:
        return Money.of(self.total, self.currency)


@dataclass(frozen=True)
class InvoiceGenerationResult:
    """A generated invoice and the jobs it consumed."""
    invoice: Invoice
    changes: ChangeSet = field(default_factory=ChangeSet)
