"""
Expense Domain Models.

Payable ledger rows: entered by hand, or booked when an outsourcing
delivery is confirmed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pluridesk_engines.classification import ExpenseStatus
from pluridesk_kernel.domain.values import Money


class ExpenseSource(Enum):
    """How an expense entered the ledger."""
    MANUAL = "manual"
    OUTSOURCING_DELIVERY = "outsourcing_delivery"


@dataclass(frozen=True)
class Expense:
    """
    A payable expense.

    An expense booked from a delivery carries ``outsourcing_id`` for
    traceability only; editing or deleting it leaves the outsourcing
    record untouched.
    """
    id: UUID
    category: str
    amount: Decimal
    currency: str
    expense_date: date
    source: ExpenseSource = ExpenseSource.MANUAL
    due_date: date | None = None
    supplier_id: UUID | None = None
    supplier_name: str | None = None
    notes: str | None = None
    paid: bool = False
    outsourcing_id: UUID | None = None

    @property
    def money(self) -> Money:
        return Money.of(self.amount, self.currency)


__all__ = ["Expense", "ExpenseSource", "ExpenseStatus"]
