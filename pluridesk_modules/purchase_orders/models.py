"""
Purchase Order Domain Models.

An order issued to one supplier for a group of its outsourcing records.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from pluridesk_kernel.domain.values import Money


@dataclass(frozen=True)
class PurchaseOrder:
    """
    A supplier purchase order.

    ``amount`` is the sum of the linked records' supplier totals when the
    order was issued, in their shared currency.
    """
    id: UUID
    supplier_id: UUID
    number: str
    currency: str
    amount: Decimal
    issue_date: date
    outsourcing_ids: tuple[UUID, ...] = ()
    notes: str | None = None

    @property
    def total(self) -> Money:
        return Money.of(self.amount, self.currency)
