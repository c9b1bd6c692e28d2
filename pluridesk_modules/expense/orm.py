"""
SQLAlchemy ORM persistence model for the expense ledger.

Invariants enforced
-------------------
* ``amount`` is Numeric(38,9), paired with a non-null ``currency``.
* ``outsourcing_id`` and ``supplier_id`` are weak references: no foreign
  key, so removing either side never removes a booked payable.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pluridesk_kernel.db.base import OwnedBase


class ExpenseModel(OwnedBase):
    """A ledger row.  Maps to ``Expense``."""

    __tablename__ = "expenses"

    __table_args__ = (
        Index("idx_expense_owner_date", "owner_id", "expense_date"),
        Index("idx_expense_outsourcing", "outsourcing_id"),
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(nullable=True)
    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(String(30), nullable=False, default="manual")
    outsourcing_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def to_dto(self):
        from pluridesk_modules.expense.models import Expense, ExpenseSource

        return Expense(
            id=self.id,
            category=self.category,
            amount=self.amount,
            currency=self.currency,
            expense_date=self.expense_date,
            source=ExpenseSource(self.source),
            due_date=self.due_date,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            notes=self.notes,
            paid=self.paid,
            outsourcing_id=self.outsourcing_id,
        )
