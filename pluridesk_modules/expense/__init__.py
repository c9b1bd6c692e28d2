"""
Expense Module (``pluridesk_modules.expense``).

The payable ledger: manual expenses and those booked by outsourcing
deliveries.
"""

from pluridesk_modules.expense.models import Expense, ExpenseSource, ExpenseStatus
from pluridesk_modules.expense.service import ExpenseService

__all__ = [
    "Expense",
    "ExpenseService",
    "ExpenseSource",
    "ExpenseStatus",
]
