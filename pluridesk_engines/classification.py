"""
Module: pluridesk_engines.classification
Responsibility:
    Classify a payable expense as paid, unpaid or overdue as of a date.
    Dashboards, filters and the expense breakdown report all use this one
    function so the three views can never disagree.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller supplies
    ``today``; this module never reads the clock.

Invariants enforced:
    - ``paid`` whenever the expense is paid, regardless of due date.
    - ``overdue`` iff unpaid and ``due_date + grace_days < today``.
    - ``unpaid`` otherwise, including unpaid expenses with no due date.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import Protocol


class ExpenseStatus(Enum):
    """Derived payment status of an expense."""
    PAID = "paid"
    UNPAID = "unpaid"
    OVERDUE = "overdue"


class Payable(Protocol):
    paid: bool
    due_date: date | None


def classify(expense: Payable, today: date, grace_days: int = 0) -> ExpenseStatus:
    """Classify ``expense`` as of ``today``."""
    if expense.paid:
        return ExpenseStatus.PAID
    if expense.due_date is not None and expense.due_date + timedelta(days=grace_days) < today:
        return ExpenseStatus.OVERDUE
    return ExpenseStatus.UNPAID
