"""
Tests for expense classification.

Validates:
- Paid wins regardless of due date
- Overdue iff unpaid and past due (plus grace)
"""

from dataclasses import dataclass
from datetime import date

from pluridesk_engines.classification import ExpenseStatus, classify

TODAY = date(2024, 3, 15)


@dataclass
class Payable:
    paid: bool
    due_date: date | None


class TestClassify:

    def test_paid_even_if_past_due(self):
        assert classify(Payable(True, date(2023, 1, 1)), TODAY) is ExpenseStatus.PAID

    def test_overdue(self):
        assert classify(Payable(False, date(2024, 3, 14)), TODAY) is ExpenseStatus.OVERDUE

    def test_due_today_is_unpaid(self):
        assert classify(Payable(False, TODAY), TODAY) is ExpenseStatus.UNPAID

    def test_no_due_date_is_unpaid(self):
        assert classify(Payable(False, None), TODAY) is ExpenseStatus.UNPAID

    def test_grace_days(self):
        expense = Payable(False, date(2024, 3, 12))
        assert classify(expense, TODAY, grace_days=3) is ExpenseStatus.UNPAID
        assert classify(expense, TODAY, grace_days=2) is ExpenseStatus.OVERDUE
