"""
Expense Ledger Service (``pluridesk_modules.expense.service``).

Responsibility
--------------
Stores payable expenses, whether entered by hand or booked by a confirmed
outsourcing delivery, and classifies them as paid, unpaid or overdue
through ``pluridesk_engines.classification``.

Invariants enforced
-------------------
* Every expense carries an explicit supported currency and a positive
  amount.
* Classification is the pure ``classify`` engine, fed the injected
  clock's date; dashboards, filters and reports share it.
* Bulk operations commit per item and report exactly which ids failed.
* ``record_delivery_expense`` never commits: delivery confirmation owns
  that transaction.

Failure modes
-------------
* ``NotFoundError`` -- unknown expense or supplier.
* ``ValidationError`` / currency errors -- malformed input.
* Database exceptions propagate after rollback.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_engines.classification import ExpenseStatus, classify
from pluridesk_kernel.db.types import validate_currency
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.exceptions import ValidationError
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules._helpers import (
    check_fields,
    commit_or_flush,
    get_owned,
    rollback_if_owner,
    run_bulk,
)
from pluridesk_modules._results import BulkResult, ChangeSet, MutationResult
from pluridesk_modules.expense.models import Expense, ExpenseSource
from pluridesk_modules.expense.orm import ExpenseModel
from pluridesk_modules.parties.orm import SupplierModel

logger = get_logger("modules.expense.service")

_EDITABLE_FIELDS = (
    "category",
    "amount",
    "currency",
    "expense_date",
    "due_date",
    "supplier_id",
    "supplier_name",
    "notes",
    "paid",
)


def _positive_amount(value: Decimal | int | str | None) -> Decimal:
    if value is None:
        raise ValidationError("amount", "is required")
    if isinstance(value, float):
        raise ValidationError("amount", "float amounts are not accepted")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError("amount", f"not a number: {value!r}") from exc
    if amount <= 0:
        raise ValidationError("amount", "must be positive")
    return amount


def _require_category(category: str | None) -> str:
    if category is None or not category.strip():
        raise ValidationError("category", "is required")
    return category.strip()


def _as_status(value: ExpenseStatus | str) -> ExpenseStatus:
    try:
        return ExpenseStatus(value)
    except ValueError as exc:
        raise ValidationError("status", f"unknown expense status {value!r}") from exc


class ExpenseService:
    """
    The payable ledger of one owner.

    Contract
    --------
    * ``classify`` is pure; ``list(status=...)`` filters with it.
    * ``record_delivery_expense`` stages a row for the delivery
      transaction and leaves committing to the caller.
    """

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._owner_id = owner_id
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._auto_commit = auto_commit

    # =========================================================================
    # Classification
    # =========================================================================

    def classify(self, expense: Expense, today: date | None = None) -> ExpenseStatus:
        """Paid, unpaid or overdue as of ``today`` (default: the clock's date)."""
        return classify(
            expense,
            today or self._clock.today(),
            grace_days=self._config.overdue_grace_days,
        )

    # =========================================================================
    # Manual expenses
    # =========================================================================

    def create(
        self,
        category: str,
        amount: Decimal | int | str,
        currency: str,
        *,
        expense_date: date | None = None,
        due_date: date | None = None,
        supplier_id: UUID | None = None,
        supplier_name: str | None = None,
        notes: str | None = None,
        paid: bool = False,
    ) -> MutationResult[Expense]:
        """Enter a manual expense.  The supplier name is filled from ``supplier_id``."""
        try:
            if supplier_id is not None:
                supplier = self._get_supplier(supplier_id)
                if supplier_name is None:
                    supplier_name = supplier.name
            expense = ExpenseModel(
                owner_id=self._owner_id,
                category=_require_category(category),
                amount=_positive_amount(amount),
                currency=validate_currency(currency, "Expense"),
                expense_date=expense_date or self._clock.today(),
                due_date=due_date,
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                notes=notes,
                paid=paid,
                source=ExpenseSource.MANUAL.value,
            )
            self._session.add(expense)
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        logger.info(
            "expense_created",
            extra={
                "expense_id": str(expense.id),
                "category": expense.category,
                "amount": str(expense.amount),
                "currency": expense.currency,
                "source": expense.source,
            },
        )
        return MutationResult(record=expense.to_dto(), changes=ChangeSet(expense_ids=(expense.id,)))

    def update(self, expense_id: UUID, **changes: Any) -> MutationResult[Expense]:
        """Edit an expense.  A delivery expense's outsourcing record is not touched."""
        check_fields(changes, _EDITABLE_FIELDS, "expense")
        try:
            expense = get_owned(self._session, ExpenseModel, self._owner_id, expense_id, "Expense")
            if "category" in changes:
                changes["category"] = _require_category(changes["category"])
            if "amount" in changes:
                changes["amount"] = _positive_amount(changes["amount"])
            if "currency" in changes:
                changes["currency"] = validate_currency(changes["currency"], "Expense")
            if "expense_date" in changes and changes["expense_date"] is None:
                raise ValidationError("expense_date", "is required")
            if changes.get("supplier_id") is not None:
                self._get_supplier(changes["supplier_id"])
            for key, value in changes.items():
                setattr(expense, key, value)
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        logger.info(
            "expense_updated",
            extra={"expense_id": str(expense_id), "fields": sorted(changes)},
        )
        return MutationResult(record=expense.to_dto(), changes=ChangeSet(expense_ids=(expense.id,)))

    def _get_supplier(self, supplier_id: UUID) -> SupplierModel:
        return get_owned(self._session, SupplierModel, self._owner_id, supplier_id, "Supplier")

    def get(self, expense_id: UUID) -> Expense:
        return get_owned(self._session, ExpenseModel, self._owner_id, expense_id, "Expense").to_dto()

    def list(
        self,
        status: ExpenseStatus | str | None = None,
        today: date | None = None,
    ) -> list[Expense]:
        """Expenses newest first, optionally filtered by classification."""
        rows = self._session.execute(
            select(ExpenseModel)
            .where(ExpenseModel.owner_id == self._owner_id)
            .order_by(ExpenseModel.expense_date.desc(), ExpenseModel.created_at.desc())
        ).scalars()
        expenses = [row.to_dto() for row in rows]
        if status is None:
            return expenses
        wanted = _as_status(status)
        as_of = today or self._clock.today()
        return [e for e in expenses if self.classify(e, as_of) is wanted]

    def toggle_paid(self, expense_id: UUID) -> MutationResult[Expense]:
        try:
            expense = get_owned(self._session, ExpenseModel, self._owner_id, expense_id, "Expense")
            expense.paid = not expense.paid
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        logger.info("expense_paid_toggled", extra={"expense_id": str(expense_id), "paid": expense.paid})
        return MutationResult(record=expense.to_dto(), changes=ChangeSet(expense_ids=(expense.id,)))

    def delete(self, expense_id: UUID) -> ChangeSet:
        try:
            changes = self._delete(expense_id)
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        return changes

    def _delete(self, expense_id: UUID) -> ChangeSet:
        expense = get_owned(self._session, ExpenseModel, self._owner_id, expense_id, "Expense")
        self._session.delete(expense)
        self._session.flush()
        logger.info("expense_deleted", extra={"expense_id": str(expense_id)})
        return ChangeSet(expense_ids=(expense_id,))

    def _mark_paid(self, expense_id: UUID) -> ChangeSet:
        expense = get_owned(self._session, ExpenseModel, self._owner_id, expense_id, "Expense")
        expense.paid = True
        self._session.flush()
        return ChangeSet(expense_ids=(expense_id,))

    # =========================================================================
    # Bulk
    # =========================================================================

    def bulk_mark_paid(self, expense_ids: Iterable[UUID]) -> BulkResult:
        """Mark each expense paid; unknown ids are reported, the rest commit."""
        return run_bulk(
            self._session,
            expense_ids,
            self._mark_paid,
            logger=logger,
            operation="expense_bulk_mark_paid",
        )

    def bulk_delete(self, expense_ids: Iterable[UUID]) -> BulkResult:
        """Delete each expense; unknown ids are reported, the rest commit."""
        return run_bulk(
            self._session,
            expense_ids,
            self._delete,
            logger=logger,
            operation="expense_bulk_delete",
        )

    # =========================================================================
    # Delivery expenses
    # =========================================================================

    def record_delivery_expense(
        self,
        *,
        outsourcing_id: UUID,
        supplier_id: UUID,
        supplier_name: str,
        amount: Decimal,
        currency: str,
        description: str,
        paid: bool,
    ) -> ExpenseModel:
        """
        Stage the payable booked by a delivery.  Does NOT commit.

        The due date is the delivery date plus the configured outsourcing
        payment terms.
        """
        today = self._clock.today()
        expense = ExpenseModel(
            owner_id=self._owner_id,
            category=self._config.outsourcing_expense_category,
            amount=_positive_amount(amount),
            currency=validate_currency(currency, "Expense"),
            expense_date=today,
            due_date=today + timedelta(days=self._config.outsourcing_payment_terms_days),
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            notes=description,
            paid=paid,
            source=ExpenseSource.OUTSOURCING_DELIVERY.value,
            outsourcing_id=outsourcing_id,
        )
        self._session.add(expense)
        self._session.flush()
        logger.info(
            "delivery_expense_staged",
            extra={
                "expense_id": str(expense.id),
                "outsourcing_id": str(outsourcing_id),
                "amount": str(expense.amount),
                "currency": expense.currency,
                "paid": paid,
            },
        )
        return expense
