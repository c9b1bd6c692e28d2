"""
Outsourcing Service (``pluridesk_modules.outsourcing.service``).

Responsibility
--------------
Manages subcontracts of jobs to suppliers and bridges them to the expense
ledger.  Marking a record delivered is a two-phase protocol:
``set_status(..., DELIVERED)`` returns a ``PendingExpenseConfirmation``
describing the payable it would book and writes nothing;
``confirm_delivery(token)`` then writes the status and the expense in one
transaction.

Invariants enforced
-------------------
* Records are created only for jobs that are neither cancelled nor
  invoiced.
* ``supplier_total == supplier_rate * quantity`` whenever both are set.
* The supplier currency comes from the terms, then the matching rate-card
  entry, then the supplier's default currency.  With none of these the
  record is rejected; there is no fallback currency.
* Any status other than ``delivered`` is applied directly.
* The parent job's ``has_outsourcing`` is recomputed on every create and
  delete, and on every move into or out of ``cancelled``.
* A record books at most one delivery payable, and only for a positive
  supplier total.
* Delivery confirmation is all-or-nothing: if the expense cannot be
  written, the record keeps its previous status and
  ``ExpenseCreationFailedError`` is raised.
* ``toggle_paid`` and ``delete`` never touch a booked expense.
"""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_kernel.db.types import validate_currency
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.domain.values import Money
from pluridesk_kernel.exceptions import (
    ExpenseCreationFailedError,
    IllegalTransitionError,
    MissingCurrencyError,
    StaleConfirmationError,
    ValidationError,
)
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules._helpers import (
    check_fields,
    get_owned,
    refresh_has_outsourcing,
)
from pluridesk_modules._results import ChangeSet, MutationResult
from pluridesk_modules.expense.service import ExpenseService
from pluridesk_modules.jobs.models import JobStatus
from pluridesk_modules.jobs.orm import JobModel
from pluridesk_modules.outsourcing.models import (
    DeliveryResult,
    OutsourcingRecord,
    OutsourcingStatus,
    OutsourcingTerms,
    PendingExpenseConfirmation,
)
from pluridesk_modules.outsourcing.orm import OutsourcingModel
from pluridesk_modules.outsourcing.workflows import OUTSOURCING_WORKFLOW
from pluridesk_modules.parties.models import BillingUnit
from pluridesk_modules.parties.orm import SupplierModel

logger = get_logger("modules.outsourcing.service")

_EDITABLE_FIELDS = (
    "supplier_id",
    "service_type",
    "quantity",
    "unit",
    "supplier_rate",
    "supplier_currency",
    "supplier_total",
    "start_date",
    "due_date",
    "notes",
)

_CLOSED_JOB_STATUSES = (JobStatus.CANCELLED.value, JobStatus.INVOICED.value)


def _decimal(field: str, value: Any, *, positive: bool = True) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, float):
        raise ValidationError(field, "float amounts are not accepted")
    amount = Decimal(str(value))
    if positive and amount <= 0:
        raise ValidationError(field, "must be positive")
    if amount < 0:
        raise ValidationError(field, "cannot be negative")
    return amount


def _unit(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return BillingUnit(value).value
    except ValueError as exc:
        raise ValidationError("unit", f"unknown billing unit {value!r}") from exc


def _as_status(value: OutsourcingStatus | str) -> OutsourcingStatus:
    try:
        return OutsourcingStatus(value)
    except ValueError as exc:
        raise ValidationError("status", f"unknown outsourcing status {value!r}") from exc


def _derive_total(
    quantity: Decimal | None,
    rate: Decimal | None,
    explicit_total: Decimal | None,
) -> Decimal | None:
    if quantity is not None and rate is not None:
        product = quantity * rate
        if explicit_total is not None and explicit_total != product:
            raise ValidationError(
                "supplier_total", "must equal supplier_rate * quantity"
            )
        return product
    return explicit_total


class OutsourcingService:
    """
    Subcontract lifecycle for one owner.

    Contract
    --------
    * ``set_status`` applies every transition except ``delivered``
      directly; for ``delivered`` it returns a confirmation token.
    * ``confirm_delivery`` is the only writer of ``delivered``.
    """

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._session = session
        self._owner_id = owner_id
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._ledger = ExpenseService(
            session, owner_id, clock=self._clock, config=self._config, auto_commit=False
        )

    # =========================================================================
    # Create / update
    # =========================================================================

    def create(
        self,
        job_id: UUID,
        supplier_id: UUID,
        terms: OutsourcingTerms | None = None,
    ) -> MutationResult[OutsourcingRecord]:
        """
        Subcontract a job to a supplier, status ``pending``.

        Service type, unit, quantity and due date default to the job's; a
        rate-card entry matching the service type (ignoring case) supplies
        rate, unit and currency.  Anything set in ``terms`` wins.

        Raises:
            IllegalTransitionError: The job is cancelled or invoiced.
            MissingCurrencyError: No currency from terms, rate card or supplier.
        """
        terms = terms or OutsourcingTerms()
        try:
            job = get_owned(self._session, JobModel, self._owner_id, job_id, "Job")
            if job.status in _CLOSED_JOB_STATUSES:
                raise IllegalTransitionError(
                    "Job", str(job.id), job.status, "outsourced",
                    "a cancelled or invoiced job cannot be outsourced",
                )
            supplier = get_owned(
                self._session, SupplierModel, self._owner_id, supplier_id, "Supplier"
            )

            service_type = terms.service_type if terms.service_type is not None else job.service_type
            card = supplier.to_dto().rate_for(service_type)

            quantity = _decimal(
                "quantity", terms.quantity if terms.quantity is not None else job.quantity
            )
            rate = _decimal(
                "supplier_rate",
                terms.supplier_rate if terms.supplier_rate is not None
                else (card.rate if card else None),
            )
            unit = _unit(
                terms.unit if terms.unit is not None
                else (card.unit if card else job.unit)
            )
            currency = (
                terms.supplier_currency
                or (card.currency if card else None)
                or supplier.default_currency
            )
            if currency is None:
                raise MissingCurrencyError("OutsourcingRecord")

            record = OutsourcingModel(
                owner_id=self._owner_id,
                job_id=job.id,
                supplier_id=supplier.id,
                service_type=service_type,
                quantity=quantity,
                unit=unit,
                supplier_rate=rate,
                supplier_currency=validate_currency(currency, "OutsourcingRecord"),
                supplier_total=_derive_total(
                    quantity, rate, _decimal("supplier_total", terms.supplier_total, positive=False)
                ),
                status=OUTSOURCING_WORKFLOW.initial_state,
                paid=False,
                start_date=terms.start_date,
                due_date=terms.due_date if terms.due_date is not None else job.due_date,
                notes=terms.notes,
            )
            job.outsourcing.append(record)
            self._session.flush()
            refresh_has_outsourcing(self._session, job)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "outsourcing_created",
            extra={
                "outsourcing_id": str(record.id),
                "job_id": str(job_id),
                "supplier_id": str(supplier_id),
                "rate_card_applied": card is not None,
                "supplier_total": str(record.supplier_total) if record.supplier_total is not None else None,
                "supplier_currency": record.supplier_currency,
            },
        )
        return MutationResult(
            record=record.to_dto(),
            changes=ChangeSet(job_ids=(job.id,), outsourcing_ids=(record.id,)),
        )

    def update(self, record_id: UUID, **changes: Any) -> MutationResult[OutsourcingRecord]:
        """
        Edit a record's terms; the supplier total is recomputed.

        Status and paid flag change only through ``set_status`` and
        ``toggle_paid``.
        """
        check_fields(changes, _EDITABLE_FIELDS, "outsourcing")
        try:
            record = self._get_model(record_id)
            if "supplier_id" in changes:
                get_owned(
                    self._session, SupplierModel, self._owner_id, changes["supplier_id"], "Supplier"
                )
            if "supplier_currency" in changes:
                if changes["supplier_currency"] is None:
                    raise MissingCurrencyError("OutsourcingRecord", str(record_id))
                changes["supplier_currency"] = validate_currency(
                    changes["supplier_currency"], "OutsourcingRecord"
                )
            if "quantity" in changes:
                changes["quantity"] = _decimal("quantity", changes["quantity"])
            if "supplier_rate" in changes:
                changes["supplier_rate"] = _decimal("supplier_rate", changes["supplier_rate"])
            if "unit" in changes:
                changes["unit"] = _unit(changes["unit"])
            if record.purchase_order_id is not None:
                for key in ("supplier_id", "supplier_currency"):
                    if key in changes and changes[key] != getattr(record, key):
                        raise ValidationError(key, "cannot change while on a purchase order")

            explicit_total = (
                _decimal("supplier_total", changes["supplier_total"], positive=False)
                if "supplier_total" in changes
                else None
            )
            for key, value in changes.items():
                if key != "supplier_total":
                    setattr(record, key, value)

            if record.quantity is not None and record.supplier_rate is not None:
                record.supplier_total = _derive_total(
                    record.quantity, record.supplier_rate, explicit_total
                )
            elif "supplier_total" in changes:
                record.supplier_total = explicit_total

            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "outsourcing_updated",
            extra={"outsourcing_id": str(record_id), "fields": sorted(changes)},
        )
        return MutationResult(
            record=record.to_dto(), changes=ChangeSet(outsourcing_ids=(record.id,))
        )

    # =========================================================================
    # Status
    # =========================================================================

    def set_status(
        self,
        record_id: UUID,
        status: OutsourcingStatus | str,
        mark_paid: bool = False,
    ) -> MutationResult[OutsourcingRecord] | PendingExpenseConfirmation:
        """
        Change a record's status.

        Any status other than ``delivered`` is applied directly, from any
        current status.  For ``delivered`` nothing is written: the returned
        ``PendingExpenseConfirmation`` must be passed to
        ``confirm_delivery``.  Setting the current status is a no-op.

        Raises:
            ValidationError: ``status`` is not an outsourcing status.
        """
        target = _as_status(status)
        if target is OutsourcingStatus.DELIVERED:
            record = self._get_model(record_id)
            if record.status == target.value:
                return MutationResult(record=record.to_dto(), changes=ChangeSet())
            return self.request_delivery(record_id, mark_paid=mark_paid)

        try:
            record = self._get_model(record_id)
            current = OutsourcingStatus(record.status)
            if current is target:
                return MutationResult(record=record.to_dto(), changes=ChangeSet())

            record.status = target.value
            changes = ChangeSet(outsourcing_ids=(record.id,))
            if OutsourcingStatus.CANCELLED in (current, target):
                self._session.flush()
                refresh_has_outsourcing(self._session, record.job)
                changes = changes.merge(ChangeSet(job_ids=(record.job_id,)))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "outsourcing_status_changed",
            extra={
                "outsourcing_id": str(record_id),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return MutationResult(record=record.to_dto(), changes=changes)

    def request_delivery(self, record_id: UUID, mark_paid: bool = False) -> PendingExpenseConfirmation:
        """
        Describe the payable that delivering ``record_id`` would book.

        Raises:
            IllegalTransitionError: The record is delivered, or its delivery
                payable was already booked.
            ValidationError: The record has no positive supplier total to book.
        """
        record = self._get_model(record_id)
        current = OutsourcingStatus(record.status)
        if current is OutsourcingStatus.DELIVERED or record.expense_id is not None:
            raise IllegalTransitionError(
                "OutsourcingRecord", str(record.id), current.value,
                OutsourcingStatus.DELIVERED.value, "delivery expense already booked",
            )
        if record.supplier_total is None:
            raise ValidationError(
                "supplier_total", "is required before a delivery can book an expense"
            )
        if record.supplier_total <= 0:
            raise ValidationError(
                "supplier_total", "must be positive before a delivery can book an expense"
            )

        supplier = self._session.get(SupplierModel, record.supplier_id)
        job = record.job
        description = " - ".join(
            part for part in (f"[{job.job_code}] {job.title}", record.service_type) if part
        )
        token = PendingExpenseConfirmation(
            record_id=record.id,
            job_id=record.job_id,
            supplier_id=record.supplier_id,
            supplier_name=supplier.name if supplier is not None else "",
            amount=Money.of(record.supplier_total, record.supplier_currency),
            description=description,
            expected_status=current,
            mark_paid=mark_paid,
        )
        logger.info(
            "delivery_confirmation_requested",
            extra={
                "outsourcing_id": str(record.id),
                "amount": str(token.amount.amount),
                "currency": token.amount.currency.code,
            },
        )
        return token

    def confirm_delivery(
        self,
        token: PendingExpenseConfirmation,
        mark_paid: bool | None = None,
    ) -> DeliveryResult:
        """
        Mark the record delivered and book its payable, atomically.

        ``mark_paid`` overrides the flag carried by the token.

        Raises:
            StaleConfirmationError: Status or amount changed since the token was issued.
            ExpenseCreationFailedError: The write failed; nothing was changed.
        """
        paid = token.mark_paid if mark_paid is None else mark_paid
        record = self._get_model(token.record_id)
        self._check_fresh(record, token)

        try:
            expense = self._ledger.record_delivery_expense(
                outsourcing_id=record.id,
                supplier_id=token.supplier_id,
                supplier_name=token.supplier_name,
                amount=token.amount.amount,
                currency=token.amount.currency.code,
                description=token.description,
                paid=paid,
            )
            record.status = OutsourcingStatus.DELIVERED.value
            record.paid = paid
            record.delivery_date = self._clock.today()
            record.expense_id = expense.id
            self._session.commit()
        except Exception as exc:
            self._session.rollback()
            logger.error(
                "delivery_confirmation_rolled_back",
                extra={"outsourcing_id": str(token.record_id), "reason": str(exc)},
            )
            raise ExpenseCreationFailedError(str(token.record_id), str(exc)) from exc

        logger.info(
            "delivery_confirmed",
            extra={
                "outsourcing_id": str(record.id),
                "expense_id": str(expense.id),
                "amount": str(expense.amount),
                "currency": expense.currency,
                "paid": paid,
            },
        )
        return DeliveryResult(
            record=record.to_dto(),
            expense=expense.to_dto(),
            changes=ChangeSet(
                job_ids=(record.job_id,),
                outsourcing_ids=(record.id,),
                expense_ids=(expense.id,),
            ),
        )

    def _check_fresh(self, record: OutsourcingModel, token: PendingExpenseConfirmation) -> None:
        if record.status != token.expected_status.value:
            raise StaleConfirmationError(
                str(record.id), token.expected_status.value, record.status
            )
        current_amount = (
            Money.of(record.supplier_total, record.supplier_currency)
            if record.supplier_total is not None
            else None
        )
        if current_amount is None or current_amount.currency != token.amount.currency or (
            current_amount.amount != token.amount.amount
        ):
            raise StaleConfirmationError(
                str(record.id),
                f"{record.status} {token.amount}",
                f"{record.status} {current_amount}",
            )

    # =========================================================================
    # Paid flag / delete / read
    # =========================================================================

    def toggle_paid(self, record_id: UUID) -> MutationResult[OutsourcingRecord]:
        """Flip ``paid`` regardless of status.  The linked expense is not touched."""
        try:
            record = self._get_model(record_id)
            record.paid = not record.paid
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "outsourcing_paid_toggled",
            extra={"outsourcing_id": str(record_id), "paid": record.paid},
        )
        return MutationResult(record=record.to_dto(), changes=ChangeSet(outsourcing_ids=(record.id,)))

    def delete(self, record_id: UUID) -> ChangeSet:
        """Remove a record and recompute the job's flag.  A booked expense stays."""
        try:
            record = self._get_model(record_id)
            job = record.job
            job.outsourcing.remove(record)
            self._session.flush()
            refresh_has_outsourcing(self._session, job)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "outsourcing_deleted",
            extra={"outsourcing_id": str(record_id), "job_id": str(job.id)},
        )
        return ChangeSet(job_ids=(job.id,), outsourcing_ids=(record_id,))

    def get(self, record_id: UUID) -> OutsourcingRecord:
        return self._get_model(record_id).to_dto()

    def list(
        self,
        job_id: UUID | None = None,
        supplier_id: UUID | None = None,
        status: OutsourcingStatus | str | None = None,
    ) -> list[OutsourcingRecord]:
        query = select(OutsourcingModel).where(OutsourcingModel.owner_id == self._owner_id)
        if job_id is not None:
            query = query.where(OutsourcingModel.job_id == job_id)
        if supplier_id is not None:
            query = query.where(OutsourcingModel.supplier_id == supplier_id)
        if status is not None:
            query = query.where(OutsourcingModel.status == _as_status(status).value)
        rows = self._session.execute(query.order_by(OutsourcingModel.created_at)).scalars()
        return [row.to_dto() for row in rows]

    def _get_model(self, record_id: UUID) -> OutsourcingModel:
        return get_owned(
            self._session, OutsourcingModel, self._owner_id, record_id, "OutsourcingRecord"
        )


def terms_from_dict(data: dict[str, Any]) -> OutsourcingTerms:
    """Build ``OutsourcingTerms`` from a payload, rejecting unknown keys."""
    allowed = set(asdict(OutsourcingTerms()))
    check_fields(data, allowed, "outsourcing terms")
    return OutsourcingTerms(**data)
