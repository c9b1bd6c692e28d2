"""
Job Service (``pluridesk_modules.jobs.service``).

Responsibility
--------------
The job state machine: creates jobs with a system-generated code, derives
their billable total through the pricing engine, applies status changes
declared in ``JOB_WORKFLOW``, and cascades a cancellation to the job's
open outsourcing records.

Invariants enforced
-------------------
* Unit-priced jobs always store ``total_amount == quantity * rate``; the
  total is recomputed whenever a pricing field changes.
* ``invoiced`` is entered only through ``InvoiceService.generate``; a
  direct request raises ``IllegalTransitionError``.
* Financial fields of an invoiced job never change here
  (``InvoicedJobLockedError``).
* A held job resumes only the status it was held from.
* Entering ``cancelled`` cancels every pending, assigned or in-progress
  outsourcing record of the job and recomputes ``has_outsourcing``.
* Each public method owns its transaction boundary unless constructed
  with ``auto_commit=False``; bulk methods commit per item.

Failure modes
-------------
* ``NotFoundError`` -- unknown job or client, or another owner's.
* ``ValidationError`` / ``InvalidPricingInputError`` -- malformed input.
* ``IllegalTransitionError`` / ``InvoicedJobLockedError`` -- rule broken.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_engines.pricing import PricingType, compute_total, unit_for
from pluridesk_kernel.db.types import validate_currency
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.exceptions import (
    IllegalTransitionError,
    InvoicedJobLockedError,
    ValidationError,
)
from pluridesk_kernel.logging_config import get_logger
from pluridesk_kernel.services.sequence_service import SequenceService
from pluridesk_modules._helpers import (
    check_fields,
    commit_or_flush,
    get_owned,
    refresh_has_outsourcing,
    rollback_if_owner,
    run_bulk,
)
from pluridesk_modules._results import BulkResult, ChangeSet, MutationResult
from pluridesk_modules.jobs.models import FINANCIAL_FIELDS, Job, JobStatus, JobTransitionResult
from pluridesk_modules.jobs.orm import JobModel
from pluridesk_modules.jobs.workflows import JOB_WORKFLOW
from pluridesk_modules.outsourcing.models import OPEN_STATUSES, OutsourcingStatus
from pluridesk_modules.outsourcing.orm import OutsourcingModel
from pluridesk_modules.parties.orm import ClientModel

logger = get_logger("modules.jobs.service")

_EDITABLE_FIELDS = (
    "title",
    "service_type",
    "notes",
    "start_date",
    "due_date",
    *FINANCIAL_FIELDS,
)

_PRICING_FIELDS = frozenset({"pricing_type", "quantity", "rate", "total_amount", "currency"})


def _as_pricing_type(value: PricingType | str) -> PricingType:
    try:
        return PricingType(value)
    except ValueError as exc:
        raise ValidationError("pricing_type", f"unknown pricing type {value!r}") from exc


def _as_status(value: JobStatus | str) -> JobStatus:
    try:
        return JobStatus(value)
    except ValueError as exc:
        raise ValidationError("status", f"unknown job status {value!r}") from exc


def _normalize(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field == "pricing_type":
        return _as_pricing_type(value).value
    if field in ("quantity", "rate", "total_amount"):
        return Decimal(str(value))
    if field == "currency":
        return str(value).strip().upper()
    return value


def _check_dates(start_date: date | None, due_date: date | None) -> None:
    if start_date is not None and due_date is not None and due_date < start_date:
        raise ValidationError("due_date", "cannot be before start_date")


class JobService:
    """
    Job lifecycle for one owner.

    Contract
    --------
    * ``transition`` applies one declared workflow transition and returns a
      ``JobTransitionResult`` with the change set.
    * ``update`` edits fields; it never changes status.

    Non-goals
    ---------
    * Does NOT set jobs to ``invoiced`` -- ``InvoiceService`` does.
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
        self._sequences = SequenceService(session)

    # =========================================================================
    # Create
    # =========================================================================

    def create(
        self,
        client_id: UUID,
        title: str,
        pricing_type: PricingType | str,
        *,
        quantity: Decimal | int | str | None = None,
        rate: Decimal | int | str | None = None,
        total_amount: Decimal | int | str | None = None,
        currency: str | None = None,
        service_type: str | None = None,
        start_date: date | None = None,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> MutationResult[Job]:
        """
        Create a job in ``created`` status.

        The currency defaults to the client's default currency.  For unit
        pricing ``total_amount`` may be omitted; if given it must equal
        ``quantity * rate``.
        """
        try:
            job = self.add_job(
                client_id,
                title,
                pricing_type,
                quantity=quantity,
                rate=rate,
                total_amount=total_amount,
                currency=currency,
                service_type=service_type,
                start_date=start_date,
                due_date=due_date,
                notes=notes,
            )
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        return MutationResult(record=job.to_dto(), changes=ChangeSet(job_ids=(job.id,)))

    def add_job(
        self,
        client_id: UUID,
        title: str,
        pricing_type: PricingType | str,
        *,
        quantity: Decimal | int | str | None = None,
        rate: Decimal | int | str | None = None,
        total_amount: Decimal | int | str | None = None,
        currency: str | None = None,
        service_type: str | None = None,
        start_date: date | None = None,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> JobModel:
        """Validate and stage a new job without committing.  Caller owns the boundary."""
        if title is None or not title.strip():
            raise ValidationError("title", "is required")
        client = get_owned(self._session, ClientModel, self._owner_id, client_id, "Client")
        ptype = _as_pricing_type(pricing_type)
        job_currency = validate_currency(
            currency if currency is not None else client.default_currency, "Job"
        )
        _check_dates(start_date, due_date)

        total = compute_total(
            pricing_type=ptype,
            quantity=quantity,
            rate=rate,
            flat_amount=None if ptype.is_unit_priced else total_amount,
            currency=job_currency,
        )
        if ptype.is_unit_priced and total_amount is not None:
            if Decimal(str(total_amount)) != total.amount:
                raise ValidationError(
                    "total_amount", "must equal quantity * rate for unit pricing"
                )

        job = JobModel(
            owner_id=self._owner_id,
            client_id=client.id,
            title=title.strip(),
            job_code=self._next_job_code(),
            service_type=service_type,
            pricing_type=ptype.value,
            quantity=_normalize("quantity", quantity),
            rate=_normalize("rate", rate),
            unit=unit_for(ptype),
            currency=job_currency,
            total_amount=total.amount,
            status=JOB_WORKFLOW.initial_state,
            start_date=start_date,
            due_date=due_date,
            has_outsourcing=False,
            notes=notes,
        )
        self._session.add(job)
        self._session.flush()
        logger.info(
            "job_created",
            extra={
                "job_id": str(job.id),
                "job_code": job.job_code,
                "client_id": str(client.id),
                "pricing_type": ptype.value,
                "total_amount": str(total.amount),
                "currency": job_currency,
            },
        )
        return job

    def _next_job_code(self) -> str:
        numbering = self._config.numbering
        seq = self._sequences.next_value(
            SequenceService.owner_sequence(SequenceService.JOB, self._owner_id)
        )
        return numbering.format(numbering.job_prefix, self._clock.today().year, seq)

    # =========================================================================
    # Read
    # =========================================================================

    def get(self, job_id: UUID) -> Job:
        return get_owned(self._session, JobModel, self._owner_id, job_id, "Job").to_dto()

    def list(
        self,
        status: JobStatus | str | None = None,
        client_id: UUID | None = None,
    ) -> list[Job]:
        query = select(JobModel).where(JobModel.owner_id == self._owner_id)
        if status is not None:
            query = query.where(JobModel.status == _as_status(status).value)
        if client_id is not None:
            query = query.where(JobModel.client_id == client_id)
        rows = self._session.execute(query.order_by(JobModel.job_code)).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Update
    # =========================================================================

    def update(self, job_id: UUID, **changes: Any) -> MutationResult[Job]:
        """
        Edit job fields.  Status is changed with ``transition`` only.

        Raises:
            InvoicedJobLockedError: A financial field of an invoiced job differs.
            ValidationError: Unknown field, or ``invoice_id`` set directly.
        """
        check_fields(changes, _EDITABLE_FIELDS, "job")
        try:
            job = get_owned(self._session, JobModel, self._owner_id, job_id, "Job")

            changed_financial = [
                f for f in FINANCIAL_FIELDS
                if f in changes
                and _normalize(f, changes[f]) != _normalize(f, getattr(job, f))
            ]
            if job.status == JobStatus.INVOICED.value and changed_financial:
                raise InvoicedJobLockedError(str(job.id), changed_financial)
            if "invoice_id" in changed_financial:
                raise ValidationError("invoice_id", "is set only by invoice generation")

            if "title" in changes and (changes["title"] is None or not changes["title"].strip()):
                raise ValidationError("title", "is required")
            if "client_id" in changed_financial:
                get_owned(self._session, ClientModel, self._owner_id, changes["client_id"], "Client")
                job.client_id = changes["client_id"]
            _check_dates(
                changes.get("start_date", job.start_date),
                changes.get("due_date", job.due_date),
            )

            if _PRICING_FIELDS & set(changed_financial):
                self._reprice(job, changes)

            for key in ("title", "service_type", "notes", "start_date", "due_date"):
                if key in changes:
                    setattr(job, key, changes[key].strip() if key == "title" else changes[key])

            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise

        logger.info(
            "job_updated",
            extra={
                "job_id": str(job_id),
                "fields": sorted(changes),
                "total_amount": str(job.total_amount),
            },
        )
        return MutationResult(record=job.to_dto(), changes=ChangeSet(job_ids=(job.id,)))

    def _reprice(self, job: JobModel, changes: dict[str, Any]) -> None:
        ptype = _as_pricing_type(changes.get("pricing_type", job.pricing_type))
        currency = validate_currency(changes.get("currency", job.currency), "Job")
        quantity = changes.get("quantity", job.quantity)
        rate = changes.get("rate", job.rate)

        if ptype.is_unit_priced:
            total = compute_total(
                pricing_type=ptype, quantity=quantity, rate=rate,
                flat_amount=None, currency=currency,
            )
            requested = changes.get("total_amount")
            if requested is not None and Decimal(str(requested)) != total.amount:
                raise ValidationError(
                    "total_amount", "must equal quantity * rate for unit pricing"
                )
        else:
            total = compute_total(
                pricing_type=ptype, quantity=quantity, rate=rate,
                flat_amount=changes.get("total_amount", job.total_amount),
                currency=currency,
            )

        job.pricing_type = ptype.value
        job.unit = unit_for(ptype)
        job.quantity = _normalize("quantity", quantity)
        job.rate = _normalize("rate", rate)
        job.currency = currency
        job.total_amount = total.amount

    # =========================================================================
    # Status transitions
    # =========================================================================

    def transition(self, job_id: UUID, target: JobStatus | str) -> JobTransitionResult:
        """
        Move a job to ``target`` along a declared, non-internal transition.

        Moving a job to its current status is a no-op.  ``invoiced`` and
        ``cancelled`` are terminal: an invoiced job leaves ``invoiced`` only
        when its invoice is voided.

        Raises:
            IllegalTransitionError: ``target`` is not reachable, or the job
                is in a terminal status.
        """
        try:
            result = self._transition(job_id, _as_status(target))
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        return result

    def _transition(self, job_id: UUID, target: JobStatus) -> JobTransitionResult:
        job = get_owned(self._session, JobModel, self._owner_id, job_id, "Job")
        current = JobStatus(job.status)

        if current is target:
            return JobTransitionResult(
                job=job.to_dto(), previous_status=current, changes=ChangeSet()
            )
        if JOB_WORKFLOW.is_terminal(current.value):
            raise IllegalTransitionError(
                "Job", str(job.id), current.value, target.value, "terminal status"
            )

        transition = JOB_WORKFLOW.find_transition(current.value, target.value)
        if transition is None:
            raise IllegalTransitionError("Job", str(job.id), current.value, target.value)
        if transition.internal:
            raise IllegalTransitionError(
                "Job", str(job.id), current.value, target.value,
                "jobs are invoiced through invoice generation",
            )
        if current is JobStatus.ON_HOLD and target.value != job.held_from_status:
            raise IllegalTransitionError(
                "Job", str(job.id), current.value, target.value,
                f"held job resumes only to {job.held_from_status}",
            )

        if target is JobStatus.ON_HOLD:
            job.held_from_status = current.value
        elif current is JobStatus.ON_HOLD:
            job.held_from_status = None
        job.status = target.value

        cancelled_ids: list[UUID] = []
        if target is JobStatus.CANCELLED:
            job.held_from_status = None
            cancelled_ids = self._cancel_open_outsourcing(job)

        self._session.flush()
        logger.info(
            "job_transitioned",
            extra={
                "job_id": str(job.id),
                "from_status": current.value,
                "to_status": target.value,
                "action": transition.action,
                "cancelled_outsourcing": len(cancelled_ids),
            },
        )
        return JobTransitionResult(
            job=job.to_dto(),
            previous_status=current,
            cancelled_outsourcing_ids=tuple(cancelled_ids),
            changes=ChangeSet(job_ids=(job.id,), outsourcing_ids=tuple(cancelled_ids)),
        )

    def _cancel_open_outsourcing(self, job: JobModel) -> list[UUID]:
        records = self._session.execute(
            select(OutsourcingModel).where(
                OutsourcingModel.owner_id == self._owner_id,
                OutsourcingModel.job_id == job.id,
                OutsourcingModel.status.in_([s.value for s in OPEN_STATUSES]),
            )
        ).scalars().all()
        for record in records:
            record.status = OutsourcingStatus.CANCELLED.value
        refresh_has_outsourcing(self._session, job)
        return [record.id for record in records]

    def bulk_set_status(
        self,
        job_ids: Iterable[UUID],
        status: JobStatus | str,
    ) -> BulkResult:
        """Transition each job independently; failures are reported per id."""
        target = _as_status(status)
        return run_bulk(
            self._session,
            job_ids,
            lambda job_id: self._transition(job_id, target).changes,
            logger=logger,
            operation="job_bulk_set_status",
        )

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, job_id: UUID) -> ChangeSet:
        """
        Delete a job and its outsourcing records.

        Expenses already booked from those records are kept.

        Raises:
            InvoicedJobLockedError: The job is invoiced.
        """
        try:
            changes = self._delete(job_id)
            commit_or_flush(self._session, self._auto_commit)
        except Exception:
            rollback_if_owner(self._session, self._auto_commit)
            raise
        return changes

    def _delete(self, job_id: UUID) -> ChangeSet:
        job = get_owned(self._session, JobModel, self._owner_id, job_id, "Job")
        if job.status == JobStatus.INVOICED.value:
            raise InvoicedJobLockedError(str(job.id))
        outsourcing_ids = tuple(record.id for record in job.outsourcing)
        self._session.delete(job)
        self._session.flush()
        logger.info(
            "job_deleted",
            extra={"job_id": str(job_id), "outsourcing_deleted": len(outsourcing_ids)},
        )
        return ChangeSet(job_ids=(job_id,), outsourcing_ids=outsourcing_ids)

    def bulk_delete(self, job_ids: Iterable[UUID]) -> BulkResult:
        """Delete each job independently; invoiced jobs are reported as failures."""
        return run_bulk(
            self._session,
            job_ids,
            self._delete,
            logger=logger,
            operation="job_bulk_delete",
        )
