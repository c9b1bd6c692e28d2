"""
Invoice Service (``pluridesk_modules.invoicing.service``).

Responsibility
--------------
Turns a selection of jobs for one client into a draft invoice and owns the
invoice lifecycle afterwards: status changes, bulk operations and voiding.

Invariants enforced
-------------------
* All selected jobs belong to the given client and share one currency; an
  invoice is never created across clients or currencies.
* ``subtotal == sum(item.amount)`` and ``total == subtotal + tax_amount``;
  generated invoices carry ``tax_amount = 0``.
* Invoice numbers come from a per-owner counter and are never reused.
* Creating the invoice, its line items and flipping every job to
  ``invoiced`` is one transaction.  If any step fails nothing is kept.
* Voiding (or deleting) an invoice returns its jobs to ``finished`` and
  clears their ``invoice_id``; no job is left pointing at a missing invoice.

Failure modes
-------------
* ``ValidationError`` -- empty selection.
* ``NotFoundError`` -- unknown client, job or invoice.
* ``MixedClientSelectionError`` / ``MixedCurrencySelectionError``.
* ``InvoicedJobLockedError`` / ``IllegalTransitionError`` -- a selected job
  is already invoiced or cancelled.
* ``InvoiceGenerationFailedError`` -- the write failed; nothing changed.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.exceptions import (
    IllegalTransitionError,
    InvoiceGenerationFailedError,
    InvoicedJobLockedError,
    MixedClientSelectionError,
    MixedCurrencySelectionError,
    NotFoundError,
    ValidationError,
)
from pluridesk_kernel.logging_config import get_logger
from pluridesk_kernel.services.sequence_service import SequenceService
from pluridesk_modules._helpers import get_owned, run_bulk, unique_ids
from pluridesk_modules._results import BulkResult, ChangeSet, MutationResult
from pluridesk_modules.invoicing.models import (
    Invoice,
    InvoiceGenerationResult,
    InvoiceStatus,
    build_line_item,
    document_totals,
)
from pluridesk_modules.invoicing.orm import InvoiceItemModel, InvoiceModel
from pluridesk_modules.invoicing.workflows import INVOICE_WORKFLOW
from pluridesk_modules.jobs.models import JobStatus
from pluridesk_modules.jobs.orm import JobModel
from pluridesk_modules.jobs.workflows import JOB_WORKFLOW
from pluridesk_modules.parties.orm import ClientModel

logger = get_logger("modules.invoicing.service")


def _as_status(value: InvoiceStatus | str) -> InvoiceStatus:
    try:
        return InvoiceStatus(value)
    except ValueError as exc:
        raise ValidationError("status", f"unknown invoice status {value!r}") from exc


class InvoiceService:
    """
    Invoice generation and lifecycle for one owner.

    Contract
    --------
    * ``generate`` validates the whole selection before writing anything,
      then writes atomically.
    * ``bulk_set_status`` / ``bulk_delete`` commit per invoice and report
      failures per id.
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
        self._sequences = SequenceService(session)

    # =========================================================================
    # Generation
    # =========================================================================

    def generate(
        self,
        job_ids: Iterable[UUID],
        client_id: UUID,
        notes: str | None = None,
    ) -> InvoiceGenerationResult:
        """
        Create one draft invoice covering ``job_ids``, one line per job.

        Each line is ``[job_code] title`` with quantity 1 and the job total
        as rate and amount.  Every job moves to ``invoiced`` and records the
        invoice id.
        """
        selection = unique_ids(job_ids)
        jobs, client = self._validate_selection(selection, client_id)
        currency = jobs[0].currency

        try:
            items = tuple(
                build_line_item(
                    f"[{job.job_code}] {job.title}",
                    Decimal("1"),
                    job.total_amount,
                    job_id=job.id,
                )
                for job in jobs
            )
            tax_amount = Decimal("0")
            subtotal, total = document_totals(items, tax_amount)
            today = self._clock.today()
            terms_days = (
                client.payment_terms_days
                if client.payment_terms_days is not None
                else self._config.default_payment_terms_days
            )

            invoice = InvoiceModel(
                owner_id=self._owner_id,
                client_id=client.id,
                invoice_number=self._next_invoice_number(),
                currency=currency,
                subtotal=subtotal,
                tax_amount=tax_amount,
                total=total,
                status=INVOICE_WORKFLOW.initial_state,
                invoice_date=today,
                due_date=today + timedelta(days=terms_days),
                notes=notes,
            )
            invoice.items = [
                InvoiceItemModel(
                    position=position,
                    description=item.description,
                    quantity=item.quantity,
                    rate=item.rate,
                    amount=item.amount,
                    job_id=item.job_id,
                )
                for position, item in enumerate(items, start=1)
            ]
            self._session.add(invoice)
            self._session.flush()

            for job in jobs:
                job.status = JobStatus.INVOICED.value
                job.invoice_id = invoice.id
                job.held_from_status = None
            self._session.flush()
            self._session.commit()
        except Exception as exc:
            self._session.rollback()
            logger.error(
                "invoice_generation_rolled_back",
                extra={"job_ids": [str(i) for i in selection], "reason": str(exc)},
            )
            raise InvoiceGenerationFailedError([str(i) for i in selection], str(exc)) from exc

        job_id_tuple = tuple(job.id for job in jobs)
        logger.info(
            "invoice_generated",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "client_id": str(client.id),
                "job_count": len(jobs),
                "total": str(invoice.total),
                "currency": currency,
            },
        )
        return InvoiceGenerationResult(
            invoice=invoice.to_dto(job_ids=job_id_tuple),
            changes=ChangeSet(job_ids=job_id_tuple, invoice_ids=(invoice.id,)),
        )

    def _validate_selection(
        self,
        selection: list[UUID],
        client_id: UUID,
    ) -> tuple[list[JobModel], ClientModel]:
        if not selection:
            raise ValidationError("job_ids", "select at least one job")
        client = get_owned(self._session, ClientModel, self._owner_id, client_id, "Client")

        found = {
            job.id: job
            for job in self._session.execute(
                select(JobModel).where(
                    JobModel.owner_id == self._owner_id,
                    JobModel.id.in_(selection),
                )
            ).scalars()
        }
        missing = [job_id for job_id in selection if job_id not in found]
        if missing:
            raise NotFoundError("Job", ", ".join(str(job_id) for job_id in missing))
        jobs = [found[job_id] for job_id in selection]

        foreign = [str(job.id) for job in jobs if job.client_id != client.id]
        if foreign:
            raise MixedClientSelectionError(str(client.id), foreign)

        currencies = sorted({job.currency for job in jobs})
        if len(currencies) > 1:
            raise MixedCurrencySelectionError(currencies)

        for job in jobs:
            if job.status == JobStatus.INVOICED.value:
                raise InvoicedJobLockedError(str(job.id))
            if JOB_WORKFLOW.find_transition(job.status, JobStatus.INVOICED.value) is None:
                raise IllegalTransitionError(
                    "Job", str(job.id), job.status, JobStatus.INVOICED.value,
                    "job cannot be invoiced",
                )
        return jobs, client

    def _next_invoice_number(self) -> str:
        numbering = self._config.numbering
        seq = self._sequences.next_value(self._sequence_name())
        return numbering.format(numbering.invoice_prefix, self._clock.today().year, seq)

    def _sequence_name(self) -> str:
        return SequenceService.owner_sequence(SequenceService.INVOICE, self._owner_id)

    def next_invoice_number(self) -> str:
        """The number the next generated invoice will get.  Reserves nothing."""
        numbering = self._config.numbering
        seq = self._sequences.peek_next(self._sequence_name())
        return numbering.format(numbering.invoice_prefix, self._clock.today().year, seq)

    # =========================================================================
    # Read
    # =========================================================================

    def get(self, invoice_id: UUID) -> Invoice:
        invoice = self._get_model(invoice_id)
        return invoice.to_dto(job_ids=self._job_ids(invoice.id))

    def list(
        self,
        status: InvoiceStatus | str | None = None,
        client_id: UUID | None = None,
    ) -> list[Invoice]:
        query = select(InvoiceModel).where(InvoiceModel.owner_id == self._owner_id)
        if status is not None:
            query = query.where(InvoiceModel.status == _as_status(status).value)
        if client_id is not None:
            query = query.where(InvoiceModel.client_id == client_id)
        rows = self._session.execute(
            query.order_by(InvoiceModel.invoice_date.desc(), InvoiceModel.invoice_number.desc())
        ).scalars()
        return [row.to_dto(job_ids=self._job_ids(row.id)) for row in rows]

    def _job_ids(self, invoice_id: UUID) -> tuple[UUID, ...]:
        return tuple(
            self._session.execute(
                select(JobModel.id)
                .where(JobModel.invoice_id == invoice_id)
                .order_by(JobModel.job_code)
            ).scalars()
        )

    def _get_model(self, invoice_id: UUID) -> InvoiceModel:
        return get_owned(self._session, InvoiceModel, self._owner_id, invoice_id, "Invoice")

    # =========================================================================
    # Status
    # =========================================================================

    def set_status(self, invoice_id: UUID, status: InvoiceStatus | str) -> MutationResult[Invoice]:
        """
        Move an invoice along ``INVOICE_WORKFLOW``.  Jobs stay ``invoiced``.

        Raises:
            IllegalTransitionError: ``status`` is not reachable.
        """
        target = _as_status(status)
        try:
            changes = self._set_status(invoice_id, target)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return MutationResult(record=self.get(invoice_id), changes=changes)

    def _set_status(self, invoice_id: UUID, target: InvoiceStatus) -> ChangeSet:
        invoice = self._get_model(invoice_id)
        current = invoice.status
        if current == target.value:
            return ChangeSet()
        if INVOICE_WORKFLOW.find_transition(current, target.value) is None:
            raise IllegalTransitionError("Invoice", str(invoice.id), current, target.value)
        invoice.status = target.value
        self._session.flush()
        logger.info(
            "invoice_status_changed",
            extra={
                "invoice_id": str(invoice.id),
                "from_status": current,
                "to_status": target.value,
            },
        )
        return ChangeSet(invoice_ids=(invoice.id,))

    def bulk_set_status(self, invoice_ids: Iterable[UUID], status: InvoiceStatus | str) -> BulkResult:
        """Change each invoice's status independently; failures are reported per id."""
        target = _as_status(status)
        return run_bulk(
            self._session,
            invoice_ids,
            lambda invoice_id: self._set_status(invoice_id, target),
            logger=logger,
            operation="invoice_bulk_set_status",
        )

    # =========================================================================
    # Void / delete
    # =========================================================================

    def void(self, invoice_id: UUID) -> ChangeSet:
        """
        Delete an invoice and release its jobs.

        Every linked job returns to ``finished`` with ``invoice_id`` cleared,
        in the same transaction as the delete.
        """
        try:
            changes = self._void(invoice_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return changes

    def _void(self, invoice_id: UUID) -> ChangeSet:
        invoice = self._get_model(invoice_id)
        jobs = self._session.execute(
            select(JobModel).where(JobModel.invoice_id == invoice.id)
        ).scalars().all()
        for job in jobs:
            job.status = JobStatus.FINISHED.value
            job.invoice_id = None
        self._session.flush()
        self._session.delete(invoice)
        self._session.flush()
        logger.info(
            "invoice_voided",
            extra={
                "invoice_id": str(invoice_id),
                "invoice_number": invoice.invoice_number,
                "released_jobs": len(jobs),
            },
        )
        return ChangeSet(job_ids=tuple(job.id for job in jobs), invoice_ids=(invoice_id,))

    def bulk_delete(self, invoice_ids: Iterable[UUID]) -> BulkResult:
        """Void each invoice independently; failures are reported per id."""
        return run_bulk(
            self._session,
            invoice_ids,
            self._void,
            logger=logger,
            operation="invoice_bulk_delete",
        )
