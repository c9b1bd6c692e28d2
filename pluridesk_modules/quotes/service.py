"""
Quote Service (``pluridesk_modules.quotes.service``).

Responsibility
--------------
Prices offers to clients from validated line items and converts an
accepted offer into a flat-fee job.

Invariants enforced
-------------------
* Every line satisfies ``amount == quantity * rate``;
  ``total == subtotal + tax_amount`` with a non-negative stored tax amount.
* Conversion creates exactly one job, in the quote's currency, for the
  quote total, and marks the quote ``accepted`` in the same transaction.
* An accepted quote is never converted twice; a rejected quote is never
  converted.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_engines.pricing import PricingType
from pluridesk_kernel.db.types import validate_currency
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.exceptions import IllegalTransitionError, ValidationError
from pluridesk_kernel.logging_config import get_logger
from pluridesk_kernel.services.sequence_service import SequenceService
from pluridesk_modules._helpers import get_owned
from pluridesk_modules._results import ChangeSet, MutationResult
from pluridesk_modules.invoicing.models import LineItemInput, build_line_item, document_totals
from pluridesk_modules.jobs.service import JobService
from pluridesk_modules.parties.orm import ClientModel
from pluridesk_modules.quotes.models import Quote, QuoteConversionResult, QuoteStatus
from pluridesk_modules.quotes.orm import QuoteItemModel, QuoteModel
from pluridesk_modules.quotes.workflows import QUOTE_WORKFLOW

logger = get_logger("modules.quotes.service")


def _as_status(value: QuoteStatus | str) -> QuoteStatus:
    try:
        return QuoteStatus(value)
    except ValueError as exc:
        raise ValidationError("status", f"unknown quote status {value!r}") from exc


def _tax(value: Decimal | int | str | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, float):
        raise ValidationError("tax_amount", "float amounts are not accepted")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError("tax_amount", f"not a number: {value!r}") from exc
    if amount < 0:
        raise ValidationError("tax_amount", "cannot be negative")
    return amount


class QuoteService:
    """Quotes for one owner."""

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

    def create(
        self,
        client_id: UUID,
        items: Sequence[LineItemInput],
        *,
        currency: str | None = None,
        tax_amount: Decimal | int | str | None = None,
        valid_until: date | None = None,
        notes: str | None = None,
    ) -> MutationResult[Quote]:
        """
        Create a draft quote.

        The currency defaults to the client's; ``valid_until`` defaults to
        the configured validity period from today.
        """
        if not items:
            raise ValidationError("items", "a quote needs at least one line")
        try:
            client = get_owned(self._session, ClientModel, self._owner_id, client_id, "Client")
            lines = tuple(build_line_item(i.description, i.quantity, i.rate) for i in items)
            tax = _tax(tax_amount)
            subtotal, total = document_totals(lines, tax)
            today = self._clock.today()
            numbering = self._config.numbering
            seq = self._sequences.next_value(
                SequenceService.owner_sequence(SequenceService.QUOTE, self._owner_id)
            )

            quote = QuoteModel(
                owner_id=self._owner_id,
                client_id=client.id,
                quote_number=numbering.format(numbering.quote_prefix, today.year, seq),
                currency=validate_currency(
                    currency if currency is not None else client.default_currency, "Quote"
                ),
                subtotal=subtotal,
                tax_amount=tax,
                total=total,
                status=QUOTE_WORKFLOW.initial_state,
                quote_date=today,
                valid_until=(
                    valid_until
                    if valid_until is not None
                    else today + timedelta(days=self._config.quote_validity_days)
                ),
                notes=notes,
            )
            quote.items = [
                QuoteItemModel(
                    position=position,
                    description=line.description,
                    quantity=line.quantity,
                    rate=line.rate,
                    amount=line.amount,
                )
                for position, line in enumerate(lines, start=1)
            ]
            self._session.add(quote)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "quote_created",
            extra={
                "quote_id": str(quote.id),
                "quote_number": quote.quote_number,
                "client_id": str(client_id),
                "total": str(quote.total),
                "currency": quote.currency,
            },
        )
        return MutationResult(record=quote.to_dto(), changes=ChangeSet(quote_ids=(quote.id,)))

    def get(self, quote_id: UUID) -> Quote:
        return self._get_model(quote_id).to_dto()

    def list(
        self,
        status: QuoteStatus | str | None = None,
        client_id: UUID | None = None,
    ) -> list[Quote]:
        query = select(QuoteModel).where(QuoteModel.owner_id == self._owner_id)
        if status is not None:
            query = query.where(QuoteModel.status == _as_status(status).value)
        if client_id is not None:
            query = query.where(QuoteModel.client_id == client_id)
        rows = self._session.execute(query.order_by(QuoteModel.quote_number)).scalars()
        return [row.to_dto() for row in rows]

    def set_status(self, quote_id: UUID, status: QuoteStatus | str) -> MutationResult[Quote]:
        """
        Move a quote along ``QUOTE_WORKFLOW``.  Acceptance goes through
        ``convert_to_job``.
        """
        target = _as_status(status)
        try:
            quote = self._get_model(quote_id)
            current = quote.status
            if current == target.value:
                return MutationResult(record=quote.to_dto(), changes=ChangeSet())
            self._check_transition(quote, target)
            quote.status = target.value
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "quote_status_changed",
            extra={"quote_id": str(quote_id), "from_status": current, "to_status": target.value},
        )
        return MutationResult(record=quote.to_dto(), changes=ChangeSet(quote_ids=(quote.id,)))

    def _check_transition(self, quote: QuoteModel, target: QuoteStatus, via_conversion: bool = False) -> None:
        if QUOTE_WORKFLOW.is_terminal(quote.status):
            raise IllegalTransitionError(
                "Quote", str(quote.id), quote.status, target.value, "terminal status"
            )
        transition = QUOTE_WORKFLOW.find_transition(quote.status, target.value)
        if transition is None:
            raise IllegalTransitionError("Quote", str(quote.id), quote.status, target.value)
        if transition.internal and not via_conversion:
            raise IllegalTransitionError(
                "Quote", str(quote.id), quote.status, target.value,
                "quotes are accepted by converting them to a job",
            )

    def convert_to_job(self, quote_id: UUID) -> QuoteConversionResult:
        """
        Create a flat-fee job from a draft or sent quote and accept the quote.

        The job is titled ``Job from Quote <number>`` and carries the quote
        total in the quote currency.

        Raises:
            IllegalTransitionError: The quote is accepted or rejected.
        """
        try:
            quote = self._get_model(quote_id)
            self._check_transition(quote, QuoteStatus.ACCEPTED, via_conversion=True)

            jobs = JobService(
                self._session,
                self._owner_id,
                clock=self._clock,
                config=self._config,
                auto_commit=False,
            )
            job = jobs.add_job(
                quote.client_id,
                f"Job from Quote {quote.quote_number}",
                PricingType.FLAT_FEE,
                total_amount=quote.total,
                currency=quote.currency,
                notes=quote.notes,
            )
            quote.status = QuoteStatus.ACCEPTED.value
            quote.job_id = job.id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "quote_converted",
            extra={
                "quote_id": str(quote.id),
                "quote_number": quote.quote_number,
                "job_id": str(job.id),
                "job_code": job.job_code,
                "total": str(quote.total),
                "currency": quote.currency,
            },
        )
        return QuoteConversionResult(
            quote=quote.to_dto(),
            job=job.to_dto(),
            changes=ChangeSet(job_ids=(job.id,), quote_ids=(quote.id,)),
        )

    def delete(self, quote_id: UUID) -> ChangeSet:
        """Delete a quote.  A job created from it is kept."""
        try:
            quote = self._get_model(quote_id)
            self._session.delete(quote)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("quote_deleted", extra={"quote_id": str(quote_id)})
        return ChangeSet(quote_ids=(quote_id,))

    def _get_model(self, quote_id: UUID) -> QuoteModel:
        return get_owned(self._session, QuoteModel, self._owner_id, quote_id, "Quote")
