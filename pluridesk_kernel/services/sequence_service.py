"""
Per-owner document numbering.

Job codes, invoice, quote and purchase order numbers each draw from their
own counter per owner (``job:<owner>``, ``invoice:<owner>``, ...).
A counter is one row in ``sequence_counters``, locked with
``SELECT ... FOR UPDATE`` while it is incremented, so two concurrent
requests for the same owner never receive the same number.

The increment belongs to the caller's transaction: if invoice generation
rolls back, its number is handed out again by the next attempt.  Numbers
are never derived from ``max(existing) + 1``.
"""

from uuid import UUID

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from pluridesk_kernel.db.base import Base
from pluridesk_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """Allocates sequence values inside the caller's transaction.  Never commits."""

    INVOICE = "invoice"
    JOB = "job"
    PURCHASE_ORDER = "purchase_order"
    QUOTE = "quote"

    def __init__(self, session: Session):
        self._session = session

    @staticmethod
    def owner_sequence(kind: str, owner_id: UUID) -> str:
        return f"{kind}:{owner_id}"

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """Increment ``sequence_name`` (creating it at 1) and return the new value."""
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_name, current_value=1))
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                # Another transaction created the row first
                savepoint.rollback()
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
                counter = self._locked_counter(sequence_name)
            else:
                logger.debug("sequence_allocated", extra={"sequence_name": sequence_name, "value": 1})
                return 1

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def peek_next(self, sequence_name: str) -> int:
        """The value ``next_value`` would return now.  Reserves nothing."""
        current = self._session.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return (current or 0) + 1
