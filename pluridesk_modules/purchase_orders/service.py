"""
Purchase Order Service (``pluridesk_modules.purchase_orders.service``).

Responsibility
--------------
Groups one supplier's outsourcing records under a numbered purchase order.

Invariants enforced
-------------------
* Every record on an order belongs to the order's supplier and owner.
* A record sits on at most one order; cancelled and unpriced records are
  refused.
* All records on an order share one currency; ``amount`` is their summed
  supplier total at issue.
* The order row and the record links are written in one transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pluridesk_config import EngineConfig, get_active_config
from pluridesk_kernel.domain.clock import Clock, SystemClock
from pluridesk_kernel.exceptions import MixedCurrencySelectionError, ValidationError
from pluridesk_kernel.logging_config import get_logger
from pluridesk_kernel.services.sequence_service import SequenceService
from pluridesk_modules._helpers import get_owned
from pluridesk_modules._results import ChangeSet, MutationResult
from pluridesk_modules.outsourcing.models import OutsourcingStatus
from pluridesk_modules.outsourcing.orm import OutsourcingModel
from pluridesk_modules.parties.orm import SupplierModel
from pluridesk_modules.purchase_orders.models import PurchaseOrder
from pluridesk_modules.purchase_orders.orm import PurchaseOrderModel

logger = get_logger("modules.purchase_orders.service")


class PurchaseOrderService:
    """Purchase orders for one owner."""

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
        supplier_id: UUID,
        outsourcing_ids: Sequence[UUID],
        *,
        number: str | None = None,
        notes: str | None = None,
    ) -> MutationResult[PurchaseOrder]:
        """
        Issue a purchase order to ``supplier_id`` for the given records.

        The number comes from the owner's purchase order sequence unless
        one is supplied.

        Raises:
            NotFoundError: The supplier or a record is missing or foreign.
            ValidationError: A record belongs to another supplier, is already
                on an order, is cancelled or has no supplier total; or the
                number is taken.
            MixedCurrencySelectionError: The records use several currencies.
        """
        if not outsourcing_ids:
            raise ValidationError("outsourcing_ids", "select at least one outsourcing record")
        try:
            supplier = get_owned(self._session, SupplierModel, self._owner_id, supplier_id, "Supplier")
            records = self._selection(supplier.id, outsourcing_ids)

            currencies = sorted({r.supplier_currency for r in records})
            if len(currencies) > 1:
                raise MixedCurrencySelectionError(currencies, subject="outsourcing records")

            today = self._clock.today()
            order = PurchaseOrderModel(
                owner_id=self._owner_id,
                supplier_id=supplier.id,
                number=self._number(number, today.year),
                currency=currencies[0],
                amount=sum((r.supplier_total for r in records), Decimal("0")),
                issue_date=today,
                notes=notes,
            )
            self._session.add(order)
            self._session.flush()
            for record in records:
                record.purchase_order_id = order.id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        linked = tuple(r.id for r in records)
        logger.info(
            "purchase_order_created",
            extra={
                "purchase_order_id": str(order.id),
                "number": order.number,
                "supplier_id": str(supplier.id),
                "record_count": len(linked),
                "amount": str(order.amount),
                "currency": order.currency,
            },
        )
        return MutationResult(
            record=order.to_dto(linked),
            changes=ChangeSet(purchase_order_ids=(order.id,), outsourcing_ids=linked),
        )

    def get(self, purchase_order_id: UUID) -> PurchaseOrder:
        order = self._get_model(purchase_order_id)
        return order.to_dto(self._linked_ids(order.id))

    def list(self, supplier_id: UUID | None = None) -> list[PurchaseOrder]:
        """Orders newest first, optionally for one supplier."""
        query = select(PurchaseOrderModel).where(PurchaseOrderModel.owner_id == self._owner_id)
        if supplier_id is not None:
            query = query.where(PurchaseOrderModel.supplier_id == supplier_id)
        query = query.order_by(
            PurchaseOrderModel.issue_date.desc(), PurchaseOrderModel.number.desc()
        )
        return [
            row.to_dto(self._linked_ids(row.id))
            for row in self._session.execute(query).scalars()
        ]

    def delete(self, purchase_order_id: UUID) -> ChangeSet:
        """Delete an order and release its records."""
        try:
            order = self._get_model(purchase_order_id)
            records = self._linked(order.id)
            for record in records:
                record.purchase_order_id = None
            self._session.delete(order)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        released = tuple(r.id for r in records)
        logger.info(
            "purchase_order_deleted",
            extra={"purchase_order_id": str(purchase_order_id), "released": len(released)},
        )
        return ChangeSet(purchase_order_ids=(purchase_order_id,), outsourcing_ids=released)

    def _selection(self, supplier_id: UUID, outsourcing_ids: Sequence[UUID]) -> list[OutsourcingModel]:
        records = []
        seen = set()
        for record_id in outsourcing_ids:
            if record_id in seen:
                continue
            seen.add(record_id)
            record = get_owned(
                self._session, OutsourcingModel, self._owner_id, record_id, "Outsourcing record"
            )
            key = f"outsourcing_ids[{record_id}]"
            if record.supplier_id != supplier_id:
                raise ValidationError(key, "belongs to another supplier")
            if record.purchase_order_id is not None:
                raise ValidationError(key, "already on a purchase order")
            if record.status == OutsourcingStatus.CANCELLED.value:
                raise ValidationError(key, "record is cancelled")
            if record.supplier_total is None:
                raise ValidationError(key, "record has no supplier total")
            records.append(record)
        return records

    def _number(self, number: str | None, year: int) -> str:
        if number is not None:
            number = number.strip()
            if not number:
                raise ValidationError("number", "cannot be blank")
            taken = self._session.execute(
                select(PurchaseOrderModel.id).where(
                    PurchaseOrderModel.owner_id == self._owner_id,
                    PurchaseOrderModel.number == number,
                )
            ).first()
            if taken is not None:
                raise ValidationError("number", f"{number!r} is already used")
            return number
        numbering = self._config.numbering
        seq = self._sequences.next_value(
            SequenceService.owner_sequence(SequenceService.PURCHASE_ORDER, self._owner_id)
        )
        return numbering.format(numbering.purchase_order_prefix, year, seq)

    def _linked(self, purchase_order_id: UUID) -> list[OutsourcingModel]:
        query = (
            select(OutsourcingModel)
            .where(OutsourcingModel.purchase_order_id == purchase_order_id)
            .order_by(OutsourcingModel.created_at, OutsourcingModel.id)
        )
        return list(self._session.execute(query).scalars())

    def _linked_ids(self, purchase_order_id: UUID) -> tuple[UUID, ...]:
        return tuple(r.id for r in self._linked(purchase_order_id))

    def _get_model(self, purchase_order_id: UUID) -> PurchaseOrderModel:
        return get_owned(
            self._session, PurchaseOrderModel, self._owner_id, purchase_order_id, "Purchase order"
        )
