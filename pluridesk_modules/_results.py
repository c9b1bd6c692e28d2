"""
Operation result types shared by the module services.

Every mutating operation returns the ids of every record it touched
(``ChangeSet``) so callers refresh exactly those records.  Bulk operations
return a ``BulkResult`` listing which ids succeeded and which failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

T = TypeVar("T")


def _merge_ids(left: tuple[UUID, ...], right: tuple[UUID, ...]) -> tuple[UUID, ...]:
    seen = dict.fromkeys(left)
    seen.update(dict.fromkeys(right))
    return tuple(seen)


@dataclass(frozen=True)
class ChangeSet:
    """Ids of the records an operation created, modified or deleted."""
    job_ids: tuple[UUID, ...] = ()
    invoice_ids: tuple[UUID, ...] = ()
    outsourcing_ids: tuple[UUID, ...] = ()
    expense_ids: tuple[UUID, ...] = ()
    quote_ids: tuple[UUID, ...] = ()
    purchase_order_ids: tuple[UUID, ...] = ()

    def merge(self, other: ChangeSet) -> ChangeSet:
        return ChangeSet(
            job_ids=_merge_ids(self.job_ids, other.job_ids),
            invoice_ids=_merge_ids(self.invoice_ids, other.invoice_ids),
            outsourcing_ids=_merge_ids(self.outsourcing_ids, other.outsourcing_ids),
            expense_ids=_merge_ids(self.expense_ids, other.expense_ids),
            quote_ids=_merge_ids(self.quote_ids, other.quote_ids),
            purchase_order_ids=_merge_ids(self.purchase_order_ids, other.purchase_order_ids),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.job_ids
            or self.invoice_ids
            or self.outsourcing_ids
            or self.expense_ids
            or self.quote_ids
            or self.purchase_order_ids
        )


@dataclass(frozen=True)
class BulkFailure:
    """One id a bulk operation could not apply, with the error that stopped it."""
    id: UUID
    code: str
    message: str


@dataclass(frozen=True)
class BulkResult:
    """
    Per-item outcome of a bulk operation.

    Bulk operations are not atomic across the batch: ``succeeded`` ids are
    committed even when ``failed`` is non-empty.
    """
    succeeded: tuple[UUID, ...] = ()
    failed: tuple[BulkFailure, ...] = ()
    changes: ChangeSet = field(default_factory=ChangeSet)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def failed_ids(self) -> tuple[UUID, ...]:
        return tuple(f.id for f in self.failed)


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    """A created or updated record and everything the operation touched."""
    record: T
    changes: ChangeSet
