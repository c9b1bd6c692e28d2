"""
Shared helpers for module services.

Used by pluridesk_modules/*/service.py for owner-scoped lookups, the
per-item commit loop of bulk operations, and the outsourcing flag kept on
jobs.

Architecture: Modules layer.  Imports only from pluridesk_kernel and the
sibling ORM modules.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pluridesk_kernel.exceptions import NotFoundError, PlurideskError, ValidationError
from pluridesk_modules._results import BulkFailure, BulkResult, ChangeSet

M = TypeVar("M")


def get_owned(
    session: Session,
    model: type[M],
    owner_id: UUID,
    entity_id: UUID,
    entity: str,
) -> M:
    """Load a row by id, treating another owner's row as missing.

    Raises:
        NotFoundError: If the row does not exist or belongs to another owner.
    """
    row = session.get(model, entity_id) if entity_id is not None else None
    if row is None or row.owner_id != owner_id:
        raise NotFoundError(entity, str(entity_id))
    return row


def commit_or_flush(session: Session, auto_commit: bool) -> None:
    """Commit when the service owns the boundary, otherwise just flush."""
    if auto_commit:
        session.commit()
    else:
        session.flush()


def rollback_if_owner(session: Session, auto_commit: bool) -> None:
    """Roll back when the service owns the boundary; a caller that owns it rolls back itself."""
    if auto_commit:
        session.rollback()


def check_fields(changes: Mapping[str, Any], allowed: Iterable[str], entity: str) -> None:
    """Reject update keys that are not editable fields of ``entity``."""
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise ValidationError(", ".join(unknown), f"not an editable {entity} field")


def unique_ids(ids: Iterable[UUID]) -> list[UUID]:
    """Ids in first-seen order without duplicates."""
    return list(dict.fromkeys(ids))


def run_bulk(
    session: Session,
    ids: Iterable[UUID],
    apply: Callable[[UUID], ChangeSet],
    *,
    logger: logging.Logger,
    operation: str,
) -> BulkResult:
    """
    Apply ``apply`` to each id, committing after every successful item.

    A failing item is rolled back on its own and reported in
    ``BulkResult.failed``; the items before and after it still commit.
    ``apply`` must not commit.
    """
    succeeded: list[UUID] = []
    failed: list[BulkFailure] = []
    changes = ChangeSet()

    for entity_id in unique_ids(ids):
        try:
            item_changes = apply(entity_id)
            session.commit()
        except PlurideskError as exc:
            session.rollback()
            failed.append(BulkFailure(id=entity_id, code=exc.code, message=str(exc)))
            logger.warning(
                f"{operation}_item_failed",
                extra={"entity_id": str(entity_id), "error_code": exc.code},
            )
            continue
        except SQLAlchemyError as exc:
            session.rollback()
            failed.append(BulkFailure(id=entity_id, code="DATABASE_ERROR", message=str(exc)))
            logger.warning(
                f"{operation}_item_failed",
                extra={"entity_id": str(entity_id), "error_code": "DATABASE_ERROR"},
                exc_info=True,
            )
            continue
        succeeded.append(entity_id)
        changes = changes.merge(item_changes)

    logger.info(
        f"{operation}_completed",
        extra={"succeeded": len(succeeded), "failed": len(failed)},
    )
    return BulkResult(succeeded=tuple(succeeded), failed=tuple(failed), changes=changes)


def refresh_has_outsourcing(session: Session, job: Any) -> bool:
    """Set ``job.has_outsourcing`` from its non-cancelled outsourcing records."""
    from pluridesk_modules.outsourcing.models import OutsourcingStatus
    from pluridesk_modules.outsourcing.orm import OutsourcingModel

    active = session.execute(
        select(func.count())
        .select_from(OutsourcingModel)
        .where(
            OutsourcingModel.job_id == job.id,
            OutsourcingModel.status != OutsourcingStatus.CANCELLED.value,
        )
    ).scalar_one()
    job.has_outsourcing = active > 0
    return job.has_outsourcing
