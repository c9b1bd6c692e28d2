"""
Declarative bases shared by every ORM model.

* ``Base`` gives each table a uuid4 primary key stored as ``String(36)``
  and maps ``Decimal`` annotations to ``Numeric(38, 9)``, so no amount is
  ever stored as a float.
* ``TrackedBase`` adds ``created_at`` / ``updated_at``.
* ``OwnedBase`` adds the indexed ``owner_id`` every service filters on.
  A row owned by someone else is indistinguishable from a missing row.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """Python ``UUID`` in, ``String(36)`` on disk; identical on SQLite and PostgreSQL."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class OwnedBase(TrackedBase):
    __abstract__ = True

    owner_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False, index=True)


UUID = PyUUID
