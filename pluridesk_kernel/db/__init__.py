"""Database layer: engine, session handling, declarative bases."""

from pluridesk_kernel.db.base import UUID, Base, OwnedBase, TrackedBase, UUIDString
from pluridesk_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from pluridesk_kernel.db.types import validate_currency

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "OwnedBase",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "validate_currency",
]
