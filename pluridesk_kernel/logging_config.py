"""
Structured JSON logging for the PluriDesk engine.

Every logger lives under the ``pluridesk`` namespace (``get_logger``) and
writes one JSON object per line.  Services log snake_case event names and
pass their payload through ``extra={...}``; the formatter lifts those keys
to the top level, adds the request-scoped ``LogContext`` fields, and
flattens the structured attributes of a ``PlurideskError`` into
``exc_<field>`` keys.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "pluridesk"


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


class LogContext:
    """
    Fields stamped on every record emitted in the current task or thread.

    ``owner_id`` is the tenant whose data the operation touches;
    ``correlation_id`` ties together the records of one caller request.
    """

    FIELDS = ("correlation_id", "owner_id", "actor_id", "operation")

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"pluridesk_log_{name}", default=None) for name in FIELDS
    }

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set the given fields; None values leave a field unchanged."""
        for name, value in cls._known(fields).items():
            if value is not None:
                cls._vars[name].set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (cls._vars[name], cls._vars[name].set(str(value)))
            for name, value in cls._known(fields).items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @classmethod
    def _known(cls, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(cls.FIELDS)
        if unknown:
            raise KeyError(f"unknown log context fields: {sorted(unknown)}")
        return fields


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """``pluridesk.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``pluridesk`` logger.

    Only the first call has an effect; later calls (every
    ``init_engine_from_url``) keep whatever was configured first.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    out = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    out.setFormatter(StructuredFormatter())
    root.addHandler(out)


def reset_logging() -> None:
    """Undo ``configure_logging``.  For tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
