"""
Structured JSON logging for the billing kernel.

Every record emitted under the ``billing_kernel`` logger tree is written as
one JSON object per line.  Three things are merged into the payload:

* the record's ``extra`` fields (``order_number``, ``total`` ...);
* the document context bound with ``LogContext.bind`` by the orchestrator
  (``document_type``, ``document_id``, ``correlation_id``, ``actor_id``);
* for a record logged with ``exc_info``, the failure itself.  A
  ``BillingKernelError`` contributes its ``code`` and its structured
  attributes as ``exc_*`` keys, and the document it names is lifted to
  ``document_id`` when no context bound one.  A chained cause (the
  SQLAlchemy error behind a ``ConflictError``) is reported as
  ``exc_cause``.

Usage:
    logger = get_logger("services.invoice")
    with LogContext.bind(document_type="invoice", document_id=invoice_id):
        logger.info("invoice_transitioned", extra={"to_status": "PAID"})
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from typing import Any, Iterator, Mapping
from uuid import UUID

from billing_kernel.exceptions import BillingKernelError

_ROOT_LOGGER = "billing_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "document_type", "document_id")

_context: ContextVar[Mapping[str, str]] = ContextVar(
    "billing_log_context", default={}
)


class LogContext:
    """
    Document context attached to every log line of the current task.

    The whole context is one immutable mapping held in a ContextVar, so a
    ``bind`` block restores exactly what was there before, and threads or
    asyncio tasks never see each other's documents.
    """

    @staticmethod
    def _merge(fields: Mapping[str, object]) -> dict[str, str]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update(
            (name, str(value)) for name, value in fields.items() if value is not None
        )
        return merged

    @classmethod
    def set(cls, **fields: object) -> None:
        """Set fields for the rest of the current context; None is ignored."""
        _context.set(cls._merge(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: object) -> Iterator[type["LogContext"]]:
        """Set fields inside a ``with`` block; values are stringified."""
        token = _context.set(cls._merge(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, BillingKernelError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    cause = exc.__cause__
    if cause is not None:
        fields["exc_cause"] = f"{type(cause).__name__}: {cause}"
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload.update(_exception_fields(exc))
            document_id = getattr(exc, "document_id", None) or getattr(exc, "order_id", None)
            if document_id is not None:
                payload.setdefault("document_id", str(document_id))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the billing_kernel namespace."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


_setup_lock = threading.Lock()


def _structured_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h.formatter, StructuredFormatter)]


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the billing_kernel logger.

    A no-op when a structured handler is already attached, so engine
    initialisation can call it unconditionally.  ``level`` accepts a
    level name as found in the configuration file ("DEBUG", "INFO" ...).
    """
    root = logging.getLogger(_ROOT_LOGGER)
    with _setup_lock:
        if _structured_handlers(root):
            return
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.setLevel(level)
        root.propagate = False
        root.addHandler(handler)


def reset_logging() -> None:
    """Detach the JSON handlers again. FOR TESTING ONLY."""
    root = logging.getLogger(_ROOT_LOGGER)
    with _setup_lock:
        for handler in _structured_handlers(root):
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)
        root.propagate = True
