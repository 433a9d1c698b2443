"""
reimbursement_kernel.logging_config -- One JSON object per log line.

Every record names an ``event`` (``request_submitted``, ``transition_applied``,
``transition_rejected`` ...) and is stamped with the request the surrounding
service call is working on.  Services bind that request through
``LogContext.bind``; the formatter copies the bound fields, any ``extra``
keys, and the code and attributes of a raised kernel error.

Output shape::

    {"ts": "...", "level": "INFO", "logger": "reimbursement_kernel.services.approval",
     "event": "transition_applied", "request_id": "...", "application_id": "S-NPT-2026-IT-001",
     "acting_role": "HOD", "from_status": "Under HOD", "to_status": "Under Principal"}
"""

from __future__ import annotations

__all__ = [
    "LOGGER_NAMESPACE",
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
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, TextIO
from uuid import UUID

LOGGER_NAMESPACE = "reimbursement_kernel"

# Request-scoped fields, in output order.
_CONTEXT_FIELDS = ("request_id", "application_id", "acting_role", "actor_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"reimbursement_log_{name}", default=None)
    for name in _CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise TypeError(
            f"Unknown log context field {name!r}; expected one of {_CONTEXT_FIELDS}"
        ) from None


class LogContext:
    """The request a service call is acting on, visible to every log record.

    Backed by ``contextvars``, so concurrent approvers on different threads or
    tasks never see each other's fields.  Values are stored as strings.
    """

    FIELDS = _CONTEXT_FIELDS

    @staticmethod
    def set(**fields: Any) -> None:
        """Set fields for the rest of the current context; None is skipped."""
        resolved = [(_context_var(name), value) for name, value in fields.items()]
        for var, value in resolved:
            if value is not None:
                var.set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        bound: dict[str, str] = {}
        for name, var in _context_vars.items():
            value = var.get()
            if value is not None:
                bound[name] = value
        return bound

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the ``with`` block, then restore the previous values."""
        resolved = [(_context_var(name), value) for name, value in fields.items()]
        tokens = [
            (var, var.set(str(value)))
            for var, value in resolved
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return repr(value)


def _describe_error(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
    # Kernel errors keep their context (statuses, role, field errors) as attributes.
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            error[name] = value
    return error


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON line (see module docstring)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _describe_error(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``reimbursement_kernel`` namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the kernel namespace.

    Only the first call installs a handler; later calls leave it alone so the
    engine bootstrap can call this unconditionally.  ``level`` accepts a
    level name such as the configured ``log_level``.
    """
    global _installed
    with _lock:
        if _installed is not None:
            return
        _installed = handler or logging.StreamHandler(stream or sys.stderr)
        _installed.setFormatter(StructuredFormatter())

        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.setLevel(level)
        namespace.propagate = False
        namespace.addHandler(_installed)


def reset_logging() -> None:
    """Remove the installed handler and restore defaults. Tests only."""
    global _installed
    with _lock:
        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.handlers.clear()
        namespace.setLevel(logging.WARNING)
        namespace.propagate = True
        _installed = None
