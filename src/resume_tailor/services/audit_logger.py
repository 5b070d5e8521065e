"""Structured audit logger for ledger, payment, identity, and prompt events.

Services receive an ``EventRecorder`` at construction time and call
``record(category, outcome, **attributes)``; they never talk to the
logging backend directly.  ``AuditLogger`` is the production recorder: it
emits one structlog line per event carrying an ``audit: true`` flag so log
pipelines can filter on it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog


log = structlog.get_logger()

OUTCOME_OK = "ok"
OUTCOME_REJECTED = "rejected"
OUTCOME_ERROR = "error"
OUTCOME_NOOP = "noop"


class EventRecorder(Protocol):
    """Observability capability injected into every core service."""

    def record(self, category: str, outcome: str, **attributes: Any) -> None: ...


def _normalise(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return value


class AuditLogger:
    """Structured audit logger for platform events.

    All methods are synchronous -- they only emit log lines and perform
    no I/O beyond writing to the configured structlog sink.
    """

    def record(self, category: str, outcome: str, **attributes: Any) -> None:
        """Emit one audit line; errors log at error level, rejections at warning."""
        fields = {key: _normalise(value) for key, value in attributes.items()}
        emit = log.info
        if outcome == OUTCOME_ERROR:
            emit = log.error
        elif outcome == OUTCOME_REJECTED:
            emit = log.warning
        emit(
            "audit_event",
            category=category,
            outcome=outcome,
            timestamp=datetime.now(timezone.utc).isoformat(),
            audit=True,
            **fields,
        )
