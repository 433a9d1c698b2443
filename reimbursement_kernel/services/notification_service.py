"""
reimbursement_kernel.services.notification_service -- Notification sinks.

The approval chain only produces ``NotificationEvent`` payloads; rendering
badges and toasts, delivery and ordering belong to the notification system.
These sinks are the two in-process ends of that hand-off.
"""

from __future__ import annotations

import threading
from typing import Callable

from reimbursement_kernel.domain.request import NotificationEvent
from reimbursement_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class InMemoryNotificationSink:
    """Collects events; optionally forwards each to a callback."""

    def __init__(self, forward: Callable[[NotificationEvent], None] | None = None) -> None:
        self._lock = threading.Lock()
        self._events: list[NotificationEvent] = []
        self._forward = forward

    @property
    def events(self) -> list[NotificationEvent]:
        with self._lock:
            return list(self._events)

    def publish(self, event: NotificationEvent) -> None:
        with self._lock:
            self._events.append(event)
        if self._forward is not None:
            self._forward(event)

    def drain(self) -> list[NotificationEvent]:
        """Return and forget everything collected so far."""
        with self._lock:
            drained, self._events = self._events, []
        return drained


class LoggingNotificationSink:
    """Writes each event as a structured log line."""

    def publish(self, event: NotificationEvent) -> None:
        logger.info(
            "notification_published",
            extra={
                "payload": event.to_payload(),
                "application_id": event.application_id,
            },
        )
