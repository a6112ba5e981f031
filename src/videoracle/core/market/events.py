"""Append-only market event log."""

from __future__ import annotations

import logging
import threading
from typing import Any

from .enums import EventType
from .models import MarketEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Thread-safe append-only log of committed market events.

    Events are appended in commit order and numbered from 1.
    """

    def __init__(self) -> None:
        self._events: list[MarketEvent] = []
        self._lock = threading.Lock()

    def publish(self, pending: list[tuple[EventType, int | None, int, dict[str, Any]]]) -> list[MarketEvent]:
        """Append a batch of events produced by one committed operation."""
        published = []
        with self._lock:
            for event_type, request_id, timestamp, data in pending:
                event = MarketEvent(
                    sequence=len(self._events) + 1,
                    type=event_type,
                    request_id=request_id,
                    timestamp=timestamp,
                    data=data,
                )
                self._events.append(event)
                published.append(event)
        for event in published:
            logger.debug("Event %d %s request=%s", event.sequence, event.type.value, event.request_id)
        return published

    def query(
        self,
        event_type: EventType | None = None,
        request_id: int | None = None,
        since: int = 0,
    ) -> list[MarketEvent]:
        """Events matching the filters, oldest first.

        Args:
            event_type: Only events of this type
            request_id: Only events about this request
            since: Only events with a sequence number above this one
        """
        with self._lock:
            events = list(self._events[since:])
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if request_id is not None:
            events = [e for e in events if e.request_id == request_id]
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
