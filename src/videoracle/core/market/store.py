"""Arena of request records with per-request locking.

Each request lives in one ``RequestRecord`` keyed by its sequential id and
guarded by its own lock, so calls against unrelated requests run in
parallel. A ``transaction`` serializes one call against one request: it
snapshots the record, restores the snapshot if the call raises, and
publishes the call's events only when it commits.

The registry lock guards id allocation, the lock table and collected fees;
it is never held while a request lock is waited on.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from ..clock import Clock
from ..exceptions import RequestNotFoundError
from .enums import EventType
from .events import EventLog
from .models import RequestRecord

logger = logging.getLogger(__name__)


class Transaction:
    """Working state of one serialized call against one request."""

    def __init__(self, record: RequestRecord, now: int):
        self.record = record
        self.now = now
        self.pending: list[tuple[EventType, int | None, int, dict[str, Any]]] = []

    @property
    def request(self):
        return self.record.request

    def emit(self, event_type: EventType, **data: Any) -> None:
        self.pending.append((event_type, self.record.request.id, self.now, data))


class MarketStore:
    """In-memory arena of request records."""

    def __init__(self, clock: Clock, events: EventLog | None = None):
        self.clock = clock
        self.events = events or EventLog()
        self._records: dict[int, RequestRecord] = {}
        self._locks: dict[int, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._next_request_id = 1
        self._next_dispute_id = 1
        self._fees_collected = 0

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    @property
    def total_requests(self) -> int:
        with self._registry_lock:
            return self._next_request_id - 1

    def add_request(self, build: Callable[[int], RequestRecord], fee: int = 0) -> RequestRecord:
        """Allocate the next request id, store the record built for it and book its fee."""
        with self._registry_lock:
            request_id = self._next_request_id
            record = build(request_id)
            self._records[request_id] = record
            self._locks[request_id] = threading.RLock()
            self._next_request_id += 1
            self._fees_collected += fee
        return record

    def allocate_dispute_id(self) -> int:
        with self._registry_lock:
            dispute_id = self._next_dispute_id
            self._next_dispute_id += 1
            return dispute_id

    def _lock_for(self, request_id: int) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(request_id)
        if lock is None:
            raise RequestNotFoundError(request_id=request_id)
        return lock

    @contextmanager
    def transaction(self, request_id: int) -> Iterator[Transaction]:
        """Run one call against a request atomically.

        The clock is read after the request lock is taken, so time gates see
        the moment the call actually executes.
        """
        with self._lock_for(request_id):
            record = self._records[request_id]
            snapshot = copy.deepcopy(record)
            txn = Transaction(record, self.clock.now())
            try:
                yield txn
            except BaseException:
                self._records[request_id] = snapshot
                raise
            self.events.publish(txn.pending)

    @contextmanager
    def reading(self, request_id: int) -> Iterator[RequestRecord]:
        """Hold a request's lock while reading its live record."""
        with self._lock_for(request_id):
            yield self._records[request_id]

    def snapshot(self, request_id: int) -> RequestRecord:
        """Detached copy of a request record."""
        with self.reading(request_id) as record:
            return copy.deepcopy(record)

    def request_ids(self) -> list[int]:
        with self._registry_lock:
            return sorted(self._records)

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    @property
    def fees_collected(self) -> int:
        with self._registry_lock:
            return self._fees_collected

    @contextmanager
    def withdrawing_fees(self) -> Iterator[int]:
        """Take all collected fees; they are put back if the body raises."""
        with self._registry_lock:
            amount = self._fees_collected
            self._fees_collected = 0
        try:
            yield amount
        except BaseException:
            with self._registry_lock:
                self._fees_collected += amount
            raise
