# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Time sources for the market.

Time gates are checked against ``Clock.now()`` at call time and never
cached. ``now()`` returns whole seconds and must never go backwards.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol, runtime_checkable

from .exceptions import ValidationException


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current wall-clock time in whole seconds."""
        ...


class SystemClock:
    """Wall clock that never reports a time earlier than one it already reported."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """Clock advanced explicitly, for tests and simulations."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValidationException("Clock cannot move backwards", "seconds", seconds)
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> int:
        with self._lock:
            if timestamp < self._now:
                raise ValidationException("Clock cannot move backwards", "timestamp", timestamp)
            self._now = timestamp
            return self._now
