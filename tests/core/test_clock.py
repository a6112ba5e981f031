"""Tests for videoracle.core.clock."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from videoracle.core.clock import Clock, ManualClock, SystemClock
from videoracle.core.exceptions import ValidationException


class TestManualClock:
    def test_start(self):
        assert ManualClock(100).now() == 100

    def test_advance(self):
        clock = ManualClock(100)
        assert clock.advance(50) == 150
        assert clock.now() == 150

    def test_set(self):
        clock = ManualClock(100)
        clock.set(500)
        assert clock.now() == 500

    def test_never_goes_backwards(self):
        clock = ManualClock(100)
        with pytest.raises(ValidationException):
            clock.advance(-1)
        with pytest.raises(ValidationException):
            clock.set(99)
        assert clock.now() == 100

    def test_is_clock(self):
        assert isinstance(ManualClock(), Clock)


class TestSystemClock:
    def test_whole_seconds(self):
        with patch("videoracle.core.clock.time.time", return_value=1234.9):
            assert SystemClock().now() == 1234

    def test_monotonic(self):
        clock = SystemClock()
        with patch("videoracle.core.clock.time.time", side_effect=[200.0, 150.0]):
            assert clock.now() == 200
            assert clock.now() == 200
