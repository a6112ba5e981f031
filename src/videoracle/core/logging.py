# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Structured logging configuration for VideOracle.

Provides:
- JSON output for log shippers, coloured text output for terminals
- A correlation id carried through each HTTP call and its market operation
- ``CallLogger`` for market operation calls and their outcomes
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Loggers of libraries that are too chatty below WARNING
NOISY_LOGGERS = ("httpx", "asyncio", "uvicorn.access")

_correlation_id: ContextVar[str | None] = ContextVar("videoracle_correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Scope every log line in the block to one correlation id.

    A fresh id is generated when none is given (for example when the HTTP
    caller sent no ``X-Correlation-ID``). The previous id is restored on exit.

    Example:
        with correlation_context(request.headers.get("X-Correlation-ID")) as cid:
            service.claim_funds_as_voter(caller, request_ids)
    """
    cid = correlation_id or generate_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: ``timestamp`` (when the record was created, UTC), ``level``,
    ``logger``, ``message``, plus ``correlation_id``, ``source`` (warnings
    and above), ``exception`` and ``extra`` when they apply.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = get_correlation_id()
        if cid:
            entry["correlation_id"] = cid
        if record.levelno >= logging.WARNING:
            entry["source"] = {"file": record.pathname, "line": record.lineno, "function": record.funcName}
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_data", None)
        if extra is not None:
            entry["extra"] = extra
        return json.dumps(entry, default=str)


class StandardFormatter(logging.Formatter):
    """``time - logger - LEVEL - [cid] message`` for humans.

    Colours are only used when asked for and stderr is a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = use_colors and sys.stderr.isatty()

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{self.RESET}" if self.use_colors else text

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        # Work on a shallow copy; the record is shared with other handlers
        values = dict(record.__dict__)
        cid = get_correlation_id()
        if cid:
            values["message"] = f"{self._paint(f'[{cid[:8]}]', self.DIM)} {record.message}"
        values["levelname"] = self._paint(record.levelname, self.LEVEL_COLORS.get(record.levelno, ""))
        return self._style._fmt % values


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _wants_json(log_format: str) -> bool:
    log_format = log_format.lower()
    if log_format in ("json", "text"):
        return log_format == "json"
    # Unset: JSON unless a person is watching
    return not sys.stderr.isatty()


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Install VideOracle's handlers on the root logger.

    Arguments left as None fall back to configuration
    (``VIDEORACLE_LOG_LEVEL``, ``VIDEORACLE_LOG_FORMAT``, ``VIDEORACLE_LOG_FILE``).
    Any handlers already on the root logger are replaced. A log file always
    receives JSON, whatever the console format.
    """
    from .config import get_config

    config = get_config()
    if json_format is None:
        json_format = _wants_json(config.log_format)
    if log_file is None:
        log_file = config.log_file

    root = logging.getLogger()
    root.setLevel(_resolve_level(config.log_level if level is None else level))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(JSONFormatter() if json_format else StandardFormatter())
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class CallLogger:
    """Logs market operation calls and their outcomes.

    Free text in the arguments (request bodies, dispute reasons) is cut to
    ``MAX_TEXT`` characters.
    """

    MAX_TEXT = 200

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("videoracle.calls")

    def _emit(self, level: int, message: str, **fields: Any) -> None:
        self.logger.log(level, message, extra={"extra_data": fields})

    def log_call(
        self,
        operation: str,
        caller: str | None,
        arguments: dict[str, Any],
        level: int = logging.DEBUG,
    ) -> None:
        self._emit(
            level,
            f"Call: {operation} by {caller}",
            operation=operation,
            caller=caller,
            arguments=self._truncate(arguments),
        )

    def log_result(
        self,
        operation: str,
        success: bool,
        duration_ms: float | None = None,
        error_kind: str | None = None,
        level: int = logging.DEBUG,
    ) -> None:
        if success:
            outcome = "success"
        else:
            outcome = f"failure ({error_kind})" if error_kind else "failure"
        timing = f" ({duration_ms:.1f}ms)" if duration_ms is not None else ""
        self._emit(
            level,
            f"Result: {operation} -> {outcome}{timing}",
            operation=operation,
            success=success,
            error_kind=error_kind,
            duration_ms=duration_ms,
        )

    def _truncate(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: self._truncate(value) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [self._truncate(item) for item in data]
        if isinstance(data, str) and len(data) > self.MAX_TEXT:
            return data[: self.MAX_TEXT] + "..."
        return data


call_logger = CallLogger()
