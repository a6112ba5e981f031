# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Error responses for the VideOracle REST API.

Every rejected call answers with the same body:

    {"success": false, "error": {"code": "...", "message": "...", "details": {...}}}

``details`` is omitted when empty. Market errors use their kind as the code
(``DuplicateVote`` becomes ``DUPLICATE_VOTE``) and their own status code:
400 for invalid input or timing, 403 for the wrong caller, 404 for unknown
requests and proofs, 409 for duplicates. Ledger transfer failures are 402.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from typing import Any

from starlette.responses import JSONResponse

from ..core.exceptions import InsufficientAllowanceError, MarketError, TransferError

logger = logging.getLogger(__name__)

# VIDEORACLE_DEBUG=1 adds the exception type and text to 500 responses
_DEBUG = os.environ.get("VIDEORACLE_DEBUG", "0") == "1"

VALIDATION_MISSING_FIELD = "VALIDATION_MISSING_FIELD"
VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
VALIDATION_INVALID_VALUE = "VALIDATION_INVALID_VALUE"
VALIDATION_INVALID_JSON = "VALIDATION_INVALID_JSON"
AUTH_MISSING_IDENTITY = "AUTH_MISSING_IDENTITY"
NOT_FOUND_RESOURCE = "NOT_FOUND_RESOURCE"
TRANSFER_INSUFFICIENT_BALANCE = "TRANSFER_INSUFFICIENT_BALANCE"
TRANSFER_INSUFFICIENT_ALLOWANCE = "TRANSFER_INSUFFICIENT_ALLOWANCE"
INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


# -----------------------------------------------------------------------------
# Request validation (400, 401, 404)
# -----------------------------------------------------------------------------


def validation_error(message: str, code: str = VALIDATION_INVALID_VALUE) -> JSONResponse:
    return error_response(code, message)


def missing_field_error(field_name: str) -> JSONResponse:
    return error_response(VALIDATION_MISSING_FIELD, f"{field_name} is required")


def invalid_format_error(field_name: str, details: str = "") -> JSONResponse:
    suffix = f": {details}" if details else ""
    return error_response(VALIDATION_INVALID_FORMAT, f"Invalid {field_name} format{suffix}")


def invalid_json_error() -> JSONResponse:
    return error_response(VALIDATION_INVALID_JSON, "Request body must be a JSON object")


def missing_identity_error(header: str) -> JSONResponse:
    return error_response(AUTH_MISSING_IDENTITY, f"{header} header is required", status_code=401)


def not_found_error(resource: str, code: str = NOT_FOUND_RESOURCE) -> JSONResponse:
    return error_response(code, f"{resource} not found", status_code=404)


# -----------------------------------------------------------------------------
# Market and ledger errors
# -----------------------------------------------------------------------------


def market_error_response(exc: MarketError) -> JSONResponse:
    return error_response(exc.code, exc.message, status_code=exc.status_code, details=exc.details)


def transfer_error_response(exc: TransferError) -> JSONResponse:
    if isinstance(exc, InsufficientAllowanceError):
        code = TRANSFER_INSUFFICIENT_ALLOWANCE
    else:
        code = TRANSFER_INSUFFICIENT_BALANCE
    return error_response(code, exc.message, status_code=402, details=exc.details)


def internal_error(
    message: str = "Internal server error",
    exc: BaseException | None = None,
) -> JSONResponse:
    """500 response tagged with a short id that also appears in the log.

    Uses the exception being handled when ``exc`` is not given. Exception
    text is only exposed in debug mode.
    """
    error_id = uuid.uuid4().hex[:12]
    error: dict[str, Any] = {"code": INTERNAL_ERROR, "message": message, "request_id": error_id}

    exc = exc or sys.exc_info()[1]
    if exc is not None:
        logger.error("request_id=%s %s: %s", error_id, type(exc).__name__, exc)
        if _DEBUG:
            error["exception"] = type(exc).__name__
            error["detail"] = str(exc)

    return JSONResponse({"success": False, "error": error}, status_code=500)
