# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Market API endpoints for VideOracle.

Provides REST endpoints over ``OracleService``:
- POST /requests                                 - Create a request
- GET  /requests/{id}                            - Request with proofs, election and dispute
- POST /requests/{id}/abort                      - Abort a request with no proofs
- GET  /requests/{id}/answers                    - Accepted answers of a string request
- POST /requests/{id}/proofs                     - Submit a proof
- GET  /requests/{id}/proofs/{index}             - One proof
- GET  /requests/{id}/verifiers/{identity}       - Whether an identity gave a proof
- POST /requests/{id}/proofs/{index}/upvote      - Stake behind a proof
- POST /requests/{id}/dispute                    - Dispute the elected proof
- POST /requests/{id}/dispute/votes              - Vote on the dispute
- POST /claims/{role}                            - Batch claim as verifier, voter or requester
- POST /fees/withdraw                            - Withdraw collected fees
- GET  /events                                   - Query the event log

Mutating endpoints read the caller identity from the configured identity
header; the front proxy is trusted to have authenticated it. The core is
synchronous, so every call runs in Starlette's thread pool.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..core.exceptions import MarketError, TransferError
from ..core.logging import call_logger, correlation_context
from ..core.market import ClaimRole, EventType, OracleService, RequestSpec
from .config import get_settings
from .errors import (
    internal_error,
    invalid_format_error,
    invalid_json_error,
    market_error_response,
    missing_field_error,
    missing_identity_error,
    not_found_error,
    transfer_error_response,
    validation_error,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


# =============================================================================
# HELPERS
# =============================================================================


def _service(request: Request) -> OracleService:
    return request.app.state.service


def _caller(request: Request) -> str | JSONResponse:
    header = get_settings().identity_header
    caller = request.headers.get(header, "").strip()
    if not caller:
        return missing_identity_error(header)
    return caller


async def _json_body(request: Request) -> dict[str, Any] | JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return invalid_json_error()
    if not isinstance(body, dict):
        return invalid_json_error()
    return body


def _int_field(body: dict[str, Any], name: str, default: int | None = None) -> int | JSONResponse:
    """Read a non-negative integer body field, rejecting bools and fractional numbers."""
    value = body.get(name, default)
    if value is None:
        return missing_field_error(name)
    if isinstance(value, str) and value.lstrip("-").isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        return invalid_format_error(name, "must be an integer")
    if value < 0:
        return validation_error(f"{name} must not be negative")
    return value


async def _invoke(
    request: Request,
    operation: str,
    caller: str | None,
    arguments: dict[str, Any],
    fn: Callable[[], Any],
) -> Any:
    """Run a market call in the thread pool and map its errors to responses.

    Returns the call's result, or a JSONResponse when the call was rejected.
    """
    with correlation_context(request.headers.get(CORRELATION_HEADER)):
        call_logger.log_call(operation, caller, arguments)
        start = time.perf_counter()
        try:
            result = await run_in_threadpool(fn)
        except MarketError as e:
            call_logger.log_result(operation, False, (time.perf_counter() - start) * 1000, e.kind)
            return market_error_response(e)
        except TransferError as e:
            call_logger.log_result(operation, False, (time.perf_counter() - start) * 1000, type(e).__name__)
            return transfer_error_response(e)
        except Exception:
            logger.exception(f"Error in {operation}")
            return internal_error("Internal server error")
        call_logger.log_result(operation, True, (time.perf_counter() - start) * 1000)
        return result


def _parse_spec(raw: Any) -> RequestSpec:
    if isinstance(raw, list):
        return RequestSpec.from_sequence(raw)
    return RequestSpec.from_dict(raw)


# =============================================================================
# MARKET
# =============================================================================


async def market_endpoint(request: Request) -> JSONResponse:
    """Market parameters and counters.

    Endpoint: GET /market
    """
    service = _service(request)
    return JSONResponse(
        {
            "success": True,
            **service.params.to_dict(),
            "total_requests": service.total_requests,
            "fees_collected": service.fees_collected,
        }
    )


# =============================================================================
# REQUESTS
# =============================================================================


async def create_request_endpoint(request: Request) -> JSONResponse:
    """Create a request and escrow its reward.

    Endpoint: POST /requests

    Body:
    {
        "request": {"kind": "binary", "body": "...", "location_hint": "...",
                    "reward_denomination": "native", "reward_amount": 1000,
                    "expires_at": 1700600000, "answer_domain_size": 2},
        "accepted_answers": [],
        "value": 1000001000
    }

    ``request`` may also be the positional list
    ``[kind, body, location_hint, denomination, reward, expires_at, domain_size]``.
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body

    raw_spec = body.get("request")
    if raw_spec is None:
        return missing_field_error("request")
    if not isinstance(raw_spec, (dict, list)):
        return invalid_format_error("request", "must be an object or a list")

    accepted_answers = body.get("accepted_answers", [])
    if not isinstance(accepted_answers, list):
        return invalid_format_error("accepted_answers", "must be a list")

    value = _int_field(body, "value", default=0)
    if isinstance(value, JSONResponse):
        return value

    service = _service(request)
    result = await _invoke(
        request,
        "create_request",
        caller,
        {"request": raw_spec, "accepted_answers": accepted_answers, "value": value},
        lambda: service.create_request(caller, _parse_spec(raw_spec), accepted_answers, value),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": result}, status_code=201)


async def get_request_endpoint(request: Request) -> JSONResponse:
    """Request details with its proofs, elected proof and dispute.

    Endpoint: GET /requests/{request_id}
    """
    request_id: int = request.path_params["request_id"]
    service = _service(request)

    def read() -> dict[str, Any]:
        return {"success": True, **service.describe_request(request_id)}

    result = await _invoke(request, "get_request", None, {"request_id": request_id}, read)
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse(result)


async def abort_request_endpoint(request: Request) -> JSONResponse:
    """Abort a request that has no proofs.

    Endpoint: POST /requests/{request_id}/abort
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    request_id: int = request.path_params["request_id"]
    service = _service(request)

    result = await _invoke(
        request,
        "abort_request",
        caller,
        {"request_id": request_id},
        lambda: service.abort_request(caller, request_id),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "refund": result})


async def accepted_answers_endpoint(request: Request) -> JSONResponse:
    """Endpoint: GET /requests/{request_id}/answers"""
    request_id: int = request.path_params["request_id"]
    service = _service(request)

    result = await _invoke(
        request,
        "get_accepted_answers",
        None,
        {"request_id": request_id},
        lambda: service.get_accepted_answers(request_id),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "accepted_answers": result})


# =============================================================================
# PROOFS AND UPVOTES
# =============================================================================


async def submit_proof_endpoint(request: Request) -> JSONResponse:
    """Submit the caller's answer.

    Endpoint: POST /requests/{request_id}/proofs

    Body: {"answer_code": 1}
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    answer_code = _int_field(body, "answer_code")
    if isinstance(answer_code, JSONResponse):
        return answer_code

    request_id: int = request.path_params["request_id"]
    service = _service(request)
    result = await _invoke(
        request,
        "submit_proof",
        caller,
        {"request_id": request_id, "answer_code": answer_code},
        lambda: service.submit_proof(caller, request_id, answer_code),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "proof_index": result}, status_code=201)


async def get_proof_endpoint(request: Request) -> JSONResponse:
    """Endpoint: GET /requests/{request_id}/proofs/{proof_index}"""
    request_id: int = request.path_params["request_id"]
    proof_index: int = request.path_params["proof_index"]
    service = _service(request)

    result = await _invoke(
        request,
        "get_proof",
        None,
        {"request_id": request_id, "proof_index": proof_index},
        lambda: service.get_proof(request_id, proof_index),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "proof": result.to_dict()})


async def verifier_endpoint(request: Request) -> JSONResponse:
    """Whether an identity has given a proof to a request.

    Endpoint: GET /requests/{request_id}/verifiers/{identity}
    """
    request_id: int = request.path_params["request_id"]
    identity: str = request.path_params["identity"]
    service = _service(request)

    result = await _invoke(
        request,
        "has_given_proof_to_request",
        None,
        {"request_id": request_id, "identity": identity},
        lambda: service.has_given_proof_to_request(request_id, identity),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse(
        {"success": True, "request_id": request_id, "identity": identity, "has_given_proof": result}
    )


async def upvote_proof_endpoint(request: Request) -> JSONResponse:
    """Stake behind a proof.

    Endpoint: POST /requests/{request_id}/proofs/{proof_index}/upvote

    Body: {"stake": 50000000000000000}
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    stake = _int_field(body, "stake")
    if isinstance(stake, JSONResponse):
        return stake

    request_id: int = request.path_params["request_id"]
    proof_index: int = request.path_params["proof_index"]
    service = _service(request)
    result = await _invoke(
        request,
        "upvote_proof",
        caller,
        {"request_id": request_id, "proof_index": proof_index, "stake": stake},
        lambda: service.upvote_proof(caller, request_id, proof_index, stake),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "proof_index": proof_index, "stake": stake})


# =============================================================================
# DISPUTES
# =============================================================================


async def create_dispute_endpoint(request: Request) -> JSONResponse:
    """Dispute the elected proof.

    Endpoint: POST /requests/{request_id}/dispute

    Body: {"reason": "...", "stake": 100000000000000000}
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    reason = body.get("reason", "")
    if not isinstance(reason, str):
        return invalid_format_error("reason", "must be a string")
    stake = _int_field(body, "stake")
    if isinstance(stake, JSONResponse):
        return stake

    request_id: int = request.path_params["request_id"]
    service = _service(request)
    result = await _invoke(
        request,
        "create_dispute",
        caller,
        {"request_id": request_id, "reason": reason, "stake": stake},
        lambda: service.create_dispute(caller, request_id, reason, stake),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "dispute_id": result}, status_code=201)


async def vote_on_dispute_endpoint(request: Request) -> JSONResponse:
    """Vote on a request's dispute.

    Endpoint: POST /requests/{request_id}/dispute/votes

    Body: {"support": true}
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    support = body.get("support")
    if support is None:
        return missing_field_error("support")
    if not isinstance(support, bool):
        return invalid_format_error("support", "must be a boolean")

    request_id: int = request.path_params["request_id"]
    service = _service(request)
    result = await _invoke(
        request,
        "vote_on_dispute",
        caller,
        {"request_id": request_id, "support": support},
        lambda: service.vote_on_dispute(caller, request_id, support),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "request_id": request_id, "support": support})


# =============================================================================
# CLAIMS AND FEES
# =============================================================================


async def claim_endpoint(request: Request) -> JSONResponse:
    """Claim settled funds for a batch of requests.

    Endpoint: POST /claims/{role}   (role: verifier, voter, requester)

    Body: {"request_ids": [1, 2, 3]}

    Every request gets an outcome; requests that do not qualify are reported,
    not rejected.
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller

    try:
        role = ClaimRole(request.path_params["role"])
    except ValueError:
        return not_found_error(f"Claim role {request.path_params['role']!r}")

    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    request_ids = body.get("request_ids")
    if request_ids is None:
        return missing_field_error("request_ids")
    if not isinstance(request_ids, list) or not all(
        isinstance(i, int) and not isinstance(i, bool) for i in request_ids
    ):
        return invalid_format_error("request_ids", "must be a list of integers")

    service = _service(request)
    claim = {
        ClaimRole.VERIFIER: service.claim_funds_as_verifier,
        ClaimRole.VOTER: service.claim_funds_as_voter,
        ClaimRole.REQUESTER: service.claim_funds_as_requester,
    }[role]

    result = await _invoke(
        request,
        f"claim_funds_as_{role.value}",
        caller,
        {"request_ids": request_ids},
        lambda: claim(caller, request_ids),
    )
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse(
        {
            "success": True,
            "role": role.value,
            "outcomes": [o.to_dict() for o in result],
            "total_paid": sum(o.amount for o in result),
        }
    )


async def withdraw_fees_endpoint(request: Request) -> JSONResponse:
    """Endpoint: POST /fees/withdraw"""
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    service = _service(request)

    result = await _invoke(request, "withdraw_fees", caller, {}, lambda: service.withdraw_fees(caller))
    if isinstance(result, JSONResponse):
        return result
    return JSONResponse({"success": True, "amount": result})


# =============================================================================
# EVENTS
# =============================================================================


async def events_endpoint(request: Request) -> JSONResponse:
    """Query the event log.

    Endpoint: GET /events

    Query params:
    - type: Event type (e.g. proof_submitted)
    - request_id: Only events about this request
    - since: Only events with a higher sequence number
    """
    params = request.query_params

    event_type = None
    if "type" in params:
        try:
            event_type = EventType(params["type"])
        except ValueError:
            return invalid_format_error("type", f"unknown event type {params['type']!r}")

    try:
        request_id = int(params["request_id"]) if "request_id" in params else None
        since = int(params.get("since", 0))
    except ValueError:
        return invalid_format_error("request_id/since", "must be integers")
    if since < 0:
        return validation_error("since must not be negative")

    events = _service(request).events(event_type=event_type, request_id=request_id, since=since)
    return JSONResponse(
        {
            "success": True,
            "events": [e.to_dict() for e in events],
            "total_count": len(events),
        }
    )
