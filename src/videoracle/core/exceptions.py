# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Custom exception hierarchy for VideOracle.

Provides specific exception types for different error categories,
enabling better error handling and clearer error messages.

Market errors carry a ``kind`` naming the rejected condition (for example
``DuplicateVote``) and a ``code`` used by the HTTP layer. Ledger transfer
errors are kept separate so they can propagate unmodified through the core.
"""

from __future__ import annotations

import re
from typing import Any


class VideOracleException(Exception):  # noqa: N818
    """Base exception for all VideOracle errors.

    All VideOracle-specific exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(VideOracleException):
    """Exception for validation errors.

    Raised when:
    - Input validation fails
    - Required fields are missing
    - Field values are out of range
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(VideOracleException):
    """Exception for configuration errors.

    Raised when:
    - Configuration values are invalid
    - Market parameters are inconsistent
    """

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


# ============================================================================
# Market errors
# ============================================================================


def _kind_to_code(kind: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", kind).upper()


class MarketError(VideOracleException):
    """A market operation was rejected.

    Subclasses set ``kind`` and a default message. The call that raised
    left no state behind; retrying without changing the input fails again.
    """

    kind: str = "MarketError"
    default_message: str = "Market operation rejected"
    status_code: int = 400

    def __init__(self, message: str | None = None, **details: Any):
        super().__init__(message or self.default_message, {k: v for k, v in details.items() if v is not None})

    @property
    def code(self) -> str:
        return _kind_to_code(self.kind)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["kind"] = self.kind
        return data


class NotFoundError(MarketError):
    """A request or proof the call names does not exist."""

    kind = "NotFound"
    default_message = "Not found"
    status_code = 404


class ConflictError(MarketError):
    """The caller already did this for the request."""

    kind = "Conflict"
    default_message = "Conflict"
    status_code = 409


# Creation-time validation


class UnsupportedRewardError(MarketError):
    kind = "UnsupportedReward"
    default_message = "Unsupported reward"


class InvalidAmountReceivedError(MarketError):
    kind = "InvalidAmountReceived"
    default_message = "Invalid amount received"


class FeeMissingError(MarketError):
    kind = "FeeMissing"
    default_message = "Fee missing"


class InsufficientAnswersError(MarketError):
    kind = "InsufficientAnswers"
    default_message = "String requests need at least two accepted answers"


class InvalidRequestError(MarketError):
    kind = "InvalidRequest"
    default_message = "Invalid request"


# Proof-time


class RequestExpiredError(MarketError):
    kind = "RequestExpired"
    default_message = "Request expired"


class AnswerNotValidError(MarketError):
    kind = "AnswerNotValid"
    default_message = "Answer not valid"


class DuplicateProofError(ConflictError):
    kind = "DuplicateProof"
    default_message = "Proof already submitted for this request"


# Voting (upvotes and dispute votes)


class InsufficientStakeError(MarketError):
    kind = "InsufficientStake"
    default_message = "Insufficient stake"


class SelfUpvoteError(MarketError):
    kind = "SelfUpvote"
    default_message = "Cannot upvote your own proof"
    status_code = 403


class DuplicateVoteError(ConflictError):
    kind = "DuplicateVote"
    default_message = "Already voted"


# Dispute creation


class RequestNotExpiredError(MarketError):
    kind = "RequestNotExpired"
    default_message = "Request not expired yet"


class NoLongerDisputableError(MarketError):
    kind = "NoLongerDisputable"
    default_message = "Request is no longer disputable"


class NotRequesterError(MarketError):
    kind = "NotRequester"
    default_message = "Caller is not the requester"
    status_code = 403


class NoDissentError(MarketError):
    kind = "NoDissent"
    default_message = "Every upvote backs the elected proof"


# Dispute voting


class DisputeClosedError(MarketError):
    kind = "DisputeClosed"
    default_message = "Dispute is closed"


class NotEligibleError(MarketError):
    kind = "NotEligible"
    default_message = "Caller is not eligible to vote on this dispute"
    status_code = 403


# Abort


class CannotAbortNowError(MarketError):
    kind = "CannotAbortNow"
    default_message = "Request cannot be aborted now"


# Lookups and administration


class RequestNotFoundError(NotFoundError):
    kind = "RequestNotFound"
    default_message = "Request not found"


class ProofNotFoundError(NotFoundError):
    kind = "ProofNotFound"
    default_message = "Proof not found"


class NotFeeCollectorError(MarketError):
    kind = "NotFeeCollector"
    default_message = "Caller is not the fee collector"
    status_code = 403


# ============================================================================
# Ledger and settlement errors
# ============================================================================


class TransferError(VideOracleException):
    """Exception raised by a ledger adapter when value cannot move."""

    def __init__(self, message: str, denomination: str, account: str, amount: int):
        super().__init__(message, {"denomination": denomination, "account": account, "amount": amount})
        self.denomination = denomination
        self.account = account
        self.amount = amount


class InsufficientBalanceError(TransferError):
    """The source account does not hold enough of the denomination."""


class InsufficientAllowanceError(TransferError):
    """The source account has not approved enough for the market to pull."""


class SettlementInvariantError(VideOracleException):
    """A payout would exceed what is still escrowed for a request."""

    def __init__(self, request_id: int, requested: int, available: int):
        super().__init__(
            f"Payout of {requested} exceeds escrow remaining ({available}) for request {request_id}",
            {"request_id": request_id, "requested": requested, "available": available},
        )
        self.request_id = request_id
        self.requested = requested
        self.available = available
