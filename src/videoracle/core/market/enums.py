"""Enums for the verification market.

Contains all enumeration types used for requests, disputes, claims
and events.
"""

from enum import Enum


class AnswerKind(str, Enum):
    """Shape of the answer a request asks for."""
    BINARY = "binary"            # Codes 0 and 1
    INTEGER = "integer"          # Codes 0..domain_size-1
    STRING = "string"            # Index into the accepted answers

    @classmethod
    def parse(cls, value: "AnswerKind | int | str") -> "AnswerKind":
        """Accept the enum, its value, or the positional code 0/1/2.

        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid answer kind: {value!r}")
        if isinstance(value, str) and value.isdigit():
            value = int(value)
        if isinstance(value, int):
            members = list(cls)
            if not 0 <= value < len(members):
                raise ValueError(f"Invalid answer kind: {value!r}")
            return members[value]
        return cls(str(value).lower())


class RequestStatus(str, Enum):
    """Status of a request."""
    OPEN = "open"                # Accepting proofs, votes or disputes
    ABORTED = "aborted"          # Withdrawn by the requester before any proof
    CLOSED = "closed"            # Settled, with or without a dispute


class DisputeStatus(str, Enum):
    """Status of a dispute."""
    OPEN = "open"
    CLOSED = "closed"


class DisputeOutcome(str, Enum):
    """Outcome of a dispute vote."""
    ACCEPTED = "accepted"        # The elected proof is overturned
    REJECTED = "rejected"        # The election stands


class ClaimRole(str, Enum):
    """Role a participant claims funds as."""
    VERIFIER = "verifier"
    VOTER = "voter"
    REQUESTER = "requester"


class ClaimStatus(str, Enum):
    """Per-request result of a batch claim."""
    PAID = "paid"
    ALREADY_CLAIMED = "already_claimed"
    NOT_ELIGIBLE = "not_eligible"
    NOT_SETTLED = "not_settled"  # Windows have not elapsed yet
    NOT_FOUND = "not_found"


class EventType(str, Enum):
    """Type of a market event."""
    REQUEST_CREATED = "request_created"
    REQUEST_ABORTED = "request_aborted"
    PROOF_SUBMITTED = "proof_submitted"
    PROOF_UPVOTED = "proof_upvoted"
    DISPUTE_CREATED = "dispute_created"
    VERIFICATION_REJECTED = "verification_rejected"
    DISPUTE_VOTE_CAST = "dispute_vote_cast"
    FUNDS_CLAIMED = "funds_claimed"
    FEES_WITHDRAWN = "fees_withdrawn"
