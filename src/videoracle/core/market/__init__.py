"""Verification market for VideOracle.

This package implements the request lifecycle:
- Requesters post questions with an escrowed reward
- Verifiers submit proofs (candidate answers)
- Stakers upvote proofs; the highest-staked proof is elected
- The requester may dispute the election; other upvoters decide
- Participants claim their settled share once every window has closed

Submodules:
- enums: Enumeration types for requests, disputes, claims and events
- models: Data models, including the tagged answer variant
- payouts: Election, dispute tally and payout calculations
- store: Per-request locked arena with scoped transactions
- events: Append-only event log
- registry, voting, arbitration, settlement: the four market components
- service: OracleService, the public operation surface
"""

from .enums import (
    AnswerKind,
    ClaimRole,
    ClaimStatus,
    DisputeOutcome,
    DisputeStatus,
    EventType,
    RequestStatus,
)
from .events import EventLog
from .models import (
    AnswerSpec,
    BinaryAnswers,
    ClaimOutcome,
    ClaimState,
    Dispute,
    DisputeVote,
    IntegerAnswers,
    MarketEvent,
    Proof,
    Request,
    RequestRecord,
    RequestSpec,
    StringAnswers,
    Upvote,
    build_answer_spec,
    validate_answer_code,
)
from .payouts import (
    calculate_requester_payout,
    calculate_verifier_payout,
    calculate_voter_payout,
    elect_proof,
    eligible_dispute_voters,
    has_dissent,
    min_dispute_stake,
    min_upvote_stake,
    settlement_opens_at,
    tally_dispute,
)
from .service import OracleService
from .store import MarketStore

__all__ = [
    # Enums
    "AnswerKind",
    "ClaimRole",
    "ClaimStatus",
    "DisputeOutcome",
    "DisputeStatus",
    "EventType",
    "RequestStatus",
    # Models
    "AnswerSpec",
    "BinaryAnswers",
    "IntegerAnswers",
    "StringAnswers",
    "RequestSpec",
    "Request",
    "Proof",
    "Upvote",
    "Dispute",
    "DisputeVote",
    "ClaimState",
    "ClaimOutcome",
    "RequestRecord",
    "MarketEvent",
    "build_answer_spec",
    "validate_answer_code",
    # Calculations
    "elect_proof",
    "has_dissent",
    "eligible_dispute_voters",
    "tally_dispute",
    "min_upvote_stake",
    "min_dispute_stake",
    "settlement_opens_at",
    "calculate_verifier_payout",
    "calculate_voter_payout",
    "calculate_requester_payout",
    # Infrastructure
    "EventLog",
    "MarketStore",
    # Service
    "OracleService",
]
