"""Data models for the verification market.

Requests, proofs, upvotes, disputes and claim state. Answers are a tagged
variant (``BinaryAnswers``, ``IntegerAnswers``, ``StringAnswers``) so the
three request kinds share one validation and election path.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..exceptions import AnswerNotValidError, InsufficientAnswersError, InvalidRequestError
from .enums import (
    AnswerKind,
    ClaimRole,
    ClaimStatus,
    DisputeStatus,
    EventType,
    RequestStatus,
)

BINARY_DOMAIN_SIZE = 2
MIN_DOMAIN_SIZE = 2
MIN_STRING_ANSWERS = 2


# ============================================================================
# Answer specifications
# ============================================================================


@dataclass(frozen=True)
class BinaryAnswers:
    kind: ClassVar[AnswerKind] = AnswerKind.BINARY

    @property
    def domain_size(self) -> int:
        return BINARY_DOMAIN_SIZE

    @property
    def accepted(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class IntegerAnswers:
    domain_size: int
    kind: ClassVar[AnswerKind] = AnswerKind.INTEGER

    @property
    def accepted(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class StringAnswers:
    accepted: tuple[str, ...]
    kind: ClassVar[AnswerKind] = AnswerKind.STRING

    @property
    def domain_size(self) -> int:
        return len(self.accepted)


AnswerSpec = BinaryAnswers | IntegerAnswers | StringAnswers


def build_answer_spec(
    kind: AnswerKind,
    answer_domain_size: int,
    accepted_answers: Sequence[str] = (),
) -> AnswerSpec:
    """Build the answer variant for a new request.

    Raises:
        InsufficientAnswersError: String kind with fewer than two answers
        InvalidRequestError: domain size or answers do not fit the kind
    """
    if kind == AnswerKind.STRING:
        if len(accepted_answers) < MIN_STRING_ANSWERS:
            raise InsufficientAnswersError(accepted=len(accepted_answers))
        return StringAnswers(tuple(str(a) for a in accepted_answers))

    if accepted_answers:
        raise InvalidRequestError(
            f"Accepted answers are only allowed for string requests, not {kind.value}",
            field="accepted_answers",
        )
    if kind == AnswerKind.BINARY:
        if answer_domain_size != BINARY_DOMAIN_SIZE:
            raise InvalidRequestError(
                f"Binary requests have exactly {BINARY_DOMAIN_SIZE} answers, got {answer_domain_size}",
                field="answer_domain_size",
            )
        return BinaryAnswers()

    if answer_domain_size < MIN_DOMAIN_SIZE:
        raise InvalidRequestError(
            f"Integer requests need at least {MIN_DOMAIN_SIZE} answers, got {answer_domain_size}",
            field="answer_domain_size",
        )
    return IntegerAnswers(answer_domain_size)


def validate_answer_code(answers: AnswerSpec, answer_code: int) -> None:
    """Reject answer codes outside ``[0, domain_size)``."""
    if isinstance(answer_code, bool) or not isinstance(answer_code, int):
        raise AnswerNotValidError(answer_code=answer_code)
    if not 0 <= answer_code < answers.domain_size:
        raise AnswerNotValidError(
            f"Answer {answer_code} outside [0, {answers.domain_size})",
            answer_code=answer_code,
        )


# ============================================================================
# Request
# ============================================================================


def _whole(name: str, value: Any) -> int:
    """Read an integer request field without truncating or coercing booleans."""
    if isinstance(value, bool):
        raise InvalidRequestError(f"{name} must be an integer, not a boolean", field=name)
    if isinstance(value, float) and not value.is_integer():
        raise InvalidRequestError(f"{name} must be a whole number, got {value}", field=name)
    return int(value)


@dataclass(frozen=True)
class RequestSpec:
    """What a requester submits to open a request.

    ``answer_domain_size`` is the count of valid answer codes. It is ignored
    for string requests, whose domain comes from the accepted answers.
    """

    kind: AnswerKind
    body: str
    location_hint: str
    reward_denomination: str
    reward_amount: int
    expires_at: int
    answer_domain_size: int = BINARY_DOMAIN_SIZE

    @classmethod
    def from_sequence(cls, values: Sequence[Any]) -> RequestSpec:
        """Build from the positional form
        ``(kind, body, location_hint, denomination, reward, expires_at, domain_size)``.
        """
        if len(values) != 7:
            raise InvalidRequestError(f"Expected 7 request fields, got {len(values)}")
        kind, body, location_hint, denomination, reward, expires_at, domain_size = values
        try:
            return cls(
                kind=AnswerKind.parse(kind),
                body=str(body),
                location_hint=str(location_hint),
                reward_denomination=str(denomination),
                reward_amount=_whole("reward_amount", reward),
                expires_at=_whole("expires_at", expires_at),
                answer_domain_size=_whole("answer_domain_size", domain_size),
            )
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(f"Malformed request: {e}") from e

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequestSpec:
        try:
            return cls(
                kind=AnswerKind.parse(data["kind"]),
                body=str(data.get("body", "")),
                location_hint=str(data.get("location_hint", "")),
                reward_denomination=str(data["reward_denomination"]),
                reward_amount=_whole("reward_amount", data["reward_amount"]),
                expires_at=_whole("expires_at", data["expires_at"]),
                answer_domain_size=_whole("answer_domain_size", data.get("answer_domain_size", BINARY_DOMAIN_SIZE)),
            )
        except KeyError as e:
            raise InvalidRequestError(f"Missing request field: {e.args[0]}", field=e.args[0]) from e
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(f"Malformed request: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "body": self.body,
            "location_hint": self.location_hint,
            "reward_denomination": self.reward_denomination,
            "reward_amount": self.reward_amount,
            "expires_at": self.expires_at,
            "answer_domain_size": self.answer_domain_size,
        }


@dataclass
class Request:
    """A posted question with an escrowed reward.

    Only ``status`` and ``dispute_id`` change after creation.
    """

    id: int
    answers: AnswerSpec
    body: str
    location_hint: str
    reward_denomination: str
    reward_amount: int
    expires_at: int
    requester: str
    fee_paid: int
    created_at: int
    status: RequestStatus = RequestStatus.OPEN
    dispute_id: int | None = None

    @property
    def answer_kind(self) -> AnswerKind:
        return self.answers.kind

    @property
    def answer_domain_size(self) -> int:
        return self.answers.domain_size

    @property
    def accepted_answers(self) -> tuple[str, ...]:
        return self.answers.accepted

    def is_open_at(self, now: int) -> bool:
        return self.status == RequestStatus.OPEN and now < self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "answer_kind": self.answer_kind.value,
            "body": self.body,
            "location_hint": self.location_hint,
            "reward_denomination": self.reward_denomination,
            "reward_amount": self.reward_amount,
            "expires_at": self.expires_at,
            "answer_domain_size": self.answer_domain_size,
            "accepted_answers": list(self.accepted_answers),
            "requester": self.requester,
            "fee_paid": self.fee_paid,
            "created_at": self.created_at,
            "status": self.status.value,
            "dispute_id": self.dispute_id,
        }


# ============================================================================
# Proofs and votes
# ============================================================================


@dataclass
class Proof:
    """A verifier's candidate answer to a request."""

    request_id: int
    index: int
    verifier: str
    answer_code: int
    created_at: int
    total_stake: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "index": self.index,
            "verifier": self.verifier,
            "answer_code": self.answer_code,
            "total_stake": self.total_stake,
            "created_at": self.created_at,
        }


@dataclass
class Upvote:
    """A staked endorsement of one proof. One per voter per request."""

    request_id: int
    proof_index: int
    voter: str
    stake_amount: int
    denomination: str
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "proof_index": self.proof_index,
            "voter": self.voter,
            "stake_amount": self.stake_amount,
            "denomination": self.denomination,
            "created_at": self.created_at,
        }


@dataclass
class DisputeVote:
    dispute_id: int
    voter: str
    support: bool
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "dispute_id": self.dispute_id,
            "voter": self.voter,
            "support": self.support,
            "created_at": self.created_at,
        }


@dataclass
class Dispute:
    """The requester's challenge to the elected proof."""

    id: int
    request_id: int
    disputer: str
    reason: str
    stake_amount: int
    created_at: int
    voting_closes_at: int
    status: DisputeStatus = DisputeStatus.OPEN
    votes: dict[str, DisputeVote] = field(default_factory=dict)

    def accepts_votes_at(self, now: int) -> bool:
        return self.status == DisputeStatus.OPEN and now <= self.voting_closes_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "disputer": self.disputer,
            "reason": self.reason,
            "stake_amount": self.stake_amount,
            "created_at": self.created_at,
            "voting_closes_at": self.voting_closes_at,
            "status": self.status.value,
            "votes": [v.to_dict() for v in self.votes.values()],
        }


# ============================================================================
# Claims and store records
# ============================================================================


@dataclass
class ClaimState:
    """At-most-once claim flags for one request."""

    claimed_as_verifier: bool = False
    claimed_as_voter: set[str] = field(default_factory=set)
    claimed_as_requester: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "claimed_as_verifier": self.claimed_as_verifier,
            "claimed_as_voter": sorted(self.claimed_as_voter),
            "claimed_as_requester": self.claimed_as_requester,
        }


@dataclass
class RequestRecord:
    """Everything the market holds for one request.

    ``escrowed`` counts every unit received for the request (reward, upvote
    stakes, dispute stake); ``paid_out`` counts every unit sent back out.
    """

    request: Request
    proofs: list[Proof] = field(default_factory=list)
    upvotes: dict[str, Upvote] = field(default_factory=dict)
    dispute: Dispute | None = None
    claims: ClaimState = field(default_factory=ClaimState)
    escrowed: int = 0
    paid_out: int = 0

    @property
    def escrow_remaining(self) -> int:
        return self.escrowed - self.paid_out

    def proof_by_verifier(self, identity: str) -> Proof | None:
        for proof in self.proofs:
            if proof.verifier == identity:
                return proof
        return None


@dataclass
class ClaimOutcome:
    """Result of claiming one request in a batch."""

    request_id: int
    role: ClaimRole
    status: ClaimStatus
    amount: int = 0
    denomination: str | None = None
    reason: str = ""

    @property
    def paid(self) -> bool:
        return self.status == ClaimStatus.PAID

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "role": self.role.value,
            "status": self.status.value,
            "amount": self.amount,
            "denomination": self.denomination,
            "reason": self.reason,
        }


@dataclass
class MarketEvent:
    """Append-only record of a committed state change."""

    sequence: int
    type: EventType
    request_id: int | None
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "type": self.type.value,
            "request_id": self.request_id,
            "timestamp": self.timestamp,
            "data": self.data,
        }
