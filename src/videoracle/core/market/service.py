"""Oracle service: the public operation surface of the market.

Wires the request registry, proof ledger, dispute arbitrator and settlement
engine to one store, ledger, clock and frozen set of market parameters.
Every mutating call takes the caller identity explicitly; the host is
responsible for making that identity unforgeable.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from ..clock import Clock, SystemClock
from ..config import MarketParameters, MarketSettings, get_config
from ..exceptions import ProofNotFoundError
from ..ledger import LedgerAdapter
from .arbitration import DisputeArbitrator
from .enums import DisputeOutcome, EventType
from .events import EventLog
from .models import (
    ClaimOutcome,
    ClaimState,
    Dispute,
    MarketEvent,
    Proof,
    Request,
    RequestSpec,
    Upvote,
)
from .payouts import dispute_outcome, elect_proof, settlement_opens_at
from .registry import RequestRegistry
from .settlement import SettlementEngine
from .store import MarketStore
from .voting import ProofLedger

logger = logging.getLogger(__name__)


class OracleService:
    """Decentralized verification market.

    Lifecycle of a request: created (reward escrowed) -> proofs and staked
    upvotes until expiry -> optional dispute during the grace window ->
    claims once every window has closed.

    Read accessors return detached copies; mutating them has no effect on
    the market.
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        clock: Clock | None = None,
        params: MarketParameters | None = None,
        events: EventLog | None = None,
    ):
        self.params = params or MarketParameters()
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.store = MarketStore(self.clock, events)

        self.registry = RequestRegistry(self.store, ledger, self.params)
        self.proofs = ProofLedger(self.store, ledger, self.params)
        self.arbitrator = DisputeArbitrator(self.store, ledger, self.params)
        self.settlement = SettlementEngine(self.store, ledger, self.params)

        logger.info(
            "Market started: fee=%d accepted=%s owner=%s",
            self.params.fee, ",".join(self.params.accepted_rewards), self.params.owner,
        )

    @classmethod
    def from_settings(
        cls,
        ledger: LedgerAdapter,
        clock: Clock | None = None,
        settings: MarketSettings | None = None,
    ) -> OracleService:
        """Build a service whose parameters come from configuration."""
        settings = settings or get_config()
        return cls(ledger, clock=clock, params=settings.market_parameters())

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def create_request(
        self,
        caller: str,
        spec: RequestSpec,
        accepted_answers: Sequence[str] = (),
        value: int = 0,
    ) -> int:
        return self.registry.create_request(caller, spec, accepted_answers, value)

    def abort_request(self, caller: str, request_id: int) -> int:
        return self.registry.abort_request(caller, request_id)

    def withdraw_fees(self, caller: str) -> int:
        return self.registry.withdraw_fees(caller)

    def submit_proof(self, caller: str, request_id: int, answer_code: int) -> int:
        return self.proofs.submit_proof(caller, request_id, answer_code)

    def upvote_proof(self, caller: str, request_id: int, proof_index: int, stake: int) -> None:
        self.proofs.upvote_proof(caller, request_id, proof_index, stake)

    def create_dispute(self, caller: str, request_id: int, reason: str, stake: int) -> int:
        return self.arbitrator.create_dispute(caller, request_id, reason, stake)

    def vote_on_dispute(self, caller: str, request_id: int, support: bool) -> None:
        self.arbitrator.vote_on_dispute(caller, request_id, support)

    def claim_funds_as_verifier(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        return self.settlement.claim_funds_as_verifier(caller, request_ids)

    def claim_funds_as_voter(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        return self.settlement.claim_funds_as_voter(caller, request_ids)

    def claim_funds_as_requester(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        return self.settlement.claim_funds_as_requester(caller, request_ids)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def total_requests(self) -> int:
        return self.store.total_requests

    @property
    def fee(self) -> int:
        return self.params.fee

    @property
    def accepted_rewards(self) -> tuple[str, ...]:
        return self.params.accepted_rewards

    @property
    def owner(self) -> str:
        return self.params.owner

    @property
    def fee_collector(self) -> str:
        return self.params.fee_collector

    @property
    def fees_collected(self) -> int:
        return self.store.fees_collected

    def get_request(self, request_id: int) -> Request:
        return self.store.snapshot(request_id).request

    def get_proofs(self, request_id: int) -> list[Proof]:
        return self.store.snapshot(request_id).proofs

    def get_proof(self, request_id: int, proof_index: int) -> Proof:
        with self.store.reading(request_id) as record:
            if not 0 <= proof_index < len(record.proofs):
                raise ProofNotFoundError(request_id=request_id, proof_index=proof_index)
            return copy.deepcopy(record.proofs[proof_index])

    def get_accepted_answers(self, request_id: int) -> list[str]:
        with self.store.reading(request_id) as record:
            return list(record.request.accepted_answers)

    def has_given_proof_to_request(self, request_id: int, identity: str) -> bool:
        with self.store.reading(request_id) as record:
            return record.proof_by_verifier(identity) is not None

    def get_upvote(self, request_id: int, identity: str) -> Upvote | None:
        with self.store.reading(request_id) as record:
            return copy.deepcopy(record.upvotes.get(identity))

    def get_elected_proof(self, request_id: int) -> Proof | None:
        with self.store.reading(request_id) as record:
            return copy.deepcopy(elect_proof(record.proofs))

    def get_dispute(self, request_id: int) -> Dispute | None:
        return self.store.snapshot(request_id).dispute

    def get_dispute_outcome(self, request_id: int) -> DisputeOutcome | None:
        """Current tally of the request's dispute; final once its voting window closes."""
        with self.store.reading(request_id) as record:
            return dispute_outcome(record.dispute)

    def get_claim_state(self, request_id: int) -> ClaimState:
        return self.store.snapshot(request_id).claims

    def get_settlement_time(self, request_id: int) -> int:
        with self.store.reading(request_id) as record:
            return settlement_opens_at(record, self.params)

    def get_escrow(self, request_id: int) -> dict[str, int]:
        with self.store.reading(request_id) as record:
            return {
                "escrowed": record.escrowed,
                "paid_out": record.paid_out,
                "remaining": record.escrow_remaining,
            }

    def describe_request(self, request_id: int) -> dict[str, Any]:
        """Everything known about a request, read from one consistent snapshot."""
        record = self.store.snapshot(request_id)
        elected = elect_proof(record.proofs)
        outcome = dispute_outcome(record.dispute)
        return {
            "request": record.request.to_dict(),
            "proofs": [proof.to_dict() for proof in record.proofs],
            "elected_proof": elected.to_dict() if elected else None,
            "dispute": record.dispute.to_dict() if record.dispute else None,
            "dispute_outcome": outcome.value if outcome else None,
            "settlement_opens_at": settlement_opens_at(record, self.params),
            "escrow": {
                "escrowed": record.escrowed,
                "paid_out": record.paid_out,
                "remaining": record.escrow_remaining,
            },
            "claims": record.claims.to_dict(),
        }

    def events(
        self,
        event_type: EventType | None = None,
        request_id: int | None = None,
        since: int = 0,
    ) -> list[MarketEvent]:
        return self.store.events.query(event_type=event_type, request_id=request_id, since=since)
