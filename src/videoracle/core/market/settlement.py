"""Settlement engine: batch claims for verifiers, voters and requesters.

Each request in a batch is settled in its own transaction and reported
with a ``ClaimOutcome``; a request that does not qualify never fails the
batch. Claims are idempotent: a second claim for the same request, role
and identity reports ``ALREADY_CLAIMED`` and moves nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..config import MarketParameters
from ..exceptions import RequestNotFoundError
from .base import MarketComponent
from .enums import ClaimRole, ClaimStatus, DisputeStatus, EventType, RequestStatus
from .models import ClaimOutcome, ClaimState, RequestRecord
from .payouts import (
    calculate_requester_payout,
    calculate_verifier_payout,
    calculate_voter_payout,
    is_settled,
    settlement_opens_at,
)
from .store import Transaction

logger = logging.getLogger(__name__)

PayoutFn = Callable[[RequestRecord, str, MarketParameters], int]

_PAYOUTS: dict[ClaimRole, PayoutFn] = {
    ClaimRole.VERIFIER: calculate_verifier_payout,
    ClaimRole.VOTER: calculate_voter_payout,
    ClaimRole.REQUESTER: calculate_requester_payout,
}


def _already_claimed(claims: ClaimState, role: ClaimRole, identity: str) -> bool:
    if role == ClaimRole.VERIFIER:
        return claims.claimed_as_verifier
    if role == ClaimRole.VOTER:
        return identity in claims.claimed_as_voter
    return claims.claimed_as_requester


def _mark_claimed(claims: ClaimState, role: ClaimRole, identity: str) -> None:
    if role == ClaimRole.VERIFIER:
        claims.claimed_as_verifier = True
    elif role == ClaimRole.VOTER:
        claims.claimed_as_voter.add(identity)
    else:
        claims.claimed_as_requester = True


class SettlementEngine(MarketComponent):
    """Computes and pays out settled shares."""

    def claim_funds_as_verifier(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        """Claim half the reward for every request where the caller's proof was elected."""
        return self.claim(caller, request_ids, ClaimRole.VERIFIER)

    def claim_funds_as_voter(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        """Claim back stakes, plus reward shares where the caller backed the elected proof."""
        return self.claim(caller, request_ids, ClaimRole.VOTER)

    def claim_funds_as_requester(self, caller: str, request_ids: Iterable[int]) -> list[ClaimOutcome]:
        """Claim back the reward (and dispute stake) where the requester is owed it."""
        return self.claim(caller, request_ids, ClaimRole.REQUESTER)

    def claim(self, caller: str, request_ids: Iterable[int], role: ClaimRole) -> list[ClaimOutcome]:
        outcomes = []
        for request_id in request_ids:
            try:
                with self.store.transaction(request_id) as txn:
                    outcome = self._settle(txn, caller, role)
            except RequestNotFoundError:
                outcome = ClaimOutcome(request_id, role, ClaimStatus.NOT_FOUND, reason="unknown request")
            if not outcome.paid:
                logger.debug(
                    "Claim by %s as %s on request %s: %s (%s)",
                    caller, role.value, request_id, outcome.status.value, outcome.reason,
                )
            outcomes.append(outcome)
        return outcomes

    def _settle(self, txn: Transaction, caller: str, role: ClaimRole) -> ClaimOutcome:
        record = txn.record
        request = record.request

        def outcome(status: ClaimStatus, amount: int = 0, reason: str = "") -> ClaimOutcome:
            return ClaimOutcome(request.id, role, status, amount, request.reward_denomination, reason)

        if request.status == RequestStatus.ABORTED:
            return outcome(ClaimStatus.NOT_ELIGIBLE, reason="request aborted")
        if not is_settled(record, self.params, txn.now):
            opens = settlement_opens_at(record, self.params)
            return outcome(ClaimStatus.NOT_SETTLED, reason=f"settlement opens at {opens}")

        amount = _PAYOUTS[role](record, caller, self.params)
        if amount <= 0:
            return outcome(ClaimStatus.NOT_ELIGIBLE, reason=f"nothing owed to {caller} as {role.value}")
        if _already_claimed(record.claims, role, caller):
            return outcome(ClaimStatus.ALREADY_CLAIMED, reason="already claimed")

        _mark_claimed(record.claims, role, caller)
        request.status = RequestStatus.CLOSED
        if record.dispute is not None:
            record.dispute.status = DisputeStatus.CLOSED

        self._pay(txn, request.reward_denomination, caller, amount)
        txn.emit(
            EventType.FUNDS_CLAIMED,
            claimant=caller,
            role=role.value,
            denomination=request.reward_denomination,
            amount=amount,
        )
        logger.info(f"Request {request.id}: {caller} claimed {amount} {request.reward_denomination} as {role.value}")
        return outcome(ClaimStatus.PAID, amount)
