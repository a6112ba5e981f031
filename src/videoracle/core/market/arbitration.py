"""Dispute arbitrator: dispute creation and dispute voting.

A dispute is the requester's challenge to the elected proof. It can only be
opened in the grace window after expiry, only when some upvote backed a
different proof, and it is decided by the request's other upvoters.
"""

from __future__ import annotations

import logging

from ..exceptions import (
    DisputeClosedError,
    DuplicateVoteError,
    InsufficientStakeError,
    NoDissentError,
    NoLongerDisputableError,
    NotEligibleError,
    NotRequesterError,
    RequestNotExpiredError,
)
from .base import MarketComponent
from .enums import EventType, RequestStatus
from .models import Dispute, DisputeVote
from .payouts import (
    dispute_creation_deadline,
    elect_proof,
    eligible_dispute_voters,
    has_dissent,
    min_dispute_stake,
)

logger = logging.getLogger(__name__)


class DisputeArbitrator(MarketComponent):
    """Owns disputes and dispute votes."""

    def create_dispute(self, caller: str, request_id: int, reason: str, stake: int) -> int:
        """Open a dispute against the elected proof.

        Returns:
            The new dispute id

        Raises:
            RequestNotExpiredError: the request is still open for proofs
            NoLongerDisputableError: past the grace window, not open, or already disputed
            NotRequesterError: only the requester may dispute
            NoDissentError: every upvote backs the elected proof
            InsufficientStakeError: stake below reward // 10
            TransferError: the ledger could not take the stake
        """
        with self.store.transaction(request_id) as txn:
            record = txn.record
            request = record.request
            now = txn.now

            if now < request.expires_at:
                raise RequestNotExpiredError(request_id=request_id, expires_at=request.expires_at)
            deadline = dispute_creation_deadline(record, self.params)
            if now > deadline or request.status != RequestStatus.OPEN or record.dispute is not None:
                raise NoLongerDisputableError(request_id=request_id, deadline=deadline)
            if caller != request.requester:
                raise NotRequesterError(request_id=request_id)

            elected = elect_proof(record.proofs)
            if not has_dissent(record.upvotes, elected):
                raise NoDissentError(request_id=request_id)

            minimum = min_dispute_stake(request.reward_amount, self.params)
            if stake < minimum or stake <= 0:
                raise InsufficientStakeError(
                    f"Dispute stake {stake} below minimum {max(minimum, 1)}",
                    minimum=max(minimum, 1),
                    received=stake,
                )

            self._receive(caller, request.reward_denomination, stake)

            dispute = Dispute(
                id=self.store.allocate_dispute_id(),
                request_id=request_id,
                disputer=caller,
                reason=reason,
                stake_amount=stake,
                created_at=now,
                voting_closes_at=now + self.params.dispute_voting_window,
            )
            record.dispute = dispute
            record.escrowed += stake
            request.dispute_id = dispute.id

            txn.emit(
                EventType.DISPUTE_CREATED,
                dispute_id=dispute.id,
                disputer=caller,
                stake=stake,
                voting_closes_at=dispute.voting_closes_at,
            )
            txn.emit(
                EventType.VERIFICATION_REJECTED,
                dispute_id=dispute.id,
                proof_index=elected.index,
                verifier=elected.verifier,
                reason=reason,
            )

        logger.info(
            f"Dispute {dispute.id} opened by {caller} on request {request_id} "
            f"against proof {elected.index}; voting closes {dispute.voting_closes_at}"
        )
        return dispute.id

    def vote_on_dispute(self, caller: str, request_id: int, support: bool) -> None:
        """Cast the caller's vote on the request's dispute.

        ``support=True`` sides with the requester against the elected proof.

        Raises:
            DisputeClosedError: no dispute, or its voting window has passed
            NotEligibleError: requester, elected verifier, or not an upvoter
            DuplicateVoteError: the caller already voted on this dispute
        """
        with self.store.transaction(request_id) as txn:
            record = txn.record
            dispute = record.dispute
            if dispute is None or not dispute.accepts_votes_at(txn.now):
                raise DisputeClosedError(request_id=request_id)
            if caller not in eligible_dispute_voters(record):
                raise NotEligibleError(request_id=request_id, voter=caller)
            if caller in dispute.votes:
                raise DuplicateVoteError(request_id=request_id, voter=caller)

            dispute.votes[caller] = DisputeVote(
                dispute_id=dispute.id,
                voter=caller,
                support=bool(support),
                created_at=txn.now,
            )
            txn.emit(
                EventType.DISPUTE_VOTE_CAST,
                dispute_id=dispute.id,
                voter=caller,
                support=bool(support),
            )

        logger.info(f"Dispute {dispute.id} vote by {caller}: {'support' if support else 'oppose'}")
