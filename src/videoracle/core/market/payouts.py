"""Election, dispute tally and payout calculation functions.

Everything here is a pure function of the recorded proofs, upvotes and
votes. Nothing is cached: the elected proof and the dispute outcome are
recomputed whenever they are needed.

All splits use integer division, so rounding dust stays in escrow and is
never paid twice.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..config import MarketParameters
from .enums import DisputeOutcome
from .models import Dispute, DisputeVote, Proof, RequestRecord, Upvote


# ============================================================================
# Election
# ============================================================================

def elect_proof(proofs: Iterable[Proof]) -> Proof | None:
    """Return the proof with the greatest total stake.

    Ties go to the lowest index (earliest submitted). Returns None when
    there are no proofs.
    """
    elected: Proof | None = None
    for proof in proofs:
        if elected is None or proof.total_stake > elected.total_stake:
            elected = proof
        elif proof.total_stake == elected.total_stake and proof.index < elected.index:
            elected = proof
    return elected


def has_dissent(upvotes: Mapping[str, Upvote], elected: Proof | None) -> bool:
    """True when at least one upvote backs a proof other than the elected one."""
    if elected is None:
        return False
    return any(u.proof_index != elected.index for u in upvotes.values())


def eligible_dispute_voters(record: RequestRecord) -> set[str]:
    """Upvoters of the request, minus the requester and the elected verifier."""
    elected = elect_proof(record.proofs)
    excluded = {record.request.requester}
    if elected is not None:
        excluded.add(elected.verifier)
    return {voter for voter in record.upvotes if voter not in excluded}


def tally_dispute(votes: Iterable[DisputeVote]) -> DisputeOutcome:
    """Accepted only when supporting votes strictly outnumber opposing ones."""
    support = 0
    against = 0
    for vote in votes:
        if vote.support:
            support += 1
        else:
            against += 1
    return DisputeOutcome.ACCEPTED if support > against else DisputeOutcome.REJECTED


def dispute_outcome(dispute: Dispute | None) -> DisputeOutcome | None:
    if dispute is None:
        return None
    return tally_dispute(dispute.votes.values())


# ============================================================================
# Stake thresholds
# ============================================================================

def min_upvote_stake(reward_amount: int, params: MarketParameters) -> int:
    """Minimum stake behind an upvote (5% of the reward by default)."""
    return reward_amount // params.upvote_stake_divisor


def min_dispute_stake(reward_amount: int, params: MarketParameters) -> int:
    """Minimum stake to open a dispute (10% of the reward by default)."""
    return reward_amount // params.dispute_stake_divisor


# ============================================================================
# Timing
# ============================================================================

def dispute_creation_deadline(record: RequestRecord, params: MarketParameters) -> int:
    return record.request.expires_at + params.dispute_creation_window


def settlement_opens_at(record: RequestRecord, params: MarketParameters) -> int:
    """First instant at which claims are accepted for the request.

    Claims wait for the dispute creation window even when no dispute was
    filed, so a late dispute can never follow a payout.
    """
    opens = dispute_creation_deadline(record, params) + 1
    if record.dispute is not None:
        opens = max(opens, record.dispute.voting_closes_at + 1)
    return opens


def is_settled(record: RequestRecord, params: MarketParameters, now: int) -> bool:
    return now >= settlement_opens_at(record, params)


# ============================================================================
# Payouts
# ============================================================================

def verifier_pool(reward_amount: int, params: MarketParameters) -> int:
    return reward_amount // params.verifier_share_divisor


def voter_pool(reward_amount: int, params: MarketParameters) -> int:
    return reward_amount // params.verifier_share_divisor


def calculate_verifier_payout(record: RequestRecord, identity: str, params: MarketParameters) -> int:
    """Amount the elected verifier may claim, or 0 when not entitled.

    Args:
        record: The request record
        identity: The claiming identity
        params: Market parameters

    Returns:
        Half the reward when ``identity`` wrote the elected proof and no
        dispute overturned it.
    """
    elected = elect_proof(record.proofs)
    if elected is None or elected.verifier != identity:
        return 0
    if dispute_outcome(record.dispute) == DisputeOutcome.ACCEPTED:
        return 0
    return verifier_pool(record.request.reward_amount, params)


def calculate_voter_payout(record: RequestRecord, identity: str, params: MarketParameters) -> int:
    """Stake returned plus the voter's share of the voter pool.

    The share is ``pool * stake // elected.total_stake`` for backers of the
    elected proof when the election stands. Everyone else gets exactly their
    stake back.
    """
    upvote = record.upvotes.get(identity)
    if upvote is None:
        return 0

    payout = upvote.stake_amount
    elected = elect_proof(record.proofs)
    if (
        elected is not None
        and upvote.proof_index == elected.index
        and elected.total_stake > 0
        and dispute_outcome(record.dispute) != DisputeOutcome.ACCEPTED
    ):
        pool = voter_pool(record.request.reward_amount, params)
        payout += pool * upvote.stake_amount // elected.total_stake
    return payout


def calculate_requester_payout(record: RequestRecord, identity: str, params: MarketParameters) -> int:
    """Amount the requester may claim back.

    - Dispute accepted: the full reward plus the dispute stake
    - No proof ever submitted: the full reward
    - Undisputed election with no stake behind it: the voter pool nobody
      can claim
    """
    request = record.request
    if identity != request.requester:
        return 0

    outcome = dispute_outcome(record.dispute)
    if outcome == DisputeOutcome.ACCEPTED:
        return request.reward_amount + record.dispute.stake_amount
    if not record.proofs:
        return request.reward_amount
    if record.dispute is None:
        elected = elect_proof(record.proofs)
        if elected is not None and elected.total_stake == 0:
            return request.reward_amount - voter_pool(request.reward_amount, params)
    return 0
