"""Tests for election, dispute tally and payout calculations."""

from __future__ import annotations

from videoracle.core.config import NATIVE, THREE_DAYS, MarketParameters
from videoracle.core.market import (
    BinaryAnswers,
    Dispute,
    DisputeOutcome,
    DisputeVote,
    Proof,
    Request,
    RequestRecord,
    Upvote,
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

PARAMS = MarketParameters()
REWARD = 1000
EXPIRES = 10_000


def _record(verifiers=(), upvotes=(), reward=REWARD) -> RequestRecord:
    """Record with one proof per verifier and ``(voter, proof_index, stake)`` upvotes."""
    request = Request(
        id=1,
        answers=BinaryAnswers(),
        body="",
        location_hint="",
        reward_denomination=NATIVE,
        reward_amount=reward,
        expires_at=EXPIRES,
        requester="requester",
        fee_paid=0,
        created_at=0,
    )
    record = RequestRecord(request=request, escrowed=reward)
    for index, verifier in enumerate(verifiers):
        record.proofs.append(Proof(1, index, verifier, 0, 0))
    for voter, index, stake in upvotes:
        record.upvotes[voter] = Upvote(1, index, voter, stake, NATIVE, 0)
        record.proofs[index].total_stake += stake
        record.escrowed += stake
    return record


def _dispute(record: RequestRecord, votes=(), stake=100) -> Dispute:
    dispute = Dispute(1, 1, "requester", "wrong", stake, created_at=EXPIRES, voting_closes_at=EXPIRES + THREE_DAYS)
    for voter, support in votes:
        dispute.votes[voter] = DisputeVote(1, voter, support, EXPIRES)
    record.dispute = dispute
    record.escrowed += stake
    return dispute


# ============================================================================
# Election
# ============================================================================


class TestElectProof:
    def test_no_proofs(self):
        assert elect_proof([]) is None

    def test_highest_stake_wins(self):
        record = _record(["alice", "bob"], [("carol", 1, 60), ("dave", 0, 50)])
        assert elect_proof(record.proofs).verifier == "bob"

    def test_tie_goes_to_lowest_index(self):
        record = _record(["alice", "bob", "erin"], [("carol", 2, 50), ("dave", 1, 50)])
        assert elect_proof(record.proofs).index == 1

    def test_zero_stake_elects_first(self):
        record = _record(["alice", "bob"])
        assert elect_proof(record.proofs).index == 0


class TestDissent:
    def test_all_upvotes_on_elected(self):
        record = _record(["alice", "bob"], [("carol", 0, 50), ("dave", 0, 50)])
        assert not has_dissent(record.upvotes, elect_proof(record.proofs))

    def test_upvote_elsewhere(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        assert has_dissent(record.upvotes, elect_proof(record.proofs))

    def test_no_proofs_no_dissent(self):
        assert not has_dissent({}, None)

    def test_eligible_voters_exclude_requester_and_elected_verifier(self):
        record = _record(
            ["alice", "bob"],
            [("carol", 0, 200), ("alice", 1, 50), ("requester", 1, 50), ("dave", 1, 50)],
        )
        assert elect_proof(record.proofs).verifier == "alice"
        assert eligible_dispute_voters(record) == {"carol", "dave"}


class TestTally:
    def test_no_votes_rejected(self):
        assert tally_dispute([]) is DisputeOutcome.REJECTED

    def test_tie_rejected(self):
        votes = [DisputeVote(1, "a", True, 0), DisputeVote(1, "b", False, 0)]
        assert tally_dispute(votes) is DisputeOutcome.REJECTED

    def test_majority_support_accepted(self):
        votes = [DisputeVote(1, "a", True, 0), DisputeVote(1, "b", True, 0), DisputeVote(1, "c", False, 0)]
        assert tally_dispute(votes) is DisputeOutcome.ACCEPTED

    def test_counts_votes_not_stake(self):
        record = _record(["alice", "bob"], [("carol", 0, 900), ("dave", 1, 50), ("erin", 1, 50)])
        _dispute(record, votes=[("carol", False), ("dave", True), ("erin", True)])
        assert tally_dispute(record.dispute.votes.values()) is DisputeOutcome.ACCEPTED


# ============================================================================
# Thresholds and timing
# ============================================================================


class TestThresholds:
    def test_min_upvote_stake(self):
        assert min_upvote_stake(10**18, PARAMS) == 5 * 10**16

    def test_min_dispute_stake(self):
        assert min_dispute_stake(10**18, PARAMS) == 10**17

    def test_settlement_without_dispute(self):
        assert settlement_opens_at(_record(["alice"]), PARAMS) == EXPIRES + THREE_DAYS + 1

    def test_settlement_waits_for_voting(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        _dispute(record)
        record.dispute.voting_closes_at = EXPIRES + 2 * THREE_DAYS
        assert settlement_opens_at(record, PARAMS) == EXPIRES + 2 * THREE_DAYS + 1


# ============================================================================
# Payouts
# ============================================================================


class TestVerifierPayout:
    def test_elected_verifier_gets_half(self):
        record = _record(["alice", "bob"], [("carol", 0, 60)])
        assert calculate_verifier_payout(record, "alice", PARAMS) == REWARD // 2
        assert calculate_verifier_payout(record, "bob", PARAMS) == 0

    def test_nothing_after_accepted_dispute(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        _dispute(record, votes=[("dave", True)])
        assert calculate_verifier_payout(record, "alice", PARAMS) == 0

    def test_paid_after_rejected_dispute(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        _dispute(record, votes=[("dave", False)])
        assert calculate_verifier_payout(record, "alice", PARAMS) == REWARD // 2


class TestVoterPayout:
    def test_pro_rata_share(self):
        record = _record(["alice", "bob"], [("carol", 0, 75), ("dave", 0, 25), ("erin", 1, 50)])
        pool = REWARD // 2
        assert calculate_voter_payout(record, "carol", PARAMS) == 75 + pool * 75 // 100
        assert calculate_voter_payout(record, "dave", PARAMS) == 25 + pool * 25 // 100
        assert calculate_voter_payout(record, "erin", PARAMS) == 50

    def test_stake_only_after_accepted_dispute(self):
        record = _record(["alice", "bob"], [("carol", 0, 75), ("erin", 1, 50)])
        _dispute(record, votes=[("erin", True)])
        assert calculate_voter_payout(record, "carol", PARAMS) == 75

    def test_non_voter(self):
        assert calculate_voter_payout(_record(["alice"]), "carol", PARAMS) == 0

    def test_rounding_never_exceeds_pool(self):
        record = _record(["alice"], [("carol", 0, 51), ("dave", 0, 51), ("erin", 0, 51)])
        pool = REWARD // 2
        shares = sum(calculate_voter_payout(record, v, PARAMS) - 51 for v in ("carol", "dave", "erin"))
        assert shares <= pool


class TestRequesterPayout:
    def test_accepted_dispute_refunds_reward_and_stake(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        _dispute(record, votes=[("dave", True)], stake=100)
        assert calculate_requester_payout(record, "requester", PARAMS) == REWARD + 100

    def test_rejected_dispute_pays_nothing(self):
        record = _record(["alice", "bob"], [("carol", 0, 60), ("dave", 1, 50)])
        _dispute(record, votes=[("dave", False)])
        assert calculate_requester_payout(record, "requester", PARAMS) == 0

    def test_no_proofs_full_refund(self):
        assert calculate_requester_payout(_record(), "requester", PARAMS) == REWARD

    def test_unstaked_election_returns_voter_pool(self):
        record = _record(["alice"])
        assert calculate_requester_payout(record, "requester", PARAMS) == REWARD - REWARD // 2

    def test_staked_election_pays_nothing(self):
        record = _record(["alice"], [("carol", 0, 60)])
        assert calculate_requester_payout(record, "requester", PARAMS) == 0

    def test_only_the_requester(self):
        assert calculate_requester_payout(_record(), "mallory", PARAMS) == 0
