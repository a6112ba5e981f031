"""Proof and vote ledger: proof submission and staked upvotes."""

from __future__ import annotations

import logging

from ..exceptions import (
    DuplicateProofError,
    DuplicateVoteError,
    InsufficientStakeError,
    ProofNotFoundError,
    RequestExpiredError,
    SelfUpvoteError,
)
from .base import MarketComponent
from .enums import EventType
from .models import Proof, Upvote, validate_answer_code
from .payouts import min_upvote_stake

logger = logging.getLogger(__name__)


class ProofLedger(MarketComponent):
    """Owns proofs and upvotes while a request is open."""

    def submit_proof(self, caller: str, request_id: int, answer_code: int) -> int:
        """Submit the caller's answer to an open request.

        Returns:
            The index of the new proof within the request

        Raises:
            RequestExpiredError: the request is past expiry or not open
            AnswerNotValidError: code outside the request's answer domain
            DuplicateProofError: the caller already submitted a proof
        """
        with self.store.transaction(request_id) as txn:
            record = txn.record
            request = record.request
            if not request.is_open_at(txn.now):
                raise RequestExpiredError(request_id=request_id, expires_at=request.expires_at)
            validate_answer_code(request.answers, answer_code)
            if record.proof_by_verifier(caller) is not None:
                raise DuplicateProofError(request_id=request_id, verifier=caller)

            proof = Proof(
                request_id=request_id,
                index=len(record.proofs),
                verifier=caller,
                answer_code=answer_code,
                created_at=txn.now,
            )
            record.proofs.append(proof)
            txn.emit(
                EventType.PROOF_SUBMITTED,
                proof_index=proof.index,
                verifier=caller,
                answer_code=answer_code,
            )

        logger.info(f"Proof {proof.index} submitted by {caller} for request {request_id}: answer {answer_code}")
        return proof.index

    def upvote_proof(self, caller: str, request_id: int, proof_index: int, stake: int) -> None:
        """Stake behind one proof of an open request.

        The stake is taken in the request's reward denomination and held in
        escrow until the voter claims it back.

        Raises:
            RequestExpiredError: the request is past expiry or not open
            ProofNotFoundError: no proof at ``proof_index``
            InsufficientStakeError: stake below reward // 20
            SelfUpvoteError: the caller wrote the proof
            DuplicateVoteError: the caller already upvoted a proof of this request
            TransferError: the ledger could not take the stake
        """
        with self.store.transaction(request_id) as txn:
            record = txn.record
            request = record.request
            if not request.is_open_at(txn.now):
                raise RequestExpiredError(request_id=request_id, expires_at=request.expires_at)
            if not 0 <= proof_index < len(record.proofs):
                raise ProofNotFoundError(request_id=request_id, proof_index=proof_index)
            proof = record.proofs[proof_index]

            minimum = min_upvote_stake(request.reward_amount, self.params)
            if stake < minimum or stake <= 0:
                raise InsufficientStakeError(
                    f"Stake {stake} below minimum {max(minimum, 1)}",
                    minimum=max(minimum, 1),
                    received=stake,
                )
            if caller == proof.verifier:
                raise SelfUpvoteError(request_id=request_id, proof_index=proof_index)
            if caller in record.upvotes:
                raise DuplicateVoteError(request_id=request_id, voter=caller)

            self._receive(caller, request.reward_denomination, stake)

            proof.total_stake += stake
            record.escrowed += stake
            record.upvotes[caller] = Upvote(
                request_id=request_id,
                proof_index=proof_index,
                voter=caller,
                stake_amount=stake,
                denomination=request.reward_denomination,
                created_at=txn.now,
            )
            txn.emit(
                EventType.PROOF_UPVOTED,
                proof_index=proof_index,
                voter=caller,
                stake=stake,
                denomination=request.reward_denomination,
                total_stake=proof.total_stake,
            )

        logger.info(f"Proof {proof_index} of request {request_id} upvoted by {caller} with {stake}")
