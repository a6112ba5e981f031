"""Request registry: creation, abort and fee withdrawal."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..config import NATIVE
from ..exceptions import (
    CannotAbortNowError,
    FeeMissingError,
    InvalidAmountReceivedError,
    InvalidRequestError,
    NotFeeCollectorError,
    NotRequesterError,
    UnsupportedRewardError,
)
from .base import MarketComponent
from .enums import EventType, RequestStatus
from .models import Request, RequestRecord, RequestSpec, build_answer_spec

logger = logging.getLogger(__name__)


class RequestRegistry(MarketComponent):
    """Owns request creation and abort, and the collected fees."""

    def create_request(
        self,
        caller: str,
        spec: RequestSpec,
        accepted_answers: Sequence[str] = (),
        value: int = 0,
    ) -> int:
        """Open a new request and escrow its reward.

        Args:
            caller: Identity of the requester
            spec: Request fields
            accepted_answers: Answer strings, required for string requests
            value: Native value attached to the call (fee, plus the reward
                when the reward is native)

        Returns:
            The new request id

        Raises:
            UnsupportedRewardError: denomination not accepted
            InvalidRequestError: non-positive reward, past expiry, bad domain
            InsufficientAnswersError: string request with fewer than two answers
            FeeMissingError: attached value does not carry the fee
            InvalidAmountReceivedError: attached value is otherwise wrong
            TransferError: the ledger could not take the funds
        """
        now = self.store.clock.now()
        params = self.params

        if not params.accepts(spec.reward_denomination):
            raise UnsupportedRewardError(denomination=spec.reward_denomination)
        if spec.reward_amount <= 0:
            raise InvalidRequestError("Reward must be positive", field="reward_amount")
        if spec.expires_at <= now:
            raise InvalidRequestError("Expiry must be in the future", field="expires_at")

        answers = build_answer_spec(spec.kind, spec.answer_domain_size, accepted_answers)

        native = spec.reward_denomination == NATIVE
        owed = params.fee + (spec.reward_amount if native else 0)
        if value != owed:
            if value < params.fee or (native and value == spec.reward_amount):
                raise FeeMissingError(fee=params.fee, received=value)
            raise InvalidAmountReceivedError(
                f"Expected {owed}, received {value}",
                expected=owed,
                received=value,
            )

        self.ledger.native_received(caller, value)
        if not native:
            try:
                self.ledger.pull(spec.reward_denomination, caller, spec.reward_amount)
            except Exception:
                # Hand the native fee back before the transfer error propagates
                self.ledger.push(NATIVE, caller, value)
                raise

        def build(request_id: int) -> RequestRecord:
            request = Request(
                id=request_id,
                answers=answers,
                body=spec.body,
                location_hint=spec.location_hint,
                reward_denomination=spec.reward_denomination,
                reward_amount=spec.reward_amount,
                expires_at=spec.expires_at,
                requester=caller,
                fee_paid=params.fee,
                created_at=now,
            )
            return RequestRecord(request=request, escrowed=spec.reward_amount)

        record = self.store.add_request(build, fee=params.fee)
        request = record.request
        self.store.events.publish([
            (
                EventType.REQUEST_CREATED,
                request.id,
                now,
                {
                    "requester": caller,
                    "answer_kind": request.answer_kind.value,
                    "reward_denomination": request.reward_denomination,
                    "reward_amount": request.reward_amount,
                    "expires_at": request.expires_at,
                },
            )
        ])

        logger.info(
            f"Request {request.id} created by {caller}: {request.answer_kind.value}, "
            f"{request.reward_amount} {request.reward_denomination}, expires {request.expires_at}"
        )
        return request.id

    def abort_request(self, caller: str, request_id: int) -> int:
        """Withdraw a request that has no proofs yet and refund its reward.

        The fee is kept. Returns the refunded amount.
        """
        with self.store.transaction(request_id) as txn:
            request = txn.request
            if caller != request.requester:
                raise NotRequesterError(request_id=request_id)
            if request.status != RequestStatus.OPEN or txn.record.proofs:
                raise CannotAbortNowError(
                    request_id=request_id,
                    status=request.status.value,
                    proofs=len(txn.record.proofs),
                )

            request.status = RequestStatus.ABORTED
            self._pay(txn, request.reward_denomination, caller, request.reward_amount)
            txn.emit(
                EventType.REQUEST_ABORTED,
                requester=caller,
                refund=request.reward_amount,
                denomination=request.reward_denomination,
            )

        logger.info(f"Request {request_id} aborted by {caller}")
        return request.reward_amount

    def withdraw_fees(self, caller: str) -> int:
        """Send every collected fee to the fee collector."""
        if caller != self.params.fee_collector:
            raise NotFeeCollectorError(caller=caller)

        with self.store.withdrawing_fees() as amount:
            self.ledger.push(NATIVE, caller, amount)

        self.store.events.publish([
            (EventType.FEES_WITHDRAWN, None, self.store.clock.now(), {"collector": caller, "amount": amount})
        ])
        logger.info("Fees withdrawn by %s: %d", caller, amount)
        return amount
