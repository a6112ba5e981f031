"""Shared plumbing for the market components."""

from __future__ import annotations

import logging

from ..config import NATIVE, MarketParameters
from ..exceptions import SettlementInvariantError
from ..ledger import LedgerAdapter
from .store import MarketStore, Transaction

logger = logging.getLogger(__name__)


class MarketComponent:
    """Base for the registry, vote ledger, arbitrator and settlement engine.

    All components of one market share a store, a ledger and one set of
    frozen parameters.
    """

    def __init__(self, store: MarketStore, ledger: LedgerAdapter, params: MarketParameters):
        self.store = store
        self.ledger = ledger
        self.params = params

    def _receive(self, caller: str, denomination: str, amount: int) -> None:
        """Take ``amount`` of ``denomination`` from the caller into escrow."""
        if denomination == NATIVE:
            self.ledger.native_received(caller, amount)
        else:
            self.ledger.pull(denomination, caller, amount)

    def _pay(self, txn: Transaction, denomination: str, destination: str, amount: int) -> None:
        """Pay out of a request's escrow, refusing to exceed what it holds."""
        record = txn.record
        if amount > record.escrow_remaining:
            logger.error(
                "Refusing payout of %d to %s: request %d has %d left in escrow",
                amount, destination, record.request.id, record.escrow_remaining,
            )
            raise SettlementInvariantError(record.request.id, amount, record.escrow_remaining)
        self.ledger.push(denomination, destination, amount)
        record.paid_out += amount
