# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Ledger adapter interface and an in-memory reference ledger.

The market never holds balances itself. Every movement of value goes through
a ``LedgerAdapter``:

- ``native_received(source, amount)``: the native payment carried by the call
- ``pull(denomination, source, amount)``: take approved tokens into escrow
- ``push(denomination, destination, amount)``: pay out of escrow

Adapters raise ``TransferError`` subclasses; the market lets them propagate
unmodified.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .config import NATIVE
from .exceptions import InsufficientAllowanceError, InsufficientBalanceError, ValidationException

logger = logging.getLogger(__name__)

ESCROW_ACCOUNT = "videoracle:escrow"


@runtime_checkable
class LedgerAdapter(Protocol):
    """Value-transfer primitives the market depends on."""

    def native_received(self, source: str, amount: int) -> None:
        """Accept native value attached to the current call from ``source``."""
        ...

    def pull(self, denomination: str, source: str, amount: int) -> None:
        """Move ``amount`` from ``source`` into escrow using its allowance."""
        ...

    def push(self, denomination: str, destination: str, amount: int) -> None:
        """Move ``amount`` out of escrow to ``destination``."""
        ...


@dataclass
class LedgerTransfer:
    """One completed movement of value."""

    denomination: str
    source: str
    destination: str
    amount: int
    kind: str  # "native", "pull" or "push"

    def to_dict(self) -> dict:
        return {
            "denomination": self.denomination,
            "source": self.source,
            "destination": self.destination,
            "amount": self.amount,
            "kind": self.kind,
        }


@dataclass
class InMemoryLedger:
    """Thread-safe in-memory ledger with balances and allowances.

    Allowances are what a holder has approved the market to pull. Native
    value needs no allowance because it arrives with the call.
    """

    escrow_account: str = ESCROW_ACCOUNT
    _balances: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    _allowances: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    _history: list[LedgerTransfer] = field(default_factory=list)
    _lock: threading.RLock = field(default_factory=threading.RLock)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_genesis(
        cls,
        balances: Mapping[str, Mapping[str, int]] | None = None,
        allowances: Mapping[str, Mapping[str, int]] | None = None,
    ) -> InMemoryLedger:
        """Ledger opened with ``{denomination: {account: amount}}`` balances and allowances."""
        ledger = cls()
        for denomination, accounts in (balances or {}).items():
            for account, amount in accounts.items():
                ledger.mint(denomination, account, amount)
        for denomination, owners in (allowances or {}).items():
            for owner, amount in owners.items():
                ledger.approve(denomination, owner, amount)
        if balances:
            logger.info(
                "Ledger opened with %d funded accounts",
                sum(len(accounts) for accounts in balances.values()),
            )
        return ledger

    def mint(self, denomination: str, account: str, amount: int) -> None:
        """Credit ``account`` with new units (test and bootstrap helper)."""
        if amount < 0:
            raise ValidationException("Mint amount cannot be negative", "amount", amount)
        with self._lock:
            self._balances[(denomination, account)] += amount

    def approve(self, denomination: str, owner: str, amount: int) -> None:
        """Set how much of ``denomination`` the market may pull from ``owner``."""
        if amount < 0:
            raise ValidationException("Allowance cannot be negative", "amount", amount)
        with self._lock:
            self._allowances[(denomination, owner)] = amount

    def balance_of(self, denomination: str, account: str) -> int:
        with self._lock:
            return self._balances.get((denomination, account), 0)

    def allowance(self, denomination: str, owner: str) -> int:
        with self._lock:
            return self._allowances.get((denomination, owner), 0)

    def escrow_balance(self, denomination: str) -> int:
        return self.balance_of(denomination, self.escrow_account)

    @property
    def history(self) -> list[LedgerTransfer]:
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # LedgerAdapter
    # ------------------------------------------------------------------

    def native_received(self, source: str, amount: int) -> None:
        if amount == 0:
            return
        with self._lock:
            self._debit(NATIVE, source, amount)
            self._balances[(NATIVE, self.escrow_account)] += amount
            self._history.append(LedgerTransfer(NATIVE, source, self.escrow_account, amount, "native"))

    def pull(self, denomination: str, source: str, amount: int) -> None:
        if amount == 0:
            return
        with self._lock:
            approved = self._allowances.get((denomination, source), 0)
            if approved < amount:
                raise InsufficientAllowanceError(
                    f"Allowance {approved} below {amount} for {source}",
                    denomination,
                    source,
                    amount,
                )
            self._debit(denomination, source, amount)
            self._allowances[(denomination, source)] = approved - amount
            self._balances[(denomination, self.escrow_account)] += amount
            self._history.append(LedgerTransfer(denomination, source, self.escrow_account, amount, "pull"))

    def push(self, denomination: str, destination: str, amount: int) -> None:
        if amount == 0:
            return
        with self._lock:
            self._debit(denomination, self.escrow_account, amount)
            self._balances[(denomination, destination)] += amount
            self._history.append(LedgerTransfer(denomination, self.escrow_account, destination, amount, "push"))

    def _debit(self, denomination: str, account: str, amount: int) -> None:
        if amount < 0:
            raise ValidationException("Transfer amount cannot be negative", "amount", amount)
        held = self._balances.get((denomination, account), 0)
        if held < amount:
            raise InsufficientBalanceError(
                f"Balance {held} below {amount} for {account}",
                denomination,
                account,
                amount,
            )
        self._balances[(denomination, account)] = held - amount
