"""Tests for videoracle.core.ledger - the in-memory reference ledger."""

from __future__ import annotations

import pytest

from videoracle.core.config import NATIVE
from videoracle.core.exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    ValidationException,
)
from videoracle.core.ledger import ESCROW_ACCOUNT, InMemoryLedger, LedgerAdapter


@pytest.fixture
def funded() -> InMemoryLedger:
    ledger = InMemoryLedger()
    ledger.mint(NATIVE, "alice", 100)
    ledger.mint("wmatic", "alice", 100)
    return ledger


class TestSetup:
    def test_implements_adapter(self):
        assert isinstance(InMemoryLedger(), LedgerAdapter)

    def test_mint_and_balance(self, funded):
        assert funded.balance_of(NATIVE, "alice") == 100
        assert funded.balance_of(NATIVE, "bob") == 0

    def test_negative_mint_rejected(self):
        with pytest.raises(ValidationException):
            InMemoryLedger().mint(NATIVE, "alice", -1)

    def test_approve_sets_allowance(self, funded):
        funded.approve("wmatic", "alice", 30)
        assert funded.allowance("wmatic", "alice") == 30
        funded.approve("wmatic", "alice", 10)
        assert funded.allowance("wmatic", "alice") == 10


class TestNativeReceived:
    def test_moves_to_escrow(self, funded):
        funded.native_received("alice", 40)
        assert funded.balance_of(NATIVE, "alice") == 60
        assert funded.escrow_balance(NATIVE) == 40
        assert funded.history[-1].kind == "native"

    def test_insufficient_balance(self, funded):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            funded.native_received("alice", 101)
        assert exc_info.value.account == "alice"
        assert funded.balance_of(NATIVE, "alice") == 100

    def test_zero_is_noop(self, funded):
        funded.native_received("bob", 0)
        assert funded.history == []


class TestPull:
    def test_requires_allowance(self, funded):
        with pytest.raises(InsufficientAllowanceError):
            funded.pull("wmatic", "alice", 10)
        assert funded.escrow_balance("wmatic") == 0

    def test_pull_consumes_allowance(self, funded):
        funded.approve("wmatic", "alice", 50)
        funded.pull("wmatic", "alice", 20)
        assert funded.allowance("wmatic", "alice") == 30
        assert funded.balance_of("wmatic", "alice") == 80
        assert funded.escrow_balance("wmatic") == 20

    def test_allowance_without_balance(self, funded):
        funded.approve("wmatic", "bob", 50)
        with pytest.raises(InsufficientBalanceError):
            funded.pull("wmatic", "bob", 20)
        assert funded.allowance("wmatic", "bob") == 50


class TestPush:
    def test_pays_from_escrow(self, funded):
        funded.native_received("alice", 40)
        funded.push(NATIVE, "bob", 15)
        assert funded.balance_of(NATIVE, "bob") == 15
        assert funded.escrow_balance(NATIVE) == 25
        transfer = funded.history[-1]
        assert transfer.source == ESCROW_ACCOUNT
        assert transfer.to_dict()["destination"] == "bob"

    def test_cannot_overdraw_escrow(self, funded):
        with pytest.raises(InsufficientBalanceError):
            funded.push(NATIVE, "bob", 1)
