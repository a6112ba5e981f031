"""Global test fixtures for the VideOracle test suite."""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence

import pytest

from videoracle.core.clock import ManualClock
from videoracle.core.config import NATIVE, MarketParameters, clear_config_cache
from videoracle.core.ledger import InMemoryLedger
from videoracle.core.market import AnswerKind, OracleService, RequestSpec

REWARD = 10**18
FEE = 10**9
WEEK = 7 * 24 * 60 * 60
START = 1_700_000_000

TOKEN = "wmatic"

# Identities funded by the ``ledger`` fixture
IDENTITIES = (
    "requester",
    "alice",
    "bob",
    "carol",
    "dave",
    "erin",
    "frank",
    "owner",
    "collector",
)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all VIDEORACLE_ environment variables and the cached config."""
    for key in list(os.environ.keys()):
        if key.startswith("VIDEORACLE_"):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


# ============================================================================
# Market Fixtures
# ============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Ledger where every test identity holds plenty of native and token units."""
    ledger = InMemoryLedger()
    for identity in IDENTITIES:
        ledger.mint(NATIVE, identity, 1000 * REWARD)
        ledger.mint(TOKEN, identity, 1000 * REWARD)
    return ledger


@pytest.fixture
def params() -> MarketParameters:
    return MarketParameters(
        fee=FEE,
        accepted_rewards=(NATIVE, TOKEN),
        owner="owner",
        fee_collector="collector",
    )


@pytest.fixture
def service(ledger, clock, params) -> OracleService:
    return OracleService(ledger, clock=clock, params=params)


@pytest.fixture
def make_request(service, ledger, clock, params) -> Callable[..., int]:
    """Factory creating a funded request and returning its id.

    The attached native value is computed from the fee and reward, and token
    rewards are approved before creation.
    """

    def _make(
        kind: AnswerKind | str = AnswerKind.BINARY,
        reward: int = REWARD,
        denomination: str = NATIVE,
        expires_in: int = WEEK,
        accepted_answers: Sequence[str] = (),
        answer_domain_size: int = 2,
        requester: str = "requester",
    ) -> int:
        spec = RequestSpec(
            kind=AnswerKind.parse(kind),
            body="Is the bridge on Main Street open?",
            location_hint="geo:52.5200,13.4050",
            reward_denomination=denomination,
            reward_amount=reward,
            expires_at=clock.now() + expires_in,
            answer_domain_size=answer_domain_size,
        )
        value = params.fee + (reward if denomination == NATIVE else 0)
        if denomination != NATIVE:
            ledger.approve(denomination, requester, ledger.allowance(denomination, requester) + reward)
        return service.create_request(requester, spec, accepted_answers, value=value)

    return _make


@pytest.fixture
def settle(service, clock) -> Callable[[int], int]:
    """Move the clock to the moment claims open for a request."""

    def _settle(request_id: int) -> int:
        return clock.set(max(clock.now(), service.get_settlement_time(request_id)))

    return _settle
