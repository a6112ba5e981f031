"""VideOracle Core - market state machine and its collaborators."""

from .clock import Clock, ManualClock, SystemClock
from .config import NATIVE, MarketParameters, MarketSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    ConflictError,
    MarketError,
    NotFoundError,
    SettlementInvariantError,
    TransferError,
    ValidationException,
    VideOracleException,
)
from .ledger import InMemoryLedger, LedgerAdapter

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
    "NATIVE",
    "MarketParameters",
    "MarketSettings",
    "clear_config_cache",
    "get_config",
    "VideOracleException",
    "ValidationException",
    "ConfigException",
    "NotFoundError",
    "ConflictError",
    "MarketError",
    "TransferError",
    "SettlementInvariantError",
    "InMemoryLedger",
    "LedgerAdapter",
]
