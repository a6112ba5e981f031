# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Core configuration - centralized config for the videoracle package.

All environment-based configuration should flow through this module.
Market parameters (fee, accepted rewards, windows) are read once and then
frozen into ``MarketParameters`` when a service is built, so they cannot
change for the lifetime of a market.

Usage:
    from videoracle.core.config import get_config
    config = get_config()

    fee = config.fee
    params = config.market_parameters()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import ConfigException

NATIVE = "native"

THREE_DAYS = 3 * 24 * 60 * 60


class MarketSettings(BaseSettings):
    """Core configuration settings for VideOracle.

    Settings can be configured via environment variables with the
    VIDEORACLE_ prefix or a local .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="VIDEORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # MARKET SETTINGS
    # ==========================================================================

    fee: int = Field(
        default=10**9,
        description="Fixed oracle fee in native units, charged on every request",
    )
    accepted_rewards: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [NATIVE],
        description="Comma-separated reward denominations accepted by the market",
    )
    owner: str = Field(
        default="owner",
        description="Identity that deployed the market",
    )
    fee_collector: str | None = Field(
        default=None,
        description="Identity allowed to withdraw fees (defaults to owner)",
    )

    # ==========================================================================
    # WINDOWS AND RATIOS
    # ==========================================================================

    dispute_creation_window_seconds: int = Field(
        default=THREE_DAYS,
        description="Grace period after expiry during which the requester may dispute",
    )
    dispute_voting_window_seconds: int = Field(
        default=THREE_DAYS,
        description="How long a dispute accepts votes after it is opened",
    )
    upvote_stake_divisor: int = Field(
        default=20,
        description="Minimum upvote stake is reward // divisor",
    )
    dispute_stake_divisor: int = Field(
        default=10,
        description="Minimum dispute stake is reward // divisor",
    )
    verifier_share_divisor: int = Field(
        default=2,
        description="Verifier and voter pools are each reward // divisor",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
    )

    @field_validator("accepted_rewards", mode="before")
    @classmethod
    def _split_rewards(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def effective_fee_collector(self) -> str:
        return self.fee_collector or self.owner

    def market_parameters(self) -> MarketParameters:
        """Freeze the market settings into immutable parameters."""
        return MarketParameters(
            fee=self.fee,
            accepted_rewards=tuple(self.accepted_rewards),
            owner=self.owner,
            fee_collector=self.effective_fee_collector,
            dispute_creation_window=self.dispute_creation_window_seconds,
            dispute_voting_window=self.dispute_voting_window_seconds,
            upvote_stake_divisor=self.upvote_stake_divisor,
            dispute_stake_divisor=self.dispute_stake_divisor,
            verifier_share_divisor=self.verifier_share_divisor,
        )


@dataclass(frozen=True)
class MarketParameters:
    """Immutable market parameters, set once when the market starts."""

    fee: int = 10**9
    accepted_rewards: tuple[str, ...] = (NATIVE,)
    owner: str = "owner"
    fee_collector: str = "owner"
    dispute_creation_window: int = THREE_DAYS
    dispute_voting_window: int = THREE_DAYS
    upvote_stake_divisor: int = 20
    dispute_stake_divisor: int = 10
    verifier_share_divisor: int = 2

    def __post_init__(self):
        if self.fee < 0:
            raise ConfigException("fee cannot be negative")
        if not self.accepted_rewards:
            raise ConfigException("at least one reward denomination must be accepted")
        if self.dispute_creation_window < 0 or self.dispute_voting_window < 0:
            raise ConfigException("dispute windows cannot be negative")
        for name in ("upvote_stake_divisor", "dispute_stake_divisor", "verifier_share_divisor"):
            if getattr(self, name) < 1:
                raise ConfigException(f"{name} must be at least 1")

    def accepts(self, denomination: str) -> bool:
        return denomination in self.accepted_rewards

    def to_dict(self) -> dict:
        return {
            "fee": self.fee,
            "accepted_rewards": list(self.accepted_rewards),
            "owner": self.owner,
            "fee_collector": self.fee_collector,
            "dispute_creation_window": self.dispute_creation_window,
            "dispute_voting_window": self.dispute_voting_window,
            "upvote_stake_divisor": self.upvote_stake_divisor,
            "dispute_stake_divisor": self.dispute_stake_divisor,
            "verifier_share_divisor": self.verifier_share_divisor,
        }


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: MarketSettings | None = None


def get_config() -> MarketSettings:
    """Get the global configuration instance.

    Returns:
        The singleton MarketSettings instance.
    """
    global _config
    if _config is None:
        _config = MarketSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
