# SPDX-License-Identifier: MIT
# Copyright (c) 2026 VideOracle Contributors

"""Server configuration using pydantic-settings."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from videoracle.core.config import MarketSettings

logger = logging.getLogger(__name__)


def get_package_version() -> str:
    """Get the package version from installed metadata.

    Returns the version from pyproject.toml when installed,
    or a dev fallback when running from source without install.
    """
    try:
        return version("videoracle")
    except PackageNotFoundError:
        return "0.0.0-dev"


class ServerSettings(MarketSettings):
    """Configuration for the VideOracle HTTP server.

    Inherits the market settings (fee, rewards, windows, logging) and adds
    HTTP settings.

    Settings can be configured via environment variables with VIDEORACLE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="VIDEORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=8430, description="Port to bind to")

    # Caller identity, set by the authenticating front proxy
    identity_header: str = Field(
        default="X-Caller-Identity",
        description="Request header carrying the authenticated caller identity",
    )

    # CORS settings
    allowed_origins: list[str] = Field(
        default=[],
        description="Allowed CORS origins. Empty = same-origin only.",
    )

    # Ledger backing the default market
    ledger_factory: str | None = Field(
        default=None,
        description="Import path 'module:callable' returning a LedgerAdapter; called with the settings",
    )
    genesis_balances: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description='Opening balances for the in-memory ledger, JSON {"native": {"alice": 1000}}',
    )
    genesis_allowances: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description="Opening token allowances for the in-memory ledger, same shape as genesis_balances",
    )

    server_name: str = Field(default="videoracle", description="Server name")
    server_version: str = Field(default_factory=get_package_version, description="Server version")


_settings: ServerSettings | None = None


def get_settings() -> ServerSettings:
    """Get the global server settings instance."""
    global _settings
    if _settings is None:
        _settings = ServerSettings()
    return _settings
