# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Pydantic settings for upstream market-data providers.

Each provider reads its own env prefix, e.g. ``YAHOO_TIMEOUT_S`` or
``COINGECKO_MAX_RETRIES``. Retries are bounded to 0..2 per call.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ProviderSettings(BaseSettings):
    """Common transport settings shared by every provider."""

    base_url: str = Field("", description="Provider base URL.")
    timeout_s: float = Field(8.0, gt=0.0, le=30.0, description="Per-request timeout in seconds.")
    max_retries: int = Field(2, ge=0, le=2, description="Retries for 429/5xx/timeouts.")
    backoff_base_s: float = Field(0.5, ge=0.0, le=5.0, description="Base retry backoff.")
    backoff_cap_s: float = Field(2.0, ge=0.0, le=10.0, description="Max retry backoff.")

    model_config = SettingsConfigDict(extra="ignore")


class CoinGeckoSettings(ProviderSettings):
    """CoinGecko public API (``COINGECKO_*``)."""

    base_url: str = Field("https://api.coingecko.com/api/v3")
    batch_size: int = Field(250, ge=1, le=250, description="Coin ids per simple/price call.")

    model_config = SettingsConfigDict(env_prefix="COINGECKO_", extra="ignore")


class BinanceSettings(ProviderSettings):
    """Binance public klines API (``BINANCE_*``)."""

    base_url: str = Field("https://api.binance.com/api/v3")
    max_retries: int = Field(1, ge=0, le=2)

    model_config = SettingsConfigDict(env_prefix="BINANCE_", extra="ignore")


class YahooSettings(ProviderSettings):
    """Yahoo Finance quote/chart endpoints (``YAHOO_*``)."""

    base_url: str = Field("https://query1.finance.yahoo.com")
    timeout_s: float = Field(6.0, gt=0.0, le=30.0)
    max_retries: int = Field(1, ge=0, le=2)
    user_agent: str = Field(BROWSER_USER_AGENT)

    model_config = SettingsConfigDict(env_prefix="YAHOO_", extra="ignore")


class FunderSettings(ProviderSettings):
    """Primary TASE scrape source (``FUNDER_*``)."""

    base_url: str = Field("https://www.funder.co.il")
    timeout_s: float = Field(6.0, gt=0.0, le=30.0)
    max_retries: int = Field(0, ge=0, le=2)
    user_agent: str = Field(BROWSER_USER_AGENT)

    model_config = SettingsConfigDict(env_prefix="FUNDER_", extra="ignore")


class GlobesSettings(ProviderSettings):
    """Secondary TASE scrape source (``GLOBES_*``)."""

    base_url: str = Field("https://www.globes.co.il")
    timeout_s: float = Field(6.0, gt=0.0, le=30.0)
    max_retries: int = Field(0, ge=0, le=2)
    user_agent: str = Field(BROWSER_USER_AGENT)

    model_config = SettingsConfigDict(env_prefix="GLOBES_", extra="ignore")


class FxSettings(ProviderSettings):
    """USD/ILS rate source (``FX_*``)."""

    base_url: str = Field("https://api.exchangerate-api.com/v4")

    model_config = SettingsConfigDict(env_prefix="FX_", extra="ignore")
