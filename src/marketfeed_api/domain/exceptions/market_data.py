# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Market Data Domain Exceptions

Purpose:
    Failure taxonomy shared by every provider adapter. The fallback
    orchestrator relies on these classes to decide whether a failure simply
    advances a waterfall (not found, unparseable payload) or is escalated to
    operators (auth rejection, upstream 5xx).

Hierarchy:
    MarketDataUnavailable        transient; retried a bounded number of times
        UpstreamTimeout          network deadline exceeded
        UpstreamHttpError        5xx (carries ``status``)
        MarketDataRateLimited    429
    UpstreamAuthError            401/403; never retried
    SymbolNotFound               soft miss (404, absent from payload)
    MarketDataValidationError    unexpected payload shape / HTML body
    ResolutionFailure            input cannot be mapped to provider+symbol
    UnsupportedCurrencyPair      FX lookup outside USD/ILS

Layer: domain/exceptions
"""
from __future__ import annotations

from typing import Any

from .base import DomainError


class MarketDataUnavailable(DomainError):
    """Third-party market data dependency is unavailable or timed out."""

    code = "MARKET_DATA_UNAVAILABLE"


class UpstreamTimeout(MarketDataUnavailable):
    """The upstream call exceeded its deadline."""

    code = "UPSTREAM_TIMEOUT"


class UpstreamHttpError(MarketDataUnavailable):
    """Upstream answered with a server-side error status."""

    code = "UPSTREAM_HTTP_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        status: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Upstream failure: HTTP {status}", details=details)
        self.status = status


class MarketDataRateLimited(MarketDataUnavailable):
    """Upstream throttled the request (HTTP 429)."""

    code = "MARKET_DATA_RATE_LIMITED"


class UpstreamAuthError(DomainError):
    """Upstream rejected the request (HTTP 401/403), e.g. credentials or IP block."""

    code = "UPSTREAM_AUTH_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        status: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Upstream auth failure: HTTP {status}", details=details)
        self.status = status


class SymbolNotFound(DomainError):
    """Upstream has no data for the requested symbol(s)."""

    code = "SYMBOL_NOT_FOUND"


class MarketDataValidationError(DomainError):
    """Upstream returned an unexpected/invalid payload."""

    code = "UPSTREAM_SCHEMA_ERROR"


class ResolutionFailure(DomainError):
    """Input could not be mapped to a provider and symbol."""

    code = "RESOLUTION_FAILURE"


class UnsupportedCurrencyPair(DomainError):
    """Only the USD/ILS rate lookup is supported."""

    code = "UNSUPPORTED_CURRENCY_PAIR"


def is_escalation(exc: BaseException) -> bool:
    """Return True for failures operators must see (auth rejections and 5xx)."""
    return isinstance(exc, (UpstreamAuthError, UpstreamHttpError))
