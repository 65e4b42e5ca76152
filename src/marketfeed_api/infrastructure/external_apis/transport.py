# src/marketfeed_api/infrastructure/external_apis/transport.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Provider Transport: resilient, instrumented, coalesced async HTTP.

Every provider gateway talks to its upstream through one of these. A
transport provides:

* Async HTTP (httpx) with a per-request timeout from provider settings.
* Bounded jittered retries (0..2) on 429, 5xx and network errors. Timeouts
  are not retried; they fail fast so the waterfall can advance.
* Deterministic mapping of statuses to the domain failure taxonomy:
  401/403 → ``UpstreamAuthError``, 429 → ``MarketDataRateLimited``,
  5xx → ``UpstreamHttpError``, 404 and other 4xx → ``SymbolNotFound``,
  timeouts → ``UpstreamTimeout``, other transport errors →
  ``MarketDataUnavailable``.
* Safe JSON decoding: HTML bodies (block pages, consent walls) are rejected as
  ``MarketDataValidationError`` and JSON wrapped in junk is extracted.
* Request coalescing and TTL caching via :class:`RequestCoalescer`.
* Prometheus metrics and ``X-Request-ID`` propagation.
"""

from __future__ import annotations

import json
import time
from collections.abc import Mapping
from contextlib import suppress
from typing import Any, Final

import httpx

from marketfeed_api.domain.exceptions.market_data import (
    MarketDataRateLimited,
    MarketDataUnavailable,
    MarketDataValidationError,
    SymbolNotFound,
    UpstreamAuthError,
    UpstreamHttpError,
    UpstreamTimeout,
    is_escalation,
)
from marketfeed_api.infrastructure.caching.request_coalescer import RequestCoalescer
from marketfeed_api.infrastructure.external_apis.provider_settings import ProviderSettings
from marketfeed_api.infrastructure.logging.logger import get_json_logger, get_request_id
from marketfeed_api.infrastructure.observability.metrics import (
    get_upstream_errors_total,
    get_upstream_latency_seconds,
    get_upstream_retries_total,
)
from marketfeed_api.infrastructure.resilience.retry import RetryPolicy, retry_async

__all__ = ["ProviderTransport", "parse_json_body"]

logger = get_json_logger(__name__)

_HTML_MARKERS: Final[tuple[str, ...]] = ("<!doctype", "<html", "<?xml")


def parse_json_body(text: str) -> Any:
    """Decode a JSON body defensively.

    Args:
        text: Raw response body.

    Returns:
        The decoded JSON value.

    Raises:
        MarketDataValidationError: If the body is HTML/XML or holds no JSON object.
    """
    stripped = text.lstrip()
    head = stripped[:64].lower()
    if head.startswith(_HTML_MARKERS):
        raise MarketDataValidationError("html_body", details={"head": stripped[:80]})
    try:
        return json.loads(stripped)
    except ValueError:
        pass
    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(stripped[start : end + 1])
        except ValueError as exc:
            raise MarketDataValidationError("non_json", details={"error": str(exc)}) from exc
    raise MarketDataValidationError("non_json", details={"head": stripped[:80]})


def _is_retryable(exc: Exception) -> bool:
    return isinstance(exc, MarketDataUnavailable) and not isinstance(exc, UpstreamTimeout)


class ProviderTransport:
    """Shared HTTP transport for one upstream provider."""

    def __init__(
        self,
        *,
        provider: str,
        settings: ProviderSettings,
        http: httpx.AsyncClient,
        coalescer: RequestCoalescer,
        headers: Mapping[str, str] | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            provider: Provider label used in metrics, logs and cache keys.
            settings: Provider settings (base URL, timeout, retries).
            http: Shared ``httpx.AsyncClient`` owned by the application lifespan.
            coalescer: Process-wide request coalescer.
            headers: Default headers for every request to this provider.
            retry_policy: Optional override; built from settings when omitted.
        """
        self.provider = provider
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._http = http
        self._coalescer = coalescer
        self._headers = dict(headers or {})
        self._timeout = float(settings.timeout_s)
        self._retry = retry_policy or RetryPolicy(
            total=settings.max_retries,
            base=settings.backoff_base_s,
            cap=settings.backoff_cap_s,
        )
        self._latency = get_upstream_latency_seconds()
        self._errors = get_upstream_errors_total()
        self._retries = get_upstream_retries_total()

    def url(self, path: str) -> str:
        """Return the absolute URL for ``path`` (absolute URLs pass through)."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    # ---------------------------- Public API ----------------------------- #

    async def get_json(
        self,
        *,
        endpoint: str,
        path: str,
        cache_key: str,
        ttl: int,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """GET ``path`` and return decoded JSON (coalesced + cached)."""

        async def _load() -> Any:
            response = await self._send("GET", endpoint, path, params=params)
            return parse_json_body(response.text)

        return await self._coalescer.coalesce(self._key(cache_key), _load, ttl=ttl)

    async def get_text(
        self,
        *,
        endpoint: str,
        path: str,
        cache_key: str,
        ttl: int,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        """GET ``path`` and return the raw body (for HTML scraping)."""

        async def _load() -> str:
            response = await self._send("GET", endpoint, path, params=params)
            return response.text

        return str(await self._coalescer.coalesce(self._key(cache_key), _load, ttl=ttl))

    async def post_form_json(
        self,
        *,
        endpoint: str,
        path: str,
        data: Mapping[str, str],
        cache_key: str,
        ttl: int,
    ) -> Any:
        """POST a form body and return decoded JSON (coalesced + cached)."""

        async def _load() -> Any:
            response = await self._send("POST", endpoint, path, data=data)
            return parse_json_body(response.text)

        return await self._coalescer.coalesce(self._key(cache_key), _load, ttl=ttl)

    # ----------------------------- Internals ----------------------------- #

    def _key(self, cache_key: str) -> str:
        return f"{self.provider}:{cache_key}"

    async def _send(
        self,
        method: str,
        endpoint: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Execute one logical request with retry, error mapping and metrics."""
        url = self.url(path)
        headers = dict(self._headers)
        request_id = get_request_id()
        if request_id:
            headers.setdefault("X-Request-ID", request_id)

        async def _call() -> httpx.Response:
            try:
                response = await self._http.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=headers,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as exc:
                raise UpstreamTimeout(
                    f"{self.provider} {endpoint} timed out after {self._timeout:g}s"
                ) from exc
            except httpx.RequestError as exc:
                raise MarketDataUnavailable(
                    f"{self.provider} {endpoint} unreachable", details={"error": str(exc)}
                ) from exc
            self._raise_for_status(endpoint, response)
            return response

        def _on_retry(attempt: int, exc: Exception) -> None:
            with suppress(Exception):
                self._retries.labels(provider=self.provider, endpoint=endpoint).inc()

        start = time.perf_counter()
        outcome = "success"
        try:
            return await retry_async(
                _call, policy=self._retry, retry_on=_is_retryable, on_retry=_on_retry
            )
        except Exception as exc:
            outcome = "error"
            self._record_failure(endpoint, url, exc)
            raise
        finally:
            with suppress(Exception):
                self._latency.labels(
                    provider=self.provider, endpoint=endpoint, outcome=outcome
                ).observe(time.perf_counter() - start)

    def _raise_for_status(self, endpoint: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        label = f"{self.provider} {endpoint}"
        details = {"status": status, "provider": self.provider}
        if status in (401, 403):
            raise UpstreamAuthError(
                f"{label} rejected: HTTP {status}", status=status, details=details
            )
        if status == 429:
            raise MarketDataRateLimited(f"{label} rate limited: HTTP 429", details=details)
        if status >= 500:
            raise UpstreamHttpError(
                f"{label} failure: HTTP {status}", status=status, details=details
            )
        raise SymbolNotFound(f"{label} has no data: HTTP {status}", details=details)

    def _record_failure(self, endpoint: str, url: str, exc: Exception) -> None:
        with suppress(Exception):
            self._errors.labels(
                provider=self.provider, endpoint=endpoint, reason=type(exc).__name__
            ).inc()
        payload = {
            "provider": self.provider,
            "endpoint": endpoint,
            "url": url,
            "reason": type(exc).__name__,
            "error": str(exc),
        }
        if is_escalation(exc):
            logger.warning("upstream.request_failed", extra={"extra": payload})
        else:
            logger.debug("upstream.request_failed", extra={"extra": payload})
