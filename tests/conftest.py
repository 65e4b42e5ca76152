# tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from marketfeed_api.infrastructure.caching.memory_cache import InMemoryTTLCache
from marketfeed_api.infrastructure.caching.request_coalescer import RequestCoalescer
from marketfeed_api.infrastructure.external_apis.provider_settings import ProviderSettings
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport
from marketfeed_api.infrastructure.reference_data.tase_instruments import TaseReferenceData


@pytest.fixture
def reference() -> TaseReferenceData:
    return TaseReferenceData()


@pytest.fixture
def coalescer() -> RequestCoalescer:
    return RequestCoalescer(InMemoryTTLCache(), default_ttl=60)


@pytest.fixture
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def make_transport(
    http_client: httpx.AsyncClient, coalescer: RequestCoalescer
) -> Callable[..., ProviderTransport]:
    """Build a transport against a fake base URL with zero-delay retries."""

    def _make(provider: str, base_url: str, *, max_retries: int = 0) -> ProviderTransport:
        settings = ProviderSettings(
            base_url=base_url,
            timeout_s=2.0,
            max_retries=max_retries,
            backoff_base_s=0.0,
            backoff_cap_s=0.0,
        )
        return ProviderTransport(
            provider=provider, settings=settings, http=http_client, coalescer=coalescer
        )

    return _make
