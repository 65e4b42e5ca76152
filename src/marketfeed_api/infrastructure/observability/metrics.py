# src/marketfeed_api/infrastructure/observability/metrics.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Market data observability helpers and Prometheus metrics.

Exports
-------
Collectors (names are part of the public contract and must remain stable):

* ``marketfeed_upstream_latency_seconds`` (Histogram; provider, endpoint, outcome)
* ``marketfeed_upstream_errors_total`` (Counter; provider, endpoint, reason)
* ``marketfeed_upstream_retries_total`` (Counter; provider, endpoint)
* ``marketfeed_cache_requests_total`` (Counter; result = hit|miss|shared)
* ``marketfeed_fallback_stage_total`` (Counter; source, outcome)
* ``marketfeed_fallback_escalations_total`` (Counter; source, code)

Design
------
All collectors are created against the *current* default registry
(:data:`prometheus_client.REGISTRY`). If a collector with the same name
already exists there, it is reused instead of registering a duplicate, which
keeps module re-imports and registry swaps in tests safe.
"""

from __future__ import annotations

from collections.abc import Sequence

import prometheus_client as prom
from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry

__all__ = [
    "get_cache_requests_total",
    "get_fallback_escalations_total",
    "get_fallback_stage_total",
    "get_upstream_errors_total",
    "get_upstream_latency_seconds",
    "get_upstream_retries_total",
]

_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0)


def _get_or_create_histogram(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Histogram:
    """Return a histogram bound to the current default registry.

    Args:
        name: Metric name.
        doc: Human-readable metric description.
        labelnames: Optional iterable of label names.

    Returns:
        A :class:`Histogram` bound to the current :data:`prom.REGISTRY`.
    """
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})  # internal but stable
    existing = mapping.get(name)
    if isinstance(existing, Histogram):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Histogram(name, doc, labels, registry=registry, buckets=_LATENCY_BUCKETS)
    except ValueError as exc:
        # Handle concurrent or prior registration gracefully.
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, Histogram):
                return again
        raise


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Counter:
    """Return a counter bound to the current default registry.

    Mirrors :func:`_get_or_create_histogram`. Counters are registered without
    the ``_total`` suffix, which ``prometheus_client`` appends itself.
    """
    registry: CollectorRegistry = prom.REGISTRY
    base = name[: -len("_total")] if name.endswith("_total") else name
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(base) or mapping.get(name)
    if isinstance(existing, Counter):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Counter(base, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            mapping = getattr(registry, "_names_to_collectors", {})
            again = mapping.get(base) or mapping.get(name)
            if isinstance(again, Counter):
                return again
        raise


def get_upstream_latency_seconds() -> Histogram:
    """Latency of one logical upstream call (including retries)."""
    return _get_or_create_histogram(
        "marketfeed_upstream_latency_seconds",
        "Latency of upstream market data calls in seconds.",
        ("provider", "endpoint", "outcome"),
    )


def get_upstream_errors_total() -> Counter:
    """Upstream failures by taxonomy class."""
    return _get_or_create_counter(
        "marketfeed_upstream_errors_total",
        "Upstream market data failures by reason.",
        ("provider", "endpoint", "reason"),
    )


def get_upstream_retries_total() -> Counter:
    """Retries performed against upstream providers."""
    return _get_or_create_counter(
        "marketfeed_upstream_retries_total",
        "Retries performed against upstream providers.",
        ("provider", "endpoint"),
    )


def get_cache_requests_total() -> Counter:
    """Coalescer lookups by result (hit, miss, shared in-flight)."""
    return _get_or_create_counter(
        "marketfeed_cache_requests_total",
        "Coalescer/cache lookups by result.",
        ("result",),
    )


def get_fallback_stage_total() -> Counter:
    """Waterfall stage attempts by source and outcome."""
    return _get_or_create_counter(
        "marketfeed_fallback_stage_total",
        "Fallback waterfall stage attempts.",
        ("source", "outcome"),
    )


def get_fallback_escalations_total() -> Counter:
    """Auth/5xx failures surfaced by the fallback orchestrator."""
    return _get_or_create_counter(
        "marketfeed_fallback_escalations_total",
        "Escalated upstream failures (auth rejections, 5xx).",
        ("source", "code"),
    )
