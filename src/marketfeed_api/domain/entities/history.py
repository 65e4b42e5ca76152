# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""History entities (Domain Layer).

Purpose:
    Price history for one identifier: an ascending, finite sequence of
    ``(timestamp_ms, value)`` points tagged with currency and source.

Layer:
    domain/entities
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from marketfeed_api.domain.entities.base import BaseEntity
from marketfeed_api.domain.entities.quote import QuoteSource


class HistoryRange(str, Enum):
    """Coarse range tokens accepted by the history operation."""

    D1 = "1d"
    D5 = "5d"
    MO1 = "1mo"
    MO3 = "3mo"
    MO6 = "6mo"
    Y1 = "1y"
    Y5 = "5y"

    @property
    def days(self) -> int:
        """Approximate span in days (used for provider windows and date lookups)."""
        return _RANGE_DAYS[self]

    @property
    def default_interval(self) -> str:
        """Return the Yahoo chart interval used when the caller sends none."""
        return _DEFAULT_INTERVALS[self]


_RANGE_DAYS: dict[HistoryRange, int] = {
    HistoryRange.D1: 1,
    HistoryRange.D5: 5,
    HistoryRange.MO1: 30,
    HistoryRange.MO3: 90,
    HistoryRange.MO6: 180,
    HistoryRange.Y1: 365,
    HistoryRange.Y5: 1825,
}

#: Bar intervals accepted as an explicit override.
CHART_INTERVALS: frozenset[str] = frozenset(
    {"1m", "2m", "5m", "15m", "30m", "60m", "90m", "1h", "1d", "5d", "1wk", "1mo", "3mo"}
)

_DEFAULT_INTERVALS: dict[HistoryRange, str] = {
    HistoryRange.D1: "5m",
    HistoryRange.D5: "30m",
    HistoryRange.MO1: "1d",
    HistoryRange.MO3: "1d",
    HistoryRange.MO6: "1d",
    HistoryRange.Y1: "1wk",
    HistoryRange.Y5: "1mo",
}


@dataclass(frozen=True, slots=True)
class HistoryPoint(BaseEntity):
    """Single history sample.

    Attributes:
        timestamp_ms: Epoch milliseconds.
        value: Price at that time (strictly positive).
    """

    timestamp_ms: int
    value: float

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError("HistoryPoint.value must be > 0")


@dataclass(frozen=True, slots=True)
class HistorySeries(BaseEntity):
    """Ascending series of points for one identifier."""

    id: str
    points: tuple[HistoryPoint, ...]
    currency: str
    source: QuoteSource

    def __post_init__(self) -> None:
        stamps = [p.timestamp_ms for p in self.points]
        if stamps != sorted(stamps):
            raise ValueError("HistorySeries.points must be ascending by time")

    @classmethod
    def build(
        cls,
        id: str,
        samples: Iterable[tuple[int, float | None]],
        *,
        currency: str,
        source: QuoteSource,
    ) -> HistorySeries:
        """Build a series from raw ``(timestamp_ms, value)`` samples.

        Non-positive and missing values are dropped; the rest are sorted by
        time with duplicate timestamps collapsed (last sample wins).
        """
        by_ts: dict[int, float] = {}
        for ts, value in samples:
            if value is None or value <= 0:
                continue
            by_ts[int(ts)] = float(value)
        points = tuple(HistoryPoint(timestamp_ms=ts, value=v) for ts, v in sorted(by_ts.items()))
        return cls(id=id, points=points, currency=currency, source=source)

    @property
    def empty(self) -> bool:
        """Return True when the series has no points."""
        return not self.points
