# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Nearest-point lookup over an ascending history series."""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from marketfeed_api.domain.entities.history import HistoryPoint, HistoryRange


def nearest_point(points: Sequence[HistoryPoint], target_ms: int) -> HistoryPoint | None:
    """Return the point closest in time to ``target_ms`` (ties go to the earlier point).

    Args:
        points: Ascending points.
        target_ms: Target epoch milliseconds.

    Returns:
        HistoryPoint | None: ``None`` for an empty series.
    """
    if not points:
        return None
    stamps = [p.timestamp_ms for p in points]
    idx = bisect_left(stamps, target_ms)
    if idx == 0:
        return points[0]
    if idx == len(points):
        return points[-1]
    before, after = points[idx - 1], points[idx]
    if target_ms - before.timestamp_ms <= after.timestamp_ms - target_ms:
        return before
    return after


def range_covering(target: datetime, *, now: datetime | None = None) -> HistoryRange:
    """Return the smallest range token whose window reaches back to ``target``."""
    current = now or datetime.now(tz=UTC)
    age = current - target
    for rng in HistoryRange:
        if age <= timedelta(days=rng.days):
            return rng
    return HistoryRange.Y5
