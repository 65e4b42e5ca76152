# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Use case: price of one identifier at a past date."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from marketfeed_api.application.use_cases.quotes.get_history import GetHistory, NOT_FOUND_MESSAGE
from marketfeed_api.domain.entities.history import HistoryPoint
from marketfeed_api.domain.entities.quote import QuoteSource
from marketfeed_api.domain.exceptions.market_data import SymbolNotFound
from marketfeed_api.domain.services.history_lookup import nearest_point, range_covering


@dataclass(frozen=True, slots=True)
class PriceAtResult:
    """Nearest historical point for a target time, or an error."""

    id: str
    point: HistoryPoint | None = None
    currency: str | None = None
    source: QuoteSource | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.point is not None


class GetPriceAt:
    """Looks up the history point closest to ``at``.

    The smallest range token reaching back to ``at`` is fetched, so recent
    dates get intraday resolution and older ones daily/weekly bars.
    """

    def __init__(self, history: GetHistory) -> None:
        self._history = history

    async def execute(
        self, raw_id: str, at: datetime, *, now: datetime | None = None
    ) -> PriceAtResult:
        rng = range_covering(at, now=now)
        result = await self._history.execute(raw_id, rng)
        if result.series is None:
            return PriceAtResult(id=raw_id, error=result.error, error_code=result.error_code)

        point = nearest_point(result.series.points, int(at.timestamp() * 1000))
        if point is None:
            return PriceAtResult(
                id=raw_id, error=NOT_FOUND_MESSAGE, error_code=SymbolNotFound.code
            )
        return PriceAtResult(
            id=raw_id,
            point=point,
            currency=result.series.currency,
            source=result.series.source,
        )
