from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from marketfeed_api.domain.entities.history import HistoryPoint, HistoryRange, HistorySeries
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.market_data import SymbolNotFound, UpstreamHttpError
from marketfeed_api.domain.services.history_lookup import nearest_point, range_covering

POINTS = (
    HistoryPoint(1_000, 10.0),
    HistoryPoint(2_000, 20.0),
    HistoryPoint(4_000, 40.0),
)


def test_build_drops_bad_values_and_sorts() -> None:
    series = HistorySeries.build(
        "yahoo:AAPL",
        [(3, 30.0), (1, 10.0), (2, None), (4, 0.0), (5, -1.0), (1, 11.0)],
        currency="USD",
        source=QuoteSource.YAHOO,
    )
    assert [(p.timestamp_ms, p.value) for p in series.points] == [(1, 11.0), (3, 30.0)]


def test_series_rejects_unordered_points() -> None:
    with pytest.raises(ValueError):
        HistorySeries(
            id="x", points=(POINTS[1], POINTS[0]), currency="USD", source=QuoteSource.YAHOO
        )


def test_empty_series_flag() -> None:
    series = HistorySeries.build("x", [(1, None)], currency="USD", source=QuoteSource.YAHOO)
    assert series.empty


def test_nearest_point_edges_and_ties() -> None:
    assert nearest_point((), 5) is None
    assert nearest_point(POINTS, 0) == POINTS[0]
    assert nearest_point(POINTS, 9_999) == POINTS[2]
    assert nearest_point(POINTS, 2_100) == POINTS[1]
    assert nearest_point(POINTS, 3_000) == POINTS[1]
    assert nearest_point(POINTS, 3_001) == POINTS[2]


@pytest.mark.parametrize(
    ("age", "expected"),
    [
        (timedelta(hours=12), HistoryRange.D1),
        (timedelta(days=3), HistoryRange.D5),
        (timedelta(days=20), HistoryRange.MO1),
        (timedelta(days=200), HistoryRange.Y1),
        (timedelta(days=4000), HistoryRange.Y5),
    ],
)
def test_range_covering_picks_smallest_window(age: timedelta, expected: HistoryRange) -> None:
    now = datetime(2024, 6, 1, 12, tzinfo=UTC)
    assert range_covering(now - age, now=now) is expected


def test_quote_record_requires_exactly_one_outcome() -> None:
    with pytest.raises(ValueError):
        QuoteRecord(id="x")
    with pytest.raises(ValueError):
        QuoteRecord(id="x", price=1.0, error="boom")
    with pytest.raises(ValueError):
        QuoteRecord(id="x", price=0.0)


def test_quote_record_from_exception_carries_code() -> None:
    record = QuoteRecord.from_exception("cg:nope", SymbolNotFound("Coin nope not found"))
    assert not record.ok
    assert record.error == "Coin nope not found"
    assert record.error_code == "SYMBOL_NOT_FOUND"

    escalated = QuoteRecord.from_exception("yahoo:X", UpstreamHttpError(status=503))
    assert escalated.error == "Upstream failure: HTTP 503"

    crashed = QuoteRecord.from_exception("x", RuntimeError())
    assert crashed.error == "RuntimeError"
    assert crashed.error_code == "INTERNAL_ERROR"


def test_relabel_keeps_identity_when_unchanged() -> None:
    record = QuoteRecord(id="tase:1183441", price=1.0, currency="ILS")
    assert record.relabel("tase:1183441") is record
    assert record.relabel("yahoo:1183441").id == "yahoo:1183441"
