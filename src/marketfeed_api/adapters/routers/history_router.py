# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
History Router.

Summary:
    ``GET /v1/history`` returns a close-price series for one id;
    ``GET /v1/history/at`` returns the point nearest to a calendar date.
    Upstream and unexpected failures are reported as ``{id, error}`` with
    HTTP 200; only malformed requests (missing id, unknown range/interval,
    bad date) are 400.

Layer:
    adapters/routers
"""
from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, Response, status

from marketfeed_api.adapters.presenters.market_data_presenter import MarketDataPresenter
from marketfeed_api.adapters.routers.base_router import BaseRouter
from marketfeed_api.adapters.schemas.http.history import (
    HistoryErrorResponse,
    HistoryResponse,
    PriceAtResponse,
)
from marketfeed_api.application.use_cases.quotes.get_history import GetHistory, HistoryResult
from marketfeed_api.application.use_cases.quotes.get_price_at import GetPriceAt, PriceAtResult
from marketfeed_api.dependencies.market_data import get_history_uc, get_price_at_uc
from marketfeed_api.domain.entities.history import CHART_INTERVALS, HistoryRange
from marketfeed_api.domain.entities.quote import QuoteRecord
from marketfeed_api.infrastructure.logging.logger import get_json_logger

router = BaseRouter(version="v1", resource="history", tags=["Market Data"])
presenter = MarketDataPresenter()
logger = get_json_logger(__name__)

_VALID_RANGES = ", ".join(r.value for r in HistoryRange)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _require_id(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise _bad_request("Query parameter 'id' is required.")
    return value


def parse_range(raw: str) -> HistoryRange:
    try:
        return HistoryRange(raw.strip())
    except ValueError:
        raise _bad_request(f"Invalid range {raw!r}; expected one of {_VALID_RANGES}.") from None


def parse_interval(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if value not in CHART_INTERVALS:
        raise _bad_request(f"Invalid interval {raw!r}.")
    return value


@router.get(
    "",
    response_model=HistoryResponse | HistoryErrorResponse,
    response_model_exclude_none=True,
    responses=BaseRouter.std_error_responses(),
    summary="Get price history for one identifier",
)
async def get_history(
    request: Request,
    response: Response,
    uc: Annotated[GetHistory, Depends(get_history_uc)],
    id: Annotated[str | None, Query(examples=["tase:1183441"])] = None,
    range: Annotated[str, Query(examples=["1mo"])] = HistoryRange.MO1.value,
    interval: Annotated[str | None, Query(examples=["1d"])] = None,
) -> HistoryResponse | HistoryErrorResponse:
    """Return ``{id, points, currency, source}`` or ``{id, error}``."""
    raw_id = _require_id(id)
    rng, chosen = parse_range(range), parse_interval(interval)
    try:
        result = await uc.execute(raw_id, rng, chosen)
    except Exception as exc:
        logger.exception("history.failed", extra={"extra": {"id": raw_id, "error": repr(exc)}})
        failure = QuoteRecord.from_exception(raw_id, exc)
        result = HistoryResult(id=raw_id, error=failure.error, error_code=failure.error_code)
    trace_id = getattr(request.state, "request_id", None)
    return BaseRouter.send(response, presenter.present_history(result, trace_id=trace_id))


@router.get(
    "/at",
    response_model=PriceAtResponse | HistoryErrorResponse,
    response_model_exclude_none=True,
    responses=BaseRouter.std_error_responses(),
    summary="Get the historical price nearest to a date",
)
async def get_price_at(
    request: Request,
    response: Response,
    uc: Annotated[GetPriceAt, Depends(get_price_at_uc)],
    id: Annotated[str | None, Query(examples=["cg:bitcoin"])] = None,
    date_: Annotated[str | None, Query(alias="date", examples=["2024-01-02"])] = None,
) -> PriceAtResponse | HistoryErrorResponse:
    """Return ``{id, t, v, currency, source}`` or ``{id, error}``."""
    raw_id = _require_id(id)
    try:
        day = date.fromisoformat((date_ or "").strip())
    except ValueError:
        raise _bad_request("Query parameter 'date' must be YYYY-MM-DD.") from None
    now = datetime.now(tz=UTC)
    if day > now.date():
        raise _bad_request("Query parameter 'date' must not be in the future.")
    at = min(datetime.combine(day, time(12, 0), tzinfo=UTC), now)
    try:
        result = await uc.execute(raw_id, at, now=now)
    except Exception as exc:
        logger.exception(
            "history.price_at_failed", extra={"extra": {"id": raw_id, "error": repr(exc)}}
        )
        failure = QuoteRecord.from_exception(raw_id, exc)
        result = PriceAtResult(id=raw_id, error=failure.error, error_code=failure.error_code)
    trace_id = getattr(request.state, "request_id", None)
    return BaseRouter.send(response, presenter.present_price_at(result, trace_id=trace_id))
