# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Quotes Router.

Summary:
    Batch quote endpoint. Accepts repeated (``?ids=a&ids=b``) or
    comma-separated (``?ids=a,b``) identifiers and always answers 200 with
    one element per distinct requested id, in request order. Per-id failures
    are elements of the array, not HTTP errors.

Layer:
    adapters/routers
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, Response, status

from marketfeed_api.adapters.presenters.market_data_presenter import MarketDataPresenter
from marketfeed_api.adapters.routers.base_router import BaseRouter
from marketfeed_api.adapters.schemas.http.quotes import QuoteResult, QuotesRequest
from marketfeed_api.application.use_cases.quotes.get_quotes import GetQuotes
from marketfeed_api.dependencies.market_data import get_quotes_uc
from marketfeed_api.domain.entities.quote import QuoteRecord
from marketfeed_api.infrastructure.logging.logger import get_json_logger

router = BaseRouter(version="v1", resource="quotes", tags=["Market Data"])
presenter = MarketDataPresenter()
logger = get_json_logger(__name__)


def parse_ids(values: Iterable[str]) -> list[str]:
    """Split CSV values, trim, drop blanks and deduplicate preserving order."""
    seen: dict[str, None] = {}
    for value in values:
        for part in value.split(","):
            item = part.strip()
            if item:
                seen.setdefault(item, None)
    return list(seen)


def _require_ids(ids: list[str]) -> list[str]:
    if not ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="At least one id is required."
        )
    return ids


async def _run(
    uc: GetQuotes, ids: list[str], request: Request, response: Response
) -> list[QuoteResult]:
    trace_id = getattr(request.state, "request_id", None)
    try:
        records = await uc.execute(ids)
    except Exception as exc:
        logger.exception(
            "quotes.batch_failed", extra={"extra": {"ids": len(ids), "error": repr(exc)}}
        )
        records = [QuoteRecord.from_exception(i, exc) for i in ids]
    return BaseRouter.send(response, presenter.present_quotes(records, trace_id=trace_id))


@router.get(
    "",
    response_model=list[QuoteResult],
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get quotes for a batch of identifiers",
)
async def get_quotes(
    request: Request,
    response: Response,
    uc: Annotated[GetQuotes, Depends(get_quotes_uc)],
    ids: Annotated[
        list[str],
        Query(
            examples=[["cg:bitcoin", "yahoo:AAPL,tase:662577"]],
            description="Ids, repeated or comma-separated",
        ),
    ] = [],  # noqa: B006
) -> list[QuoteResult]:
    """Return one quote or per-id error for each distinct requested id."""
    return await _run(uc, _require_ids(parse_ids(ids)), request, response)


@router.post(
    "",
    response_model=list[QuoteResult],
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get quotes for ids and bare Yahoo symbols",
)
async def post_quotes(
    body: QuotesRequest,
    request: Request,
    response: Response,
    uc: Annotated[GetQuotes, Depends(get_quotes_uc)],
) -> list[QuoteResult]:
    """Same as GET; ``symbols`` entries are looked up as ``yahoo:<symbol>``."""
    symbols = [f"yahoo:{s.strip()}" for s in body.symbols if s.strip()]
    return await _run(uc, _require_ids(parse_ids([*body.ids, *symbols])), request, response)
