# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Instrument search router (``GET /v1/search?q=…``), served from local data."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, Response, status

from marketfeed_api.adapters.presenters.market_data_presenter import MarketDataPresenter
from marketfeed_api.adapters.routers.base_router import BaseRouter
from marketfeed_api.adapters.schemas.http.search import SearchHitHTTP
from marketfeed_api.application.use_cases.search.search_instruments import SearchInstruments
from marketfeed_api.dependencies.market_data import get_search_uc
from marketfeed_api.infrastructure.reference_data.tase_instruments import SEARCH_LIMIT

router = BaseRouter(version="v1", resource="search", tags=["Reference Data"])
presenter = MarketDataPresenter()


@router.get(
    "",
    response_model=list[SearchHitHTTP],
    response_model_exclude_none=True,
    responses=BaseRouter.std_error_responses(),
    summary="Search TASE instruments and crypto tickers",
)
async def search(
    request: Request,
    response: Response,
    uc: Annotated[SearchInstruments, Depends(get_search_uc)],
    q: Annotated[str | None, Query(examples=["פועלים", "662577"])] = None,
    limit: Annotated[int, Query(ge=1, le=SEARCH_LIMIT)] = SEARCH_LIMIT,
) -> list[SearchHitHTTP]:
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter 'q' is required."
        )
    trace_id = getattr(request.state, "request_id", None)
    hits = uc.execute(q, limit=limit)
    return BaseRouter.send(response, presenter.present_search(hits, trace_id=trace_id))
