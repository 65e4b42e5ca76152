# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
FX Router.

Summary:
    ``GET /v1/fx?base=USD&quote=ILS``. Only the USD/ILS pair is served;
    other pairs are 400. An upstream failure is a 502 error envelope.

Layer:
    adapters/routers
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from marketfeed_api.adapters.presenters.base_presenter import PresentResult
from marketfeed_api.adapters.presenters.market_data_presenter import MarketDataPresenter
from marketfeed_api.adapters.routers.base_router import BaseRouter
from marketfeed_api.adapters.schemas.http.envelopes import ErrorEnvelope
from marketfeed_api.adapters.schemas.http.fx import FxRateResponse
from marketfeed_api.application.use_cases.fx.get_fx_rate import GetFxRate
from marketfeed_api.dependencies.market_data import get_fx_rate_uc
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.domain.exceptions.market_data import UnsupportedCurrencyPair

router = BaseRouter(version="v1", resource="fx", tags=["FX"])
presenter = MarketDataPresenter()


def _error_response(result: PresentResult[ErrorEnvelope]) -> JSONResponse:
    return JSONResponse(
        status_code=result.status_code or 500,
        content=result.body.model_dump_http(),
        headers=dict(result.headers),
    )


@router.get(
    "",
    response_model=FxRateResponse,
    responses={
        **BaseRouter.std_error_responses(),
        502: {"model": ErrorEnvelope, "description": "Upstream rate unavailable."},
    },
    summary="Get the USD/ILS conversion rate",
)
async def get_fx_rate(
    request: Request,
    response: Response,
    uc: Annotated[GetFxRate, Depends(get_fx_rate_uc)],
    base: Annotated[str, Query(examples=["USD"])] = "USD",
    quote: Annotated[str, Query(examples=["ILS"])] = "ILS",
) -> FxRateResponse | JSONResponse:
    """Return ``{base, quote, rate, timestampMs, source}``."""
    trace_id = getattr(request.state, "request_id", None)
    try:
        rate = await uc.execute(base, quote)
    except UnsupportedCurrencyPair as exc:
        result = presenter.present_error(
            code=exc.code,
            http_status=400,
            message=exc.describe(),
            details=exc.details,
            trace_id=trace_id,
        )
        return _error_response(result)
    except DomainError as exc:
        result = presenter.present_error(
            code=exc.code, http_status=502, message=exc.describe(), trace_id=trace_id
        )
        return _error_response(result)
    return BaseRouter.send(response, presenter.present_fx(rate, trace_id=trace_id))
