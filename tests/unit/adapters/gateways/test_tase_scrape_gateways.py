# tests/unit/adapters/gateways/test_tase_scrape_gateways.py
from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
import respx

from marketfeed_api.adapters.gateways.funder_gateway import FunderGateway, parse_fund_page
from marketfeed_api.adapters.gateways.fx_gateway import FxGateway
from marketfeed_api.adapters.gateways.globes_gateway import (
    FEEDER_PATH,
    GlobesGateway,
    extract_security,
)
from marketfeed_api.adapters.gateways.tase_names import clean_display_name, repair_name
from marketfeed_api.domain.entities.quote import QuoteSource
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

FUNDER = "https://funder.test"
GLOBES = "https://globes.test"
FX = "https://fx.test"

FUND_PAGE = """
<html><head>
<title>אינווסקו S&amp;P 500 – Funder</title>
<script type="application/ld+json">{"@type": "Product", "offers": {"price": "52,341"}}</script>
</head><body>
<h1>קרן נאמנות: אינווסקו S&amp;P 500</h1>
<div>שינוי יומי <span>-0.35</span>%</div>
</body></html>
"""


def test_parse_fund_page_extracts_price_change_and_name() -> None:
    price, change, name = parse_fund_page(FUND_PAGE)
    assert price == 52341.0
    assert change == -0.35
    assert name == "אינווסקו S&P 500"


def test_parse_fund_page_hebrew_label_fallback() -> None:
    page = "<html><body><h1>פורטל הקרנות</h1><p>שער <b>1,234.5</b></p></body></html>"
    price, change, name = parse_fund_page(page)
    assert price == 1234.5
    assert change is None
    assert name is None


@pytest.mark.asyncio
@respx.mock
async def test_funder_quote_is_normalized_from_agorot(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.get(f"{FUNDER}/fund/1183441").mock(return_value=httpx.Response(200, text=FUND_PAGE))
    record = await FunderGateway(make_transport("funder", FUNDER), quote_ttl_s=0).fetch_quote(
        "1183441"
    )
    assert record.price == pytest.approx(523.41)
    assert record.currency == "ILS"
    assert record.change_pct == -0.35
    assert record.source is QuoteSource.FUNDER
    assert record.id == "tase:1183441"


@pytest.mark.asyncio
@respx.mock
async def test_funder_page_without_price_is_a_miss(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.get(f"{FUNDER}/fund/1").mock(
        return_value=httpx.Response(200, text="<html><body>nothing</body></html>")
    )
    with pytest.raises(SymbolNotFound):
        await FunderGateway(make_transport("funder", FUNDER)).fetch_quote("1")


@pytest.mark.asyncio
@respx.mock
async def test_funder_non_html_is_a_validation_miss(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.get(f"{FUNDER}/fund/1").mock(return_value=httpx.Response(200, text="rate limited"))
    with pytest.raises(MarketDataValidationError):
        await FunderGateway(make_transport("funder", FUNDER)).fetch_quote("1")


@pytest.mark.asyncio
@respx.mock
async def test_globes_feeder_quote(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.post(f"{GLOBES}{FEEDER_PATH}").mock(
        return_value=httpx.Response(
            200,
            json=[
                {
                    "Table": {
                        "Security": [
                            {
                                "LastRate": "1,510.0",
                                "PercentageChange": "0.67",
                                "HebName": "בנק הפועלים",
                                "EngName": "POALIM",
                            }
                        ]
                    }
                }
            ],
        )
    )
    record = await GlobesGateway(make_transport("globes", GLOBES), quote_ttl_s=0).fetch_quote(
        "662577"
    )
    assert route.calls.last.request.content == b"instrumentId=662577&type=49"
    assert record.price == pytest.approx(15.10)
    assert record.change_pct == 0.67
    assert record.name == "בנק הפועלים"
    assert record.source is QuoteSource.GLOBES


@pytest.mark.parametrize(
    "payload",
    [{}, [], [{"Table": {}}], [{"Table": {"Security": []}}], [{"Table": {"Security": [1]}}]],
)
def test_globes_shape_errors(payload: object) -> None:
    with pytest.raises(MarketDataValidationError):
        extract_security(payload)


@pytest.mark.asyncio
@respx.mock
async def test_globes_without_rate_is_not_found(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.post(f"{GLOBES}{FEEDER_PATH}").mock(
        return_value=httpx.Response(200, json=[{"Table": {"Security": [{"LastRate": None}]}}])
    )
    with pytest.raises(SymbolNotFound):
        await GlobesGateway(make_transport("globes", GLOBES)).fetch_quote("662577")


def test_name_repair_skips_generic_candidates() -> None:
    assert clean_display_name("<b>תעודת סל:</b> קסם&nbsp;ת\"א 35 | ") == 'קסם ת"א 35'
    assert repair_name("פורטל פאנדר", None, "-", "Harel S&P") == "Harel S&P"
    assert repair_name("x" * 61) is None


@pytest.mark.asyncio
@respx.mock
async def test_fx_rate(make_transport: Callable[..., ProviderTransport]) -> None:
    respx.get(f"{FX}/latest/USD").mock(
        return_value=httpx.Response(
            200, json={"base": "USD", "rates": {"ILS": 3.71}, "time_last_updated": 1_700_000_000}
        )
    )
    rate = await FxGateway(make_transport("exchangerate-api", FX), ttl_s=0).fetch_rate("ils")
    assert (rate.base, rate.quote, rate.rate) == ("USD", "ILS", 3.71)
    assert rate.timestamp_ms == 1_700_000_000_000


@pytest.mark.asyncio
@respx.mock
async def test_fx_missing_rate(make_transport: Callable[..., ProviderTransport]) -> None:
    respx.get(f"{FX}/latest/USD").mock(return_value=httpx.Response(200, json={"rates": {}}))
    with pytest.raises(SymbolNotFound):
        await FxGateway(make_transport("exchangerate-api", FX)).fetch_rate()
