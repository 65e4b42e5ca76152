# tests/unit/application/test_get_quotes.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import pytest
from fixtures.market_data_testkit import FakeCoinGecko, FakeScrape, FakeYahoo, quote

from marketfeed_api.application.services.fallback_orchestrator import (
    FallbackOrchestrator,
    QuoteWaterfall,
)
from marketfeed_api.application.use_cases.quotes.get_quotes import GetQuotes
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.market_data import UpstreamAuthError, UpstreamHttpError
from marketfeed_api.infrastructure.reference_data.tase_instruments import TaseReferenceData


def _use_case(
    reference: TaseReferenceData,
    *,
    coingecko: FakeCoinGecko | None = None,
    yahoo: FakeYahoo | None = None,
    funder: FakeScrape | None = None,
    globes: FakeScrape | None = None,
    waterfall: QuoteWaterfall | None = None,
    **kwargs: float,
) -> GetQuotes:
    coingecko = coingecko or FakeCoinGecko()
    yahoo = yahoo or FakeYahoo()
    orchestrator = FallbackOrchestrator(
        coingecko=coingecko,
        yahoo=yahoo,
        funder=funder or FakeScrape(),
        globes=globes or FakeScrape(),
        reference=reference,
        waterfall=waterfall,
    )
    return GetQuotes(
        orchestrator=orchestrator,
        coingecko=coingecko,
        yahoo=yahoo,
        reference=reference,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_one_record_per_input_in_input_order(reference: TaseReferenceData) -> None:
    coingecko = FakeCoinGecko({"bitcoin": 64000.0})
    yahoo = FakeYahoo(
        batch={
            "AAPL": quote("yahoo:AAPL", 190.0),
            "1183441.TA": quote("yahoo:1183441.TA", 523.41, currency="ILS"),
        }
    )
    uc = _use_case(reference, coingecko=coingecko, yahoo=yahoo)
    ids = ["cg:bitcoin", "AAPL", "  ", "cg:bitcoin", "yahoo:1183441", "cg:doesnotexist"]

    records = await uc.execute(ids)

    assert [r.id for r in records] == ids
    btc, aapl, blank, btc_again, legacy, missing = records
    assert btc.price == btc_again.price == 64000.0
    assert aapl.price == 190.0 and aapl.source is QuoteSource.YAHOO
    assert blank.error == "Could not resolve id"
    assert blank.error_code == "RESOLUTION_FAILURE"
    assert legacy.price == 523.41
    assert legacy.currency == "ILS"
    assert legacy.source is QuoteSource.TASE_REFERENCE
    assert missing.error == "Coin doesnotexist not found in CoinGecko response"


@pytest.mark.asyncio
async def test_crypto_ids_share_one_grouped_call(reference: TaseReferenceData) -> None:
    coingecko = FakeCoinGecko({"bitcoin": 1.0, "ethereum": 2.0})
    uc = _use_case(reference, coingecko=coingecko)
    await uc.execute(["cg:bitcoin", "cg:ethereum", "cg:bitcoin"])
    assert coingecko.batch_calls == [["bitcoin", "ethereum"]]
    assert coingecko.single_calls == []


@pytest.mark.asyncio
async def test_failed_crypto_prefetch_falls_back_to_single_calls(
    reference: TaseReferenceData,
) -> None:
    coingecko = FakeCoinGecko({"bitcoin": 1.0}, batch_error=RuntimeError("boom"))
    records = await _use_case(reference, coingecko=coingecko).execute(["cg:bitcoin"])
    assert records[0].price == 1.0
    assert coingecko.single_calls == ["bitcoin"]


@pytest.mark.asyncio
async def test_yahoo_prefetch_is_chunked_and_includes_listed_tase_symbols(
    reference: TaseReferenceData,
) -> None:
    yahoo = FakeYahoo(
        batch={
            "AAPL": quote("yahoo:AAPL", 1.0),
            "MSFT": quote("yahoo:MSFT", 2.0),
            "POLI.TA": quote("yahoo:POLI.TA", 3.0, currency="ILS"),
        }
    )
    uc = _use_case(reference, yahoo=yahoo, yahoo_batch_size=2)
    records = await uc.execute(["AAPL", "MSFT", "tase:662577"])

    assert sorted(map(len, yahoo.batch_calls)) == [1, 2]
    assert {s for call in yahoo.batch_calls for s in call} == {"AAPL", "MSFT", "POLI.TA"}
    assert [r.price for r in records] == [1.0, 2.0, 3.0]
    assert yahoo.chart_calls == []


@pytest.mark.asyncio
async def test_failed_yahoo_chunk_goes_to_chart_stage(reference: TaseReferenceData) -> None:
    yahoo = FakeYahoo(
        chart={"AAPL": quote("yahoo:AAPL", 190.0)}, batch_error=UpstreamHttpError(status=503)
    )
    records = await _use_case(reference, yahoo=yahoo).execute(["AAPL"])
    assert records[0].price == 190.0
    assert yahoo.chart_calls == ["AAPL"]


class _SlowScrape(FakeScrape):
    async def fetch_quote(self, security_id: str) -> QuoteRecord:
        await asyncio.sleep(5)
        return await super().fetch_quote(security_id)


@pytest.mark.asyncio
async def test_slow_branch_times_out_without_affecting_siblings(
    reference: TaseReferenceData,
) -> None:
    yahoo = FakeYahoo(batch={"AAPL": quote("yahoo:AAPL", 190.0)})
    uc = _use_case(reference, yahoo=yahoo, funder=_SlowScrape(), per_id_timeout_s=0.05)

    records = await uc.execute(["tase:9999999", "AAPL"])

    slow, fast = records
    assert slow.error_code == "UPSTREAM_TIMEOUT"
    assert slow.error == "Timed out after 0.05s"
    assert fast.price == 190.0


class _CrashingOrchestrator(FallbackOrchestrator):
    async def quote(  # type: ignore[override]
        self, wire_id: str, iid: object, **kwargs: object
    ) -> QuoteRecord:
        if wire_id == "cg:bitcoin":
            raise RuntimeError("bug")
        return quote(wire_id, 1.0)


@pytest.mark.asyncio
async def test_crashing_branch_becomes_error_record(reference: TaseReferenceData) -> None:
    coingecko = FakeCoinGecko()
    yahoo = FakeYahoo()
    orchestrator = _CrashingOrchestrator(
        coingecko=coingecko,
        yahoo=yahoo,
        funder=FakeScrape(),
        globes=FakeScrape(),
        reference=reference,
    )
    uc = GetQuotes(
        orchestrator=orchestrator, coingecko=coingecko, yahoo=yahoo, reference=reference
    )

    records = await uc.execute(["cg:bitcoin", "AAPL"])

    assert records[0].error_code == "INTERNAL_ERROR"
    assert records[1].price == 1.0


@pytest.mark.asyncio
async def test_concurrency_is_bounded(reference: TaseReferenceData) -> None:
    active = 0
    peak = 0

    class _CountingScrape(FakeScrape):
        async def fetch_quote(self, security_id: str) -> QuoteRecord:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return quote(f"tase:{security_id}", 1.0, currency="ILS", source=QuoteSource.FUNDER)

    ids: Sequence[str] = [f"tase:{9000000 + i}" for i in range(10)]
    uc = _use_case(reference, funder=_CountingScrape(), max_concurrency=3)
    records = await uc.execute(ids)

    assert all(r.ok for r in records)
    assert peak <= 3


@pytest.mark.asyncio
async def test_empty_batch(reference: TaseReferenceData) -> None:
    assert await _use_case(reference).execute([]) == []


@pytest.mark.asyncio
async def test_mixed_case_crypto_slug_reads_grouped_result(reference: TaseReferenceData) -> None:
    coingecko = FakeCoinGecko({"bitcoin": 64000.0})
    records = await _use_case(reference, coingecko=coingecko).execute(["cg:Bitcoin"])
    assert records[0].id == "cg:Bitcoin"
    assert records[0].price == 64000.0
    assert coingecko.batch_calls == [["bitcoin"]]


class _HangingChartYahoo(FakeYahoo):
    async def fetch_chart_quote(self, symbol: str) -> QuoteRecord:
        self.chart_calls.append(symbol)
        await asyncio.sleep(5)
        raise AssertionError("unreachable")


@pytest.mark.asyncio
async def test_hanging_yahoo_stage_gives_way_to_funder(reference: TaseReferenceData) -> None:
    yahoo = _HangingChartYahoo(batch_error=UpstreamHttpError(status=503))
    funder = FakeScrape(
        {"662577": quote("tase:662577", 15.0, currency="ILS", source=QuoteSource.FUNDER)}
    )
    uc = _use_case(
        reference,
        yahoo=yahoo,
        funder=funder,
        waterfall=QuoteWaterfall(stage_timeout_s=0.05),
        per_id_timeout_s=1.0,
    )

    records = await uc.execute(["tase:662577"])

    assert records[0].source is QuoteSource.FUNDER
    assert records[0].price == 15.0
    assert yahoo.chart_calls == ["POLI.TA"]
    assert funder.calls == ["662577"]


@pytest.mark.asyncio
async def test_failed_yahoo_chunk_is_logged_at_warning(
    reference: TaseReferenceData, caplog: pytest.LogCaptureFixture
) -> None:
    yahoo = FakeYahoo(
        chart={"AAPL": quote("yahoo:AAPL", 190.0)}, batch_error=UpstreamAuthError(status=403)
    )
    with caplog.at_level(logging.WARNING):
        await _use_case(reference, yahoo=yahoo).execute(["AAPL"])

    failed = [r for r in caplog.records if r.getMessage() == "quotes.prefetch_failed"]
    assert len(failed) == 1
    assert failed[0].levelno == logging.WARNING
    assert failed[0].extra["provider"] == "yahoo"
