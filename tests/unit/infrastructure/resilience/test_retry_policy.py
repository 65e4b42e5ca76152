# tests/unit/infrastructure/resilience/test_retry_policy.py
from __future__ import annotations

import pytest

from marketfeed_api.domain.exceptions.market_data import UpstreamHttpError
from marketfeed_api.infrastructure.resilience.retry import RetryPolicy, retry_async

FAST = RetryPolicy(total=2, base=0.0, cap=0.0, jitter=False)


def test_policy_rejects_more_than_two_retries() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(total=3, base=0.1, cap=1.0)


@pytest.mark.asyncio
async def test_retries_until_success_and_reports_each_retry() -> None:
    calls = 0
    seen: list[int] = []

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise UpstreamHttpError(status=503)
        return "ok"

    result = await retry_async(
        flaky,
        policy=FAST,
        retry_on=lambda exc: isinstance(exc, UpstreamHttpError),
        on_retry=lambda attempt, exc: seen.append(attempt),
    )

    assert result == "ok"
    assert calls == 3
    assert seen == [0, 1]


@pytest.mark.asyncio
async def test_non_retryable_error_is_raised_immediately() -> None:
    calls = 0

    async def broken() -> str:
        nonlocal calls
        calls += 1
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await retry_async(broken, policy=FAST, retry_on=lambda exc: False)
    assert calls == 1


@pytest.mark.asyncio
async def test_zero_retry_policy_makes_a_single_attempt() -> None:
    calls = 0

    async def failing() -> str:
        nonlocal calls
        calls += 1
        raise UpstreamHttpError(status=502)

    policy = RetryPolicy(total=0, base=0.0, cap=0.0, jitter=False)
    with pytest.raises(UpstreamHttpError):
        await retry_async(failing, policy=policy, retry_on=lambda exc: True)
    assert calls == 1
