# tests/unit/test_rate_limiter.py
"""
针对 `usim_hub.rate_limiter` 模块的单元测试。

令牌桶的时钟与睡眠函数都通过构造参数注入，测试无需真实等待。
"""

import pytest

from tests.helpers.fakes import RecordingSleep
from usim_hub.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.mark.parametrize("rate, capacity", [(0, 10), (-1, 10), (10, 0), (10, -1)])
def test_rate_limiter_init_with_invalid_args(rate: float, capacity: float) -> None:
    with pytest.raises(ValueError, match="速率和容量必须为正数"):
        RateLimiter(refill_rate=rate, capacity=capacity)


def test_per_minute_and_per_second_constructors() -> None:
    per_minute = RateLimiter.per_minute(120)
    assert per_minute.refill_rate == 2
    assert per_minute.capacity == 120

    per_second = RateLimiter.per_second(5)
    assert (per_second.refill_rate, per_second.capacity) == (5, 5)


@pytest.mark.asyncio
async def test_acquire_succeeds_immediately_when_tokens_are_sufficient() -> None:
    sleep = RecordingSleep()
    limiter = RateLimiter(refill_rate=10, capacity=10, clock=FakeClock(), sleep=sleep)

    await limiter.acquire(5)

    assert limiter.tokens == 5
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_acquire_waits_when_tokens_are_insufficient() -> None:
    clock = FakeClock()
    waits: list[float] = []

    async def advancing_sleep(seconds: float) -> None:
        waits.append(seconds)
        clock.now += seconds

    limiter = RateLimiter(refill_rate=10, capacity=10, clock=clock, sleep=advancing_sleep)
    await limiter.acquire(10)

    await limiter.acquire(5)

    assert waits == [pytest.approx(0.5)]
    assert limiter.tokens == pytest.approx(0)


@pytest.mark.asyncio
async def test_refill_does_not_exceed_capacity() -> None:
    clock = FakeClock()
    limiter = RateLimiter(refill_rate=10, capacity=10, clock=clock)
    limiter.tokens = 2

    clock.now += 2
    await limiter.acquire(1)

    assert limiter.tokens == 9


@pytest.mark.asyncio
async def test_acquire_more_than_capacity_raises_error() -> None:
    limiter = RateLimiter(refill_rate=10, capacity=10)
    with pytest.raises(ValueError, match="请求的令牌数不能超过桶的容量"):
        await limiter.acquire(11)
