# usim_hub/rate_limiter.py
"""本模块提供一个基于令牌桶算法的异步速率限制器，供翻译引擎按 rpm / rps 限流。"""

import asyncio
import time
from collections.abc import Awaitable, Callable


class RateLimiter:
    """一个异步安全的令牌桶（Token Bucket）速率限制器。"""

    def __init__(
        self,
        refill_rate: float,
        capacity: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        if refill_rate <= 0 or capacity <= 0:
            raise ValueError("速率和容量必须为正数")
        self.refill_rate = refill_rate
        self.capacity = capacity
        self.tokens = capacity
        self._clock = clock
        self._sleep = sleep
        self.last_refill_time = clock()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, rpm: int) -> "RateLimiter":
        return cls(refill_rate=rpm / 60, capacity=rpm)

    @classmethod
    def per_second(cls, rps: int) -> "RateLimiter":
        return cls(refill_rate=rps, capacity=rps)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self.last_refill_time
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
            self.last_refill_time = now

    async def acquire(self, tokens_needed: int = 1) -> None:
        """异步获取指定数量的令牌，如果令牌不足则等待。"""
        if tokens_needed > self.capacity:
            raise ValueError("请求的令牌数不能超过桶的容量")

        while True:
            async with self._lock:
                self._refill()
                if self.tokens >= tokens_needed:
                    self.tokens -= tokens_needed
                    return
                wait_time = (tokens_needed - self.tokens) / self.refill_rate

            # 在锁外等待
            sleep = self._sleep or asyncio.sleep
            await sleep(wait_time)
